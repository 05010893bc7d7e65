"""knowbase: a personal knowledge-base assistant.

Ingests local documents into an append-only embedding store and answers
questions from it with a local language model.
"""

__version__ = "0.1.0"
