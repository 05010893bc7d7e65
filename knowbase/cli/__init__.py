"""CLI tools for knowbase.

- ``python -m knowbase.cli.ingest`` -- watch, drain or ingest single files
  into the embedding store; show store statistics.
- ``python -m knowbase.cli.ask`` -- answer a question with citations.

Heavy imports (providers, httpx) are deferred inside the handlers so
``--help`` stays fast.
"""
