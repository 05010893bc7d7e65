"""Allow ``python -m knowbase.cli`` execution (defaults to the ingest tool)."""

from knowbase.cli.ingest import main

main()
