# =============================================================================
# knowbase/cli/ingest.py: CLI Ingest Command
# =============================================================================
#
# Drives the ingestion orchestrator from the command line.
#
# Subcommands:
#
#   watch : recover interrupted files, sweep the input directory, then keep
#           watching it until Ctrl-C / SIGTERM
#   run   : recover interrupted files, process everything currently in the
#           input directory once, exit
#   file  : ingest a single file where it lies (the file is not moved)
#   stats : show embedding store statistics
#
# Usage examples:
#   python -m knowbase.cli.ingest watch
#   python -m knowbase.cli.ingest run --config config/config.yaml
#   python -m knowbase.cli.ingest file ~/Documents/notes.docx
#   python -m knowbase.cli.ingest stats
# =============================================================================

"""Standalone CLI for building the knowbase embedding store.

Usage::

    python -m knowbase.cli.ingest watch
    python -m knowbase.cli.ingest run
    python -m knowbase.cli.ingest file /path/to/report.pdf
    python -m knowbase.cli.ingest stats
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import signal
import sys
from pathlib import Path

from knowbase.cli._common import (
    EXIT_CONFIG_ERROR,
    EXIT_FAILURE,
    EXIT_OK,
    add_common_arguments,
    load_settings,
)
from knowbase.config.settings import Settings
from knowbase.models.ingestion import FileState, IngestionResult


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _print_result(result: IngestionResult) -> None:
    line = f"  {result.state.value:<16} {result.source_file}"
    if result.state == FileState.COMPLETED:
        line += f"  ({result.chunks_embedded}/{result.chunks_created} chunks embedded)"
        if result.failed_chunks:
            failed = ", ".join(str(n) for n in result.failed_chunks)
            line += f"  failed chunks: {failed}"
    elif result.error:
        line += f"  ({result.error})"
    print(line)


def _exit_code_for(results: list[IngestionResult]) -> int:
    if any(r.state == FileState.ERROR for r in results):
        return EXIT_FAILURE
    return EXIT_OK


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_watch(app_settings: Settings) -> int:
    """Watch the input directory until interrupted."""
    from knowbase.main import app_context

    async with app_context(app_settings) as ctx:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # add_signal_handler is unavailable on Windows event loops.
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.add_signal_handler(sig, ctx.ingestion.stop)

        print(f"Watching {app_settings.base_paths.input_dir} (Ctrl-C to stop)")
        await ctx.ingestion.watch()
    print("Stopped.")
    return EXIT_OK


async def _handle_run(app_settings: Settings) -> int:
    """Process the input directory once."""
    from knowbase.main import app_context

    async with app_context(app_settings) as ctx:
        ctx.ingestion.ensure_directories()
        recovered = ctx.ingestion.recover_interrupted()
        results = await ctx.ingestion.drain()

    all_results = recovered + results
    if not all_results:
        print(f"Nothing to ingest in {app_settings.base_paths.input_dir}")
        return EXIT_OK

    print("Ingestion results:")
    for result in all_results:
        _print_result(result)
    return _exit_code_for(all_results)


async def _handle_file(args: argparse.Namespace, app_settings: Settings) -> int:
    """Ingest one file in place."""
    from knowbase.main import app_context

    path = Path(args.path).expanduser().resolve()
    if not path.is_file():
        print(f"Error: not a file: {path}", file=sys.stderr)
        return EXIT_FAILURE

    async with app_context(app_settings) as ctx:
        result = await ctx.ingestion.process_file(path, claim=False)

    _print_result(result)
    return EXIT_OK if result.state == FileState.COMPLETED else EXIT_FAILURE


async def _handle_stats(app_settings: Settings) -> int:
    """Display store statistics."""
    from knowbase.providers.store.json_embedding_store import JSONEmbeddingStore
    from knowbase.utils.errors import StorageError

    store = JSONEmbeddingStore(app_settings.base_paths.embeddings_file)
    try:
        stats = await store.stats()
    except StorageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    print("Embedding Store Statistics")
    print("=" * 40)
    print(f"  File:           {store.path}")
    print(f"  Total records:  {stats.total_records}")
    print(f"  Total sources:  {stats.total_sources}")
    if stats.records_by_file_type:
        print("\n  Records by file type:")
        for file_type, count in stats.records_by_file_type.items():
            print(f"    {file_type:<10} {count}")
    return EXIT_OK


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m knowbase.cli.ingest",
        description="Ingest documents into the knowbase embedding store.",
    )
    add_common_arguments(parser)
    subparsers = parser.add_subparsers(dest="command", help="Ingestion commands")

    subparsers.add_parser("watch", help="Watch the input directory until stopped")
    subparsers.add_parser("run", help="Process the input directory once and exit")

    file_parser = subparsers.add_parser("file", help="Ingest one file in place")
    file_parser.add_argument("path", help="Path to the document")

    subparsers.add_parser("stats", help="Show embedding store statistics")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ingestion tool."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(EXIT_FAILURE)

    app_settings = load_settings(args)
    if app_settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    if args.command == "watch":
        exit_code = asyncio.run(_handle_watch(app_settings))
    elif args.command == "run":
        exit_code = asyncio.run(_handle_run(app_settings))
    elif args.command == "file":
        exit_code = asyncio.run(_handle_file(args, app_settings))
    elif args.command == "stats":
        exit_code = asyncio.run(_handle_stats(app_settings))
    else:
        parser.print_help()
        exit_code = EXIT_FAILURE

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
