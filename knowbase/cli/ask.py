"""Ask the knowledge base a question from the command line.

Usage::

    python -m knowbase.cli.ask "What were the action items from the March review?"
    python -m knowbase.cli.ask "Summarise the onboarding guide" --top-k 8
    python -m knowbase.cli.ask "Why did the migration slip?" --reasoning
    python -m knowbase.cli.ask "..." --json

Prints the answer followed by its citations in retrieval order.  Exit code
is 1 whenever no answer could be produced; "no relevant information" is a
normal answer (exit 0).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

from knowbase.cli._common import (
    EXIT_CONFIG_ERROR,
    EXIT_FAILURE,
    EXIT_OK,
    add_common_arguments,
    load_settings,
)
from knowbase.config.settings import Settings
from knowbase.models.answer import AnswerResult
from knowbase.utils.errors import StorageError


def _format_text(result: AnswerResult) -> str:
    lines = [result.answer]
    if result.citations:
        lines.append("")
        lines.append("Sources:")
        for i, citation in enumerate(result.citations, start=1):
            lines.append(f"  {i}. {citation.source_file} ({citation.similarity:.3f})")
    return "\n".join(lines)


async def _ask(args: argparse.Namespace, app_settings: Settings) -> AnswerResult:
    from knowbase.main import app_context

    async with app_context(app_settings) as ctx:
        return await ctx.qa.ask(args.question, top_k=args.top_k, reasoning=args.reasoning)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m knowbase.cli.ask",
        description="Answer a question from the knowbase embedding store.",
    )
    add_common_arguments(parser)
    parser.add_argument("question", help="Free-text question")
    parser.add_argument(
        "--top-k",
        dest="top_k",
        type=int,
        default=None,
        help="Number of chunks to retrieve (default: settings.top_k)",
    )
    parser.add_argument(
        "--reasoning",
        action="store_true",
        help="Answer with the reasoning model",
    )
    parser.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Print the full result as JSON",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for asking questions."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not args.question.strip():
        parser.error("question must not be empty")

    app_settings = load_settings(args)
    if app_settings is None:
        sys.exit(EXIT_CONFIG_ERROR)

    try:
        result = asyncio.run(_ask(args, app_settings))
    except StorageError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(EXIT_FAILURE)

    if args.json_output:
        print(json.dumps(result.model_dump(mode="json"), indent=2))
    else:
        print(_format_text(result))

    sys.exit(EXIT_OK if result.ok else EXIT_FAILURE)


if __name__ == "__main__":
    main()
