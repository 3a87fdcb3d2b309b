# =============================================================================
# src/cli/ingest.py: CLI Ingest Command (document hierarchy)
# =============================================================================
#
# Standalone CLI for pushing documents through the ingestion pipeline and
# inspecting what it stored, without running the web server.
#
# Supported subcommands:
#
#   file       Ingest one text file (any format: USMTF, OTH-Gold, memo...)
#   log        Print the latest ingestion audit rows
#   hierarchy  Print a scenario's strategy → planning → order tree as JSON
#
# Provider selection mirrors main.py:
#   Generative Text Service: Anthropic -> OpenAI -> Ollama
#   Hierarchy store:         SQLite at HIERARCHY_DB_PATH
#
# Usage examples:
#   python -m src.cli.ingest file --scenario demo --path docs/ato_day3.txt
#   python -m src.cli.ingest file --scenario demo --path jiptl.txt --hint STAFF_DOC
#   python -m src.cli.ingest log --scenario demo --limit 10
#   python -m src.cli.ingest hierarchy --scenario demo
# =============================================================================

"""Standalone CLI for ingesting documents into the hierarchy store.

Usage::

    python -m src.cli.ingest file --scenario demo --path /path/to/order.txt

    python -m src.cli.ingest log --scenario demo

    python -m src.cli.ingest hierarchy --scenario demo
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from src.config.settings import Settings
from src.models.pipeline import IngestEvent
from src.utils.errors import IngestionError


def _build_llm_provider(app_settings: Settings):  # noqa: ANN202
    """Same fallback chain as ``main.py``: Anthropic -> OpenAI -> Ollama."""
    if app_settings.anthropic_api_key:
        from src.providers.llm.anthropic_provider import AnthropicLLMProvider

        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        from src.providers.llm.openai_provider import OpenAILLMProvider

        return OpenAILLMProvider(settings=app_settings)
    from src.providers.llm.ollama_provider import OllamaLLMProvider

    return OllamaLLMProvider(settings=app_settings)


async def _open_store(app_settings: Settings):  # noqa: ANN202
    from src.providers.hierarchy.sqlite_hierarchy_store import SQLiteHierarchyStore

    store = SQLiteHierarchyStore(db_path=app_settings.hierarchy_db_path)
    await store.initialize()
    return store


def _print_event(event: IngestEvent) -> None:
    """Progress listener: one line per lifecycle event."""
    data = event.payload
    print(f"  [{data.get('elapsedMs', 0):>6} ms] {event.event.value}")


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


async def _handle_file(args: argparse.Namespace, app_settings: Settings) -> int:
    """Ingest one text file."""
    path = Path(args.path)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    raw_text = path.read_text(encoding="utf-8")
    if not raw_text.strip():
        print(f"Error: {path} is empty", file=sys.stderr)
        return 1
    if len(raw_text) > app_settings.ingest_max_text_chars:
        print(
            f"Error: {path} exceeds {app_settings.ingest_max_text_chars} characters",
            file=sys.stderr,
        )
        return 1

    from src.pipeline.orchestrator import DocumentIngestionPipeline
    from src.pipeline.progress_tracker import ProgressTracker
    from src.services.document_classifier import DocumentClassifier
    from src.services.document_normalizer import DocumentNormalizer
    from src.services.hierarchy_persister import HierarchyPersister

    llm = _build_llm_provider(app_settings)
    store = await _open_store(app_settings)
    tracker = ProgressTracker()
    tracker.register_listener(args.scenario, _print_event)
    pipeline = DocumentIngestionPipeline(
        classifier=DocumentClassifier(llm),
        normalizer=DocumentNormalizer(llm),
        persister=HierarchyPersister(store),
        progress_tracker=tracker,
        preview_chars=app_settings.ingest_preview_chars,
    )

    print(f"Ingesting {path} into scenario '{args.scenario}' via {llm.get_provider_name()}")
    try:
        result = await pipeline.ingest(args.scenario, raw_text, args.hint)
    except IngestionError as exc:
        stage = exc.stage.value if exc.stage else "unknown"
        print(f"\nIngestion failed at stage '{stage}': {exc}", file=sys.stderr)
        return 1

    print("\nIngestion complete:")
    print(f"  Level:        {result.hierarchy_level.value}")
    print(f"  Type/format:  {result.document_type} / {result.source_format}")
    print(f"  Confidence:   {result.confidence:.2f}")
    print(f"  Created id:   {result.created_id}")
    print(f"  Linked to:    {result.parent_link.linked_to_id or '-'}")
    print(f"  Extracted:    {result.extracted.model_dump(by_alias=True)}")
    print(f"  Review flags: {len(result.review_flags)}")
    for flag in result.review_flags:
        print(f"    - {flag.field}: {flag.reason}")
    print(f"  Time:         {result.parse_time_ms} ms")
    return 0


async def _handle_log(args: argparse.Namespace, app_settings: Settings) -> int:
    """Print the latest audit rows."""
    store = await _open_store(app_settings)
    entries = await store.list_ingest_logs(args.scenario, args.limit)
    if not entries:
        print("No ingestions recorded.")
        return 0

    print(f"{'created_at':<27} {'level':<9} {'type':<14} {'conf':>5} {'flags':>5}  record")
    print("-" * 100)
    for entry in entries:
        print(
            f"{entry.created_at.isoformat():<27} {entry.hierarchy_level.value:<9} "
            f"{entry.document_type:<14} {entry.confidence:>5.2f} "
            f"{entry.review_flag_count:>5}  {entry.created_record_id}"
        )
    return 0


async def _handle_hierarchy(args: argparse.Namespace, app_settings: Settings) -> int:
    """Dump the nested hierarchy view as JSON."""
    store = await _open_store(app_settings)
    view = await store.get_hierarchy(args.scenario)
    print(json.dumps(view.model_dump(mode="json", by_alias=True), indent=2))
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.ingest",
        description="Ingest documents into the Overwatch document hierarchy.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Ingestion commands")

    # -- file --
    file_parser = subparsers.add_parser("file", help="Ingest one text file")
    file_parser.add_argument("--scenario", required=True, help="Scenario id")
    file_parser.add_argument("--path", required=True, help="Path to the text file")
    file_parser.add_argument(
        "--hint", default=None, help="Source format hint (e.g. USMTF, OTH_GOLD)"
    )

    # -- log --
    log_parser = subparsers.add_parser("log", help="Show the ingestion audit log")
    log_parser.add_argument("--scenario", default=None, help="Scenario id (default: all)")
    log_parser.add_argument("--limit", type=int, default=50, help="Rows to show (default: 50)")

    # -- hierarchy --
    tree_parser = subparsers.add_parser("hierarchy", help="Print a scenario's hierarchy as JSON")
    tree_parser.add_argument("--scenario", required=True, help="Scenario id")

    return parser


_HANDLERS = {
    "file": _handle_file,
    "log": _handle_log,
    "hierarchy": _handle_hierarchy,
}


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse the subcommand and dispatch to its handler."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()

    from src.utils.logging import configure_logging

    configure_logging(log_level=app_settings.log_level)

    exit_code = asyncio.run(_HANDLERS[args.command](args, app_settings))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
