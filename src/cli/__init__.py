# =============================================================================
# src/cli/__init__.py: CLI Module Overview
# =============================================================================
#
# Command-line access to the ingestion pipeline for operators who work
# outside the HTTP API:
#
#   INGESTION (ingest.py)
#     file       run one document through classify → normalize → persist
#     log        print the ingestion audit trail
#     hierarchy  dump a scenario's linked document tree as JSON
#
# Architecture Notes:
#   - argparse for argument parsing (not Click/Typer).
#   - Heavy imports (providers, services) are deferred inside handlers to
#     keep `--help` fast.
#   - The CLI builds its own dependencies rather than importing main.py,
#     because it runs as a one-shot script, not a long-lived server.
# =============================================================================

"""CLI tools for the Overwatch ingestion pipeline.

- ``python -m src.cli.ingest``: ingest documents and inspect the hierarchy.
"""
