# =============================================================================
# src/cli/__main__.py: Package Entry Point
# =============================================================================
#
# Enables `python -m src.cli`, which delegates to the ingestion CLI
# (ingest.py), the only CLI tool in the package.
# =============================================================================

"""Allow ``python -m src.cli`` execution."""

from src.cli.ingest import main

main()
