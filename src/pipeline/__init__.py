"""Pipeline orchestration components for document ingestion."""

from src.pipeline.orchestrator import DocumentIngestionPipeline
from src.pipeline.progress_tracker import ProgressTracker

__all__ = [
    "DocumentIngestionPipeline",
    "ProgressTracker",
]
