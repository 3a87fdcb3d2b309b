"""Hierarchy store adapters (see src/interfaces/hierarchy_store.py)."""

from src.providers.hierarchy.sqlite_hierarchy_store import SQLiteHierarchyStore

__all__ = ["SQLiteHierarchyStore"]
