"""Local hierarchical document store: folders and files persisted in SQLite."""

__version__ = "0.1.0"
