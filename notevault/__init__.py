"""SQLite-backed storage for nested folders, notes and tags, with markdown link parsing."""

__version__ = "0.1.0"
__all__ = [
    "models",
    "events",
    "links",
    "counts",
    "store",
    "listing",
    "importer",
    "migration",
]