"""BWT/FM-index construction and queries, packed-text helpers, read loading and SAM helpers."""

__version__ = "0.1.0"