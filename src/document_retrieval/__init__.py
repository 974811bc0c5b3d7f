"""Document ingestion and filtered retrieval engine."""

__version__ = "0.1.0"
