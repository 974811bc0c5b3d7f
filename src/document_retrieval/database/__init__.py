"""Database package."""

from document_retrieval.database.connection import check_connection, create_engine, get_database_url
from document_retrieval.database.data_context import DataContext
from document_retrieval.database.schema import create_schema

__all__ = [
    "DataContext",
    "check_connection",
    "create_engine",
    "create_schema",
    "get_database_url",
]
