"""Custom exception classes for the Document Retrieval engine."""

from typing import Any, Dict, Optional


class RetrievalException(Exception):
    """Base exception for all Document Retrieval errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "status_code": self.status_code,
                "details": self.details,
            }
        }


class ParsingError(RetrievalException):
    """Exception raised for document text extraction errors."""

    def __init__(
        self,
        message: str = "Document parsing failed",
        mimetype: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if mimetype:
            error_details["mimetype"] = mimetype
        super().__init__(
            message=message,
            status_code=422,
            code="PARSING_ERROR",
            details=error_details,
        )


class ChunkingError(RetrievalException):
    """Exception raised for text chunking errors."""

    def __init__(
        self,
        message: str = "Text chunking failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            code="CHUNKING_ERROR",
            details=details,
        )


class EmbeddingError(RetrievalException):
    """Exception raised for embedding generation errors."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        model: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if model:
            error_details["model"] = model
        super().__init__(
            message=message,
            status_code=502,
            code="EMBEDDING_ERROR",
            details=error_details,
        )


class DatabaseError(RetrievalException):
    """Exception raised when the backing relational store fails."""

    def __init__(
        self,
        message: str = "Database operation failed",
        entity: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if entity:
            error_details["entity"] = entity
        if operation:
            error_details["operation"] = operation
        super().__init__(
            message=message,
            status_code=500,
            code="DATABASE_ERROR",
            details=error_details,
        )


class StorageError(RetrievalException):
    """Exception raised for file storage operation errors."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if key:
            error_details["key"] = key
        super().__init__(
            message=message,
            status_code=502,
            code="STORAGE_ERROR",
            details=error_details,
        )


class ValidationError(RetrievalException):
    """Exception raised for validation errors."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: Optional[Dict[str, Any]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details = details or {}
        if errors:
            error_details["validation_errors"] = errors
        super().__init__(
            message=message,
            status_code=422,
            code="VALIDATION_ERROR",
            details=error_details,
        )


class NotFoundError(RetrievalException):
    """Exception raised when a resource is not found."""

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        message = f"{resource} not found"
        if resource_id:
            message += f" with id: {resource_id}"
        error_details = details or {}
        error_details["resource"] = resource
        if resource_id:
            error_details["resource_id"] = resource_id
        super().__init__(
            message=message,
            status_code=404,
            code="NOT_FOUND",
            details=error_details,
        )
