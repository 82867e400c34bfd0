"""Custom exceptions for document lookup and retrieval."""
from typing import Optional


class DocumentError(Exception):
    """Base exception for document access errors."""
    pass


class DocumentNotFoundError(DocumentError):
    """Raised when no document is registered for a company name."""

    def __init__(self, company_name: str):
        super().__init__(f"No meeting document found for '{company_name}'")
        self.company_name = company_name


class DocumentFetchError(DocumentError):
    """Raised when a document exists but cannot be read (missing, denied, empty)."""

    def __init__(self, message: str, document_id: Optional[str] = None, cause: Optional[str] = None):
        """
        Initialize fetch error.

        Args:
            message: Error message
            document_id: Identifier of the document that failed
            cause: Short machine-readable reason ("not_found", "permission_denied", "empty", ...)
        """
        super().__init__(message)
        self.document_id = document_id
        self.cause = cause
