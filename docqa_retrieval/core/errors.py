"""Custom error types for the retrieval engine."""

from typing import Optional, Dict, Any
from enum import Enum
from datetime import datetime, timezone


class ErrorCategory(Enum):
    """Categories of errors for better handling."""
    PROGRAMMER = "programmer"
    PROVIDER = "provider"
    TIMEOUT = "timeout"
    ENRICHMENT = "enrichment"
    STORAGE = "storage"
    CACHE = "cache"
    UNKNOWN = "unknown"


class RetrievalError(Exception):
    """Base exception for retrieval engine errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        """Initialize retrieval error."""
        super().__init__(message)
        self.message = message
        self.category = category
        self.details = details or {}
        self.recoverable = recoverable
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for logging/response."""
        return {
            "error": self.message,
            "type": type(self).__name__,
            "category": self.category.value,
            "details": self.details,
            "recoverable": self.recoverable,
            "timestamp": self.timestamp.isoformat(),
        }


class DimensionMismatchError(RetrievalError):
    """Two vectors of different length were compared."""

    def __init__(self, left: int, right: int):
        super().__init__(
            message=f"Vectors must have the same dimensions ({left} != {right})",
            category=ErrorCategory.PROGRAMMER,
            details={"left_dimensions": left, "right_dimensions": right},
            recoverable=False
        )


class ProviderUnavailableError(RetrievalError):
    """The embedding provider could not produce a vector."""

    def __init__(self, message: str, provider: Optional[str] = None):
        details = {}
        if provider:
            details["provider"] = provider

        super().__init__(
            message=message,
            category=ErrorCategory.PROVIDER,
            details=details,
            recoverable=True
        )


class OperationTimeoutError(RetrievalError):
    """An awaited operation exceeded its deadline.

    The underlying work is not guaranteed to have stopped.
    """

    def __init__(self, timeout_ms: float, operation: Optional[str] = None):
        details: Dict[str, Any] = {"timeout_ms": timeout_ms}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=f"Operation timeout after {timeout_ms:g}ms",
            category=ErrorCategory.TIMEOUT,
            details=details,
            recoverable=True
        )


class EnrichmentError(RetrievalError):
    """Document metadata lookup failed for a search hit."""

    def __init__(self, message: str, document_id: Optional[str] = None, chunk_id: Optional[str] = None):
        details = {}
        if document_id:
            details["document_id"] = document_id
        if chunk_id:
            details["chunk_id"] = chunk_id

        super().__init__(
            message=message,
            category=ErrorCategory.ENRICHMENT,
            details=details,
            recoverable=True
        )


class CorpusAccessError(RetrievalError):
    """The corpus could not be read at all."""

    def __init__(self, message: str, operation: Optional[str] = None):
        details = {}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            category=ErrorCategory.STORAGE,
            details=details,
            recoverable=True
        )
