"""
Custom Exceptions for the Vector Engine.

Every failure a core operation can surface belongs to exactly one kind of
the taxonomy below; the class attribute ``kind`` carries that name so the
HTTP layer and callers can map errors without isinstance chains.

Exception Hierarchy:
    VectorEngineError (base)
    ├── NotFoundError
    │   ├── CollectionNotFoundError
    │   └── RecordNotFoundError
    ├── DimensionMismatchError
    ├── InvalidNameError
    ├── InvalidMetadataError
    ├── InvalidVectorError
    ├── EmbeddingFailureError      (non-fatal inside ingestion)
    ├── LedgerUnavailableError     (non-fatal, logged)
    └── UnsupportedDocumentError

Chunking parameter errors live in chunking.exceptions.InvalidStrategyError.

Usage:
    from vector_store.exceptions import (
        CollectionNotFoundError,
        DimensionMismatchError,
        VectorEngineError,
    )

    try:
        registry.insert(collection_id, vector)
    except DimensionMismatchError as e:
        print(f"Expected {e.expected} floats, got {e.actual}")
    except VectorEngineError as e:
        print(f"{e.kind}: {e}")
"""

from __future__ import annotations

from typing import Optional

from chunking.exceptions import ChunkingError


# =============================================================================
# BASE EXCEPTION
# =============================================================================


class VectorEngineError(Exception):
    """
    Base exception for all vector engine errors.

    Attributes:
        message: Human-readable error description
        details: Additional technical details (optional)
    """

    kind = "VectorEngineError"

    def __init__(
        self,
        message: str = "A vector engine error occurred",
        details: Optional[str] = None,
    ):
        self.message = message
        self.details = details

        full_message = message
        if details:
            full_message = f"{message} | Details: {details}"

        super().__init__(full_message)


# =============================================================================
# LOOKUP ERRORS
# =============================================================================


class NotFoundError(VectorEngineError):
    """Base class for unknown collection or record ids."""

    kind = "NotFound"


class CollectionNotFoundError(NotFoundError):
    """
    Raised when a collection id is unknown (or was deleted meanwhile).

    Attributes:
        collection_id: The requested id
    """

    def __init__(self, collection_id: str):
        self.collection_id = collection_id
        super().__init__(f"Collection not found: {collection_id}")


class RecordNotFoundError(NotFoundError):
    """
    Raised when a record id is unknown or tombstoned.

    Attributes:
        collection_id: Owning collection
        record_id: The requested record
    """

    def __init__(self, collection_id: str, record_id: str):
        self.collection_id = collection_id
        self.record_id = record_id
        super().__init__(
            f"Record not found: {record_id}",
            details=f"collection={collection_id}",
        )


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class DimensionMismatchError(VectorEngineError, ValueError):
    """
    Raised when a vector's length differs from the collection dimension.

    Attributes:
        expected: Collection dimension
        actual: Length of the offending vector
    """

    kind = "DimensionMismatch"

    def __init__(
        self,
        expected: int,
        actual: int,
        message: Optional[str] = None,
    ):
        self.expected = expected
        self.actual = actual
        super().__init__(
            message or f"Vector dimension mismatch: expected {expected}, got {actual}"
        )


class InvalidVectorError(VectorEngineError, ValueError):
    """
    Raised when a vector is not a flat sequence of finite numbers.

    Attributes:
        reason: What was wrong with the vector
    """

    kind = "InvalidVector"

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"Invalid vector: {reason}")


class InvalidNameError(VectorEngineError, ValueError):
    """
    Raised for empty collection names or the reserved name "default".

    Attributes:
        name: The rejected name
    """

    kind = "InvalidName"

    def __init__(self, name: str, reason: str):
        self.name = name
        super().__init__(f"Invalid collection name {name!r}: {reason}")


class InvalidMetadataError(VectorEngineError, ValueError):
    """
    Raised when record metadata contains an unsupported value type.

    Attributes:
        key: Dotted path of the offending key
    """

    kind = "InvalidMetadata"

    def __init__(self, key: str, reason: str):
        self.key = key
        super().__init__(f"Invalid metadata at {key!r}: {reason}")


# =============================================================================
# COLLABORATOR ERRORS
# =============================================================================


class EmbeddingFailureError(VectorEngineError):
    """
    Raised by an embedding provider when it cannot produce a vector.

    Attributes:
        model: Embedding model name (if known)
        original_error: The underlying client error
    """

    kind = "EmbeddingFailure"

    def __init__(
        self,
        message: str,
        model: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.model = model
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(message, details)


class LedgerUnavailableError(VectorEngineError):
    """
    Raised by ledger clients when the ledger cannot be reached.

    Attributes:
        url: Endpoint that failed (if known)
        status_code: HTTP status (None for transport failures)
        original_error: The underlying error
    """

    kind = "LedgerUnavailable"

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        self.url = url
        self.status_code = status_code
        self.original_error = original_error
        details = str(original_error) if original_error else None
        super().__init__(message, details)


class UnsupportedDocumentError(VectorEngineError, ValueError):
    """
    Raised when a document source is not plain text.

    Attributes:
        mime_type: The rejected MIME type
    """

    kind = "UnsupportedDocument"

    def __init__(self, mime_type: str, filename: Optional[str] = None):
        self.mime_type = mime_type
        self.filename = filename
        super().__init__(
            f"Unsupported document type: {mime_type}",
            details=f"file={filename}" if filename else None,
        )


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def error_kind(error: Exception) -> Optional[str]:
    """Return the taxonomy kind of an error, or None for foreign errors."""
    if isinstance(error, (VectorEngineError, ChunkingError)):
        return error.kind
    return None


def is_retryable(error: Exception) -> bool:
    """
    Check if an error is potentially recoverable by retrying.

    Returns True for ledger transport failures and 5xx responses; 4xx
    responses from the ledger are treated as permanent.
    """
    if isinstance(error, LedgerUnavailableError):
        return error.status_code is None or error.status_code >= 500
    return False


def format_error_chain(error: Exception) -> str:
    """
    Format an exception and its chain for logging.

    Returns a multi-line string showing the error hierarchy.
    """
    lines = []
    current = error
    depth = 0

    while current is not None:
        prefix = "  " * depth + ("└─ " if depth > 0 else "")
        lines.append(f"{prefix}{type(current).__name__}: {current}")

        original = getattr(current, "original_error", None)
        if original is not None:
            current = original
            depth += 1
        elif current.__cause__:
            current = current.__cause__
            depth += 1
        else:
            break

    return "\n".join(lines)
