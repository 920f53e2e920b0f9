"""
Exceptions for the Chunking Pipeline.

Exception Hierarchy:
    ChunkingError (base)
    └── InvalidStrategyError

Usage:
    from chunking.exceptions import InvalidStrategyError

    try:
        result = chunker.chunk(text, strategy)
    except InvalidStrategyError as e:
        print(f"Rejected strategy {e.strategy_kind}: {e}")
"""

from __future__ import annotations

from typing import Optional


class ChunkingError(Exception):
    """
    Base exception for chunking errors.

    Attributes:
        message: Human-readable error description
        details: Additional technical details (optional)
    """

    kind = "ChunkingError"

    def __init__(
        self,
        message: str = "A chunking error occurred",
        details: Optional[str] = None,
    ):
        self.message = message
        self.details = details

        full_message = message
        if details:
            full_message = f"{message} | Details: {details}"

        super().__init__(full_message)


class InvalidStrategyError(ChunkingError, ValueError):
    """
    Raised when a chunking strategy fails validation.

    Validation always runs before any chunk is produced, so a caller that
    receives this error can be sure no chunking work was done.

    Attributes:
        strategy_kind: The requested strategy kind (may be unknown)
    """

    kind = "InvalidStrategy"

    def __init__(
        self,
        message: str,
        strategy_kind: Optional[str] = None,
    ):
        self.strategy_kind = strategy_kind
        super().__init__(message)
