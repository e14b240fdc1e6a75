"""
errors.py - Error Code System

Structured exceptions raised at the discovery engine's I/O and configuration
boundaries. Pure computation (graph build, rerank, assembly) never raises on
well-formed input.

Error Code Structure:
- 1xxx: Validation errors
- 3xxx: Runtime errors
- 4xxx: Storage errors
- 9xxx: External (embedding provider / vector backend) errors

Usage:
    from capability_discovery.errors import VectorStoreError, DiscoveryErrorCode

    raise VectorStoreError(
        "Collection not found",
        code=DiscoveryErrorCode.COLLECTION_NOT_FOUND,
        details={"collection": "capability_index"},
    )
"""

from enum import Enum
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Error category classification."""

    VALIDATION = "VALIDATION"
    RUNTIME = "RUNTIME"
    STORAGE = "STORAGE"
    EXTERNAL = "EXTERNAL"
    UNKNOWN = "UNKNOWN"


def _infer_category_from_code(code: str) -> ErrorCategory:
    """Infer error category from the error code prefix."""
    if not code or len(code) < 2:
        return ErrorCategory.UNKNOWN

    category_map = {
        "1": ErrorCategory.VALIDATION,
        "3": ErrorCategory.RUNTIME,
        "4": ErrorCategory.STORAGE,
        "9": ErrorCategory.EXTERNAL,
    }
    return category_map.get(code[0], ErrorCategory.UNKNOWN)


class DiscoveryErrorCode(str, Enum):
    """Error codes for the capability discovery engine."""

    # Validation (1xxx)
    INVALID_ARGUMENT = "1001"
    MISSING_REQUIRED = "1002"
    INVALID_CONFIG = "1003"
    DIMENSION_MISMATCH = "1004"
    MANIFEST_INVALID = "1005"

    # Runtime (3xxx)
    NOT_INITIALIZED = "3001"

    # Storage (4xxx)
    COLLECTION_NOT_FOUND = "4001"
    STORAGE_READ_ERROR = "4002"

    # External (9xxx)
    EMBEDDING_FAILED = "9001"
    VECTOR_STORE_FAILED = "9002"


class DiscoveryError(Exception):
    """Base exception for capability discovery errors.

    Attributes:
        message: Human-readable error description
        code: Error code from DiscoveryErrorCode
        category: Error category from ErrorCategory
        details: Additional error context dictionary
    """

    default_code: Optional[DiscoveryErrorCode] = None

    def __init__(
        self,
        message: str,
        code: Optional[DiscoveryErrorCode] = None,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code

        if category == ErrorCategory.UNKNOWN and self.code:
            category = _infer_category_from_code(self.code.value)

        self.category = category
        self.details = details or {}
        super().__init__(str(self))

    def __str__(self) -> str:
        code_str = self.code.value if self.code else "UNKNOWN"
        return f"[{code_str}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"code={self.code.value if self.code else None!r}, "
            f"category={self.category.value!r}, "
            f"details={self.details!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary format."""
        return {
            "error": type(self).__name__,
            "message": self.message,
            "code": self.code.value if self.code else None,
            "category": self.category.value,
            "details": self.details,
        }


class ConfigurationError(DiscoveryError):
    """Raised when discovery configuration is invalid."""

    default_code = DiscoveryErrorCode.INVALID_CONFIG


class EmbeddingError(DiscoveryError):
    """Raised when the embedding provider returns an unusable response."""

    default_code = DiscoveryErrorCode.EMBEDDING_FAILED


class VectorStoreError(DiscoveryError):
    """Raised by vector store backends."""

    default_code = DiscoveryErrorCode.VECTOR_STORE_FAILED


class DimensionMismatchError(VectorStoreError):
    """Raised when a vector's dimension does not match its collection."""

    default_code = DiscoveryErrorCode.DIMENSION_MISMATCH


class CollectionNotFoundError(VectorStoreError):
    """Raised when a vector store collection does not exist."""

    default_code = DiscoveryErrorCode.COLLECTION_NOT_FOUND


class ManifestError(DiscoveryError):
    """Raised when a capability manifest file cannot be read or parsed."""

    default_code = DiscoveryErrorCode.MANIFEST_INVALID


__all__ = [
    "CollectionNotFoundError",
    "ConfigurationError",
    "DimensionMismatchError",
    "DiscoveryError",
    "DiscoveryErrorCode",
    "EmbeddingError",
    "ErrorCategory",
    "ManifestError",
    "VectorStoreError",
]
