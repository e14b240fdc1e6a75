"""
responses.py - Tool Response Format

Standardized result of a meta-tool call.

Usage:
    from capability_discovery.responses import ToolResponse

    return ToolResponse.success(data={"capabilities": [...]})
    return ToolResponse.error("Not initialized", code=DiscoveryErrorCode.NOT_INITIALIZED)
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class ResponseStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"


class ToolResponse(BaseModel):
    """Result of a tool execution.

    Attributes:
        status: success or error
        data: Response payload (success only)
        error_message: Human-readable error (error only)
        error_code: Machine-readable error code (error only)
        metadata: Additional context information
        timestamp: Response creation timestamp
    """

    status: ResponseStatus = Field(..., description="Response status")
    data: Optional[Any] = Field(default=None, description="Payload for successful calls")
    error_message: Optional[str] = Field(default=None, description="Error message for failures")
    error_code: Optional[str] = Field(default=None, description="Machine-readable error code")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Additional context")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Response timestamp",
    )

    def to_text(self) -> str:
        """JSON text block for returning the response to an LLM."""
        return self.model_dump_json(exclude_none=True)

    @classmethod
    def success(cls, data: Any = None, metadata: Optional[dict] = None) -> "ToolResponse":
        return cls(status=ResponseStatus.SUCCESS, data=data, metadata=metadata or {})

    @classmethod
    def error(
        cls,
        message: str,
        code: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> "ToolResponse":
        """Create an error response.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
            metadata: Optional additional context
        """
        return cls(
            status=ResponseStatus.ERROR,
            error_message=message,
            error_code=code,
            metadata=metadata or {},
        )

    @property
    def is_success(self) -> bool:
        return self.status == ResponseStatus.SUCCESS

    @property
    def is_error(self) -> bool:
        return self.status == ResponseStatus.ERROR


__all__ = ["ResponseStatus", "ToolResponse"]
