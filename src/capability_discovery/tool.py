"""
tool.py - discover_capabilities meta-tool

Lets the agent search for capabilities that are not already in its context.
Returns tier-1 matches with relevance scores; failures become error responses
so a discovery problem never aborts the agent turn.
"""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .config.logging import get_logger
from .engine import CapabilityDiscoveryEngine
from .errors import DiscoveryError, DiscoveryErrorCode
from .responses import ToolResponse
from .types import DiscoveryQueryOptions

logger = get_logger("capability_discovery.tool")

TOOL_NAME = "discover_capabilities"

INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "query": {
            "type": "string",
            "description": (
                "Natural language description of the capability you need "
                '(e.g., "search the web", "send a Discord message", "summarize a document")'
            ),
        },
        "kind": {
            "type": "string",
            "enum": ["tool", "skill", "extension", "channel", "any"],
            "description": 'Filter by capability type. Use "any" to search all types.',
            "default": "any",
        },
        "category": {
            "type": "string",
            "description": (
                'Filter by category (e.g., "information", "communication", "developer-tools")'
            ),
        },
    },
    "required": ["query"],
}

OUTPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "capabilities": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "id": {"type": "string"},
                    "name": {"type": "string"},
                    "kind": {"type": "string"},
                    "description": {"type": "string"},
                    "category": {"type": "string"},
                    "relevance": {"type": "number"},
                    "available": {"type": "boolean"},
                },
            },
        },
        "totalIndexed": {"type": "number"},
    },
}


class DiscoverCapabilitiesArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    query: str = Field(min_length=1)
    kind: Literal["tool", "skill", "extension", "channel", "any"] = "any"
    category: Optional[str] = None


class DiscoverCapabilitiesTool:
    """The ``discover_capabilities`` tool bound to one engine."""

    name = TOOL_NAME
    display_name = "Discover Capabilities"
    description = (
        "Search for available tools, skills, extensions, and channels by describing "
        "what you need. Use when you need a capability not already visible in your "
        "context. Returns matched capabilities with relevance scores."
    )
    input_schema = INPUT_SCHEMA
    output_schema = OUTPUT_SCHEMA
    category = "meta"
    has_side_effects = False

    def __init__(self, engine: CapabilityDiscoveryEngine):
        self._engine = engine

    async def execute(self, args: dict[str, Any]) -> ToolResponse:
        if not self._engine.is_initialized():
            return ToolResponse.error(
                "Capability discovery engine is not initialized.",
                code=DiscoveryErrorCode.NOT_INITIALIZED.value,
            )

        try:
            parsed = DiscoverCapabilitiesArgs.model_validate(args)
        except ValidationError as e:
            return ToolResponse.error(
                f"Invalid arguments: {e.error_count()} validation error(s)",
                code=DiscoveryErrorCode.INVALID_ARGUMENT.value,
                metadata={"errors": e.errors(include_url=False, include_context=False)},
            )

        try:
            result = await self._engine.discover(
                parsed.query,
                DiscoveryQueryOptions(
                    kind=parsed.kind,
                    category=parsed.category,
                    only_available=False,
                ),
            )
        except Exception as e:
            logger.warning("Discovery search failed", query=parsed.query, error=str(e))
            code = e.code.value if isinstance(e, DiscoveryError) and e.code else None
            return ToolResponse.error(f"Discovery search failed: {e}", code=code)

        capabilities = [
            {
                "id": r.capability.id,
                "name": r.capability.display_name,
                "kind": r.capability.kind,
                "description": r.capability.description,
                "category": r.capability.category,
                "relevance": round(r.relevance_score, 2),
                "available": r.capability.available,
            }
            for r in result.tier1
        ]
        return ToolResponse.success(
            data={
                "capabilities": capabilities,
                "totalIndexed": len(self._engine.list_capability_ids()),
            }
        )

    def to_descriptor_dict(self) -> dict[str, Any]:
        """Tool definition in the shape tool registries expect."""
        return {
            "name": self.name,
            "displayName": self.display_name,
            "description": self.description,
            "inputSchema": self.input_schema,
            "outputSchema": self.output_schema,
            "category": self.category,
            "hasSideEffects": self.has_side_effects,
        }


def create_discover_capabilities_tool(engine: CapabilityDiscoveryEngine) -> DiscoverCapabilitiesTool:
    return DiscoverCapabilitiesTool(engine)


__all__ = [
    "INPUT_SCHEMA",
    "OUTPUT_SCHEMA",
    "TOOL_NAME",
    "DiscoverCapabilitiesArgs",
    "DiscoverCapabilitiesTool",
    "create_discover_capabilities_tool",
]
