"""
types.py - Core data model for capability discovery

- CapabilityDescriptor: uniform shape for any tool, skill, extension or channel
- Source records: the per-platform shapes the normalizer understands
- Graph values: CapabilityEdge, RelatedCapability, PresetCoOccurrence
- Results: the three-tier CapabilityDiscoveryResult and its accounting

Descriptors and source records are pydantic models (validated at the input
boundary, camelCase aliases for the dict form). Values derived inside the
engine are plain dataclasses.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

CapabilityKind = Literal["tool", "skill", "extension", "channel"]
CapabilityKindFilter = Literal["tool", "skill", "extension", "channel", "any"]
CapabilityEdgeType = Literal["DEPENDS_ON", "COMPOSED_WITH", "TAGGED_WITH", "SAME_CATEGORY"]

CAPABILITY_KINDS: tuple[str, ...] = ("tool", "skill", "extension", "channel")

# Edge types strong enough to pull a missing neighbor into a result set
STRUCTURAL_EDGE_TYPES: frozenset[str] = frozenset({"DEPENDS_ON", "COMPOSED_WITH"})


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Source references
# =============================================================================


class ToolSourceRef(_CamelModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["tool"] = "tool"
    tool_name: str


class SkillSourceRef(_CamelModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["skill"] = "skill"
    skill_name: str
    skill_path: str | None = None


class ExtensionSourceRef(_CamelModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["extension"] = "extension"
    package_name: str
    extension_id: str


class ChannelSourceRef(_CamelModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["channel"] = "channel"
    platform: str


class ManifestSourceRef(_CamelModel):
    model_config = ConfigDict(frozen=True)

    type: Literal["manifest"] = "manifest"
    manifest_path: str
    entry_id: str


CapabilitySourceRef = Annotated[
    Union[ToolSourceRef, SkillSourceRef, ExtensionSourceRef, ChannelSourceRef, ManifestSourceRef],
    Field(discriminator="type"),
]


# =============================================================================
# Capability descriptor
# =============================================================================


class CapabilityDescriptor(_CamelModel):
    """Unified representation of any capability in the system.

    ``id`` follows the ``{kind}:{name}`` convention (``tool:web-search``).
    ``description`` is the primary embedding input, so it should say when and
    why to use the capability, not only what it does.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    kind: CapabilityKind
    name: str = Field(min_length=1)
    display_name: str
    description: str
    category: str
    tags: list[str] = Field(default_factory=list)
    required_secrets: list[str] = Field(default_factory=list)
    required_tools: list[str] = Field(default_factory=list)
    available: bool = True
    has_side_effects: bool | None = None
    full_schema: dict[str, Any] | None = None
    full_content: str | None = None
    source_ref: CapabilitySourceRef


# =============================================================================
# Source records (one shape per source platform)
# =============================================================================


class ToolSource(_CamelModel):
    """Tool metadata as registered with the tool orchestrator."""

    id: str | None = None
    name: str = Field(min_length=1)
    display_name: str | None = None
    description: str
    category: str | None = None
    input_schema: dict[str, Any] | None = None
    output_schema: dict[str, Any] | None = None
    required_capabilities: list[str] = Field(default_factory=list)
    has_side_effects: bool | None = None


class SkillRequirements(_CamelModel):
    bins: list[str] = Field(default_factory=list)


class SkillMetadata(_CamelModel):
    primary_env: str | None = None
    requires: SkillRequirements | None = None


class SkillSource(_CamelModel):
    """A skill entry (SKILL.md frontmatter plus body)."""

    name: str = Field(min_length=1)
    description: str
    content: str | None = None
    display_name: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    required_secrets: list[str] | None = None
    required_tools: list[str] | None = None
    source_path: str | None = None
    metadata: SkillMetadata | None = None


class ExtensionSource(_CamelModel):
    """An extension catalog entry."""

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    display_name: str | None = None
    description: str
    category: str
    required_secrets: list[str] = Field(default_factory=list)
    available: bool | None = None


class ChannelSource(_CamelModel):
    """A communication channel definition."""

    platform: str = Field(min_length=1)
    display_name: str | None = None
    description: str
    tier: str | None = None
    capabilities: list[str] = Field(default_factory=list)


class CapabilityIndexSources(_CamelModel):
    """Input streams for building the index.

    Entries are validated one by one by the normalizer so that a single
    malformed record does not reject the whole batch.
    """

    tools: list[Any] | None = None
    skills: list[Any] | None = None
    extensions: list[Any] | None = None
    channels: list[Any] | None = None
    manifests: list[Any] | None = None

    def is_empty(self) -> bool:
        return not any((self.tools, self.skills, self.extensions, self.channels, self.manifests))


class DiscoveryQueryOptions(_CamelModel):
    """Per-call discovery options."""

    config: dict[str, Any] | None = None
    kind: CapabilityKindFilter | None = None
    category: str | None = None
    only_available: bool = False

    @field_validator("category")
    @classmethod
    def _blank_category_is_none(cls, v: str | None) -> str | None:
        return v or None


# =============================================================================
# Graph values
# =============================================================================


@dataclass(frozen=True)
class PresetCoOccurrence:
    """Capabilities suggested together by an agent preset."""

    preset_name: str
    capability_ids: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class CapabilityEdge:
    """A relationship between two capabilities (undirected for traversal)."""

    source_id: str
    target_id: str
    type: CapabilityEdgeType
    weight: float


@dataclass(frozen=True)
class RelatedCapability:
    id: str
    weight: float
    relation_type: CapabilityEdgeType


@dataclass
class Subgraph:
    nodes: list[str] = field(default_factory=list)
    edges: list[CapabilityEdge] = field(default_factory=list)


@dataclass
class RerankedResult:
    id: str
    score: float
    boosted: bool = False


# =============================================================================
# Search and discovery results
# =============================================================================


@dataclass(frozen=True)
class CapabilitySearchResult:
    descriptor: CapabilityDescriptor
    score: float


@dataclass(frozen=True)
class Tier1Result:
    capability: CapabilityDescriptor
    relevance_score: float
    summary_text: str


@dataclass(frozen=True)
class Tier2Result:
    capability: CapabilityDescriptor
    full_text: str


@dataclass(frozen=True)
class TokenEstimate:
    tier0_tokens: int = 0
    tier1_tokens: int = 0
    tier2_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class DiscoveryDiagnostics:
    query_time_ms: float = 0.0
    embedding_time_ms: float = 0.0
    graph_traversal_time_ms: float = 0.0
    candidates_scanned: int = 0
    capabilities_retrieved: int = 0


@dataclass(frozen=True)
class CapabilityDiscoveryResult:
    """Three-tier discovery context for one query. Recomputed per call."""

    tier0: str
    tier1: list[Tier1Result] = field(default_factory=list)
    tier2: list[Tier2Result] = field(default_factory=list)
    token_estimate: TokenEstimate = field(default_factory=TokenEstimate)
    diagnostics: DiscoveryDiagnostics = field(default_factory=DiscoveryDiagnostics)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready form (descriptors in their camelCase dict form)."""
        return {
            "tier0": self.tier0,
            "tier1": [
                {
                    "capability": r.capability.model_dump(by_alias=True, exclude_none=True),
                    "relevanceScore": r.relevance_score,
                    "summaryText": r.summary_text,
                }
                for r in self.tier1
            ],
            "tier2": [
                {
                    "capability": r.capability.model_dump(by_alias=True, exclude_none=True),
                    "fullText": r.full_text,
                }
                for r in self.tier2
            ],
            "tokenEstimate": asdict(self.token_estimate),
            "diagnostics": asdict(self.diagnostics),
        }


@dataclass(frozen=True)
class EngineStats:
    capability_count: int = 0
    graph_nodes: int = 0
    graph_edges: int = 0
    index_version: int = 0


__all__ = [
    "CAPABILITY_KINDS",
    "STRUCTURAL_EDGE_TYPES",
    "CapabilityDescriptor",
    "CapabilityDiscoveryResult",
    "CapabilityEdge",
    "CapabilityEdgeType",
    "CapabilityIndexSources",
    "CapabilityKind",
    "CapabilityKindFilter",
    "CapabilitySearchResult",
    "CapabilitySourceRef",
    "ChannelSource",
    "ChannelSourceRef",
    "DiscoveryDiagnostics",
    "DiscoveryQueryOptions",
    "EngineStats",
    "ExtensionSource",
    "ExtensionSourceRef",
    "ManifestSourceRef",
    "PresetCoOccurrence",
    "RelatedCapability",
    "RerankedResult",
    "SkillSource",
    "SkillSourceRef",
    "Subgraph",
    "TokenEstimate",
    "Tier1Result",
    "Tier2Result",
    "ToolSource",
    "ToolSourceRef",
]
