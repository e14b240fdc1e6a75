"""
capability_discovery - Semantic capability discovery for LLM agents

Indexes tools, skills, extensions and channels, re-ranks semantic matches over
a capability relationship graph, and assembles a three-tier, token-budgeted
context:

    Tier 0: category overview (always in context)
    Tier 1: ranked one-line summaries for the current query
    Tier 2: full schemas / instructions for the best matches

Usage:
    from capability_discovery import CapabilityDiscoveryEngine, InMemoryVectorStore

    engine = CapabilityDiscoveryEngine(embedding_provider, InMemoryVectorStore())
    await engine.initialize({"tools": tools, "skills": skills})
    result = await engine.discover("search the web")
    prompt_block = engine.render_for_prompt(result)
"""

from .assembler import CapabilityContextAssembler, estimate_tokens
from .config import DiscoveryConfig, configure_logging, get_logger, load_discovery_config
from .embedding_strategy import CapabilityEmbeddingStrategy
from .engine import CapabilityDiscoveryEngine
from .errors import (
    CollectionNotFoundError,
    ConfigurationError,
    DimensionMismatchError,
    DiscoveryError,
    DiscoveryErrorCode,
    EmbeddingError,
    ErrorCategory,
    ManifestError,
    VectorStoreError,
)
from .graph import CapabilityGraph
from .index import CapabilityIndex
from .manifest import CapabilityManifestScanner
from .normalizer import normalize_sources
from .providers import (
    EmbeddingProvider,
    EmbeddingResponse,
    InMemoryVectorStore,
    VectorDocument,
    VectorStore,
)
from .responses import ToolResponse
from .tool import DiscoverCapabilitiesTool, create_discover_capabilities_tool
from .types import (
    CapabilityDescriptor,
    CapabilityDiscoveryResult,
    CapabilityEdge,
    CapabilityIndexSources,
    CapabilitySearchResult,
    DiscoveryQueryOptions,
    PresetCoOccurrence,
    RelatedCapability,
    RerankedResult,
)

__version__ = "0.1.0"

__all__ = [
    "CapabilityContextAssembler",
    "CapabilityDescriptor",
    "CapabilityDiscoveryEngine",
    "CapabilityDiscoveryResult",
    "CapabilityEdge",
    "CapabilityEmbeddingStrategy",
    "CapabilityGraph",
    "CapabilityIndex",
    "CapabilityIndexSources",
    "CapabilityManifestScanner",
    "CapabilitySearchResult",
    "CollectionNotFoundError",
    "ConfigurationError",
    "DimensionMismatchError",
    "DiscoverCapabilitiesTool",
    "DiscoveryConfig",
    "DiscoveryError",
    "DiscoveryErrorCode",
    "DiscoveryQueryOptions",
    "EmbeddingError",
    "EmbeddingProvider",
    "EmbeddingResponse",
    "ErrorCategory",
    "InMemoryVectorStore",
    "ManifestError",
    "PresetCoOccurrence",
    "RelatedCapability",
    "RerankedResult",
    "ToolResponse",
    "VectorDocument",
    "VectorStore",
    "VectorStoreError",
    "configure_logging",
    "create_discover_capabilities_tool",
    "estimate_tokens",
    "get_logger",
    "load_discovery_config",
    "normalize_sources",
]
