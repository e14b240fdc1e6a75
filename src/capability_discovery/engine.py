"""
engine.py - Capability Discovery Engine

Coordinates the index, the relationship graph and the context assembler:

    query -> CapabilityIndex.search -> CapabilityGraph.rerank
          -> CapabilityContextAssembler.assemble -> CapabilityDiscoveryResult

Each initialize/refresh produces a new index generation (``index_version``).
The graph is rebuilt into a fresh instance and swapped in afterwards, so a
discover() in flight keeps the graph it started with.
"""

from __future__ import annotations

import time
from collections.abc import Iterable, Mapping
from typing import Any

from .assembler import CapabilityContextAssembler, estimate_tokens
from .config.logging import get_logger
from .config.settings import DiscoveryConfig, load_discovery_config
from .graph import CapabilityGraph
from .index import CapabilityIndex
from .normalizer import normalize_sources
from .providers.interfaces import EmbeddingProvider, VectorStore
from .types import (
    CapabilityDescriptor,
    CapabilityDiscoveryResult,
    CapabilityIndexSources,
    CapabilitySearchResult,
    DiscoveryQueryOptions,
    EngineStats,
    PresetCoOccurrence,
    TokenEstimate,
)

logger = get_logger("capability_discovery.engine")

NOT_INITIALIZED_TIER0 = "No capabilities indexed. Capability discovery is not initialized."


class CapabilityDiscoveryEngine:
    """Semantic capability discovery with graph re-ranking and tiered context."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_store: VectorStore,
        config: DiscoveryConfig | Mapping[str, Any] | None = None,
    ):
        if isinstance(config, DiscoveryConfig):
            self._config = config
        else:
            self._config = load_discovery_config(**dict(config or {}))

        self._index = CapabilityIndex(
            embedding_provider,
            vector_store,
            self._config.collection_name,
            self._config.embedding_model_id,
        )
        self._graph = CapabilityGraph()
        self._assembler = CapabilityContextAssembler(self._index.strategy)
        self._presets: list[PresetCoOccurrence] = []
        self._index_version = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def initialize(
        self,
        sources: CapabilityIndexSources | Mapping[str, Any] | None,
        preset_co_occurrences: Iterable[PresetCoOccurrence] | None = None,
    ) -> None:
        """Build the index and graph from all sources (full rebuild)."""
        presets = list(preset_co_occurrences or [])
        capabilities = await self._index.build_index(sources)

        graph = CapabilityGraph()
        graph.build_graph(capabilities, presets)

        self._graph = graph
        self._presets = presets
        self._index_version += 1
        self._assembler.invalidate_cache()

        logger.info(
            "Capability discovery initialized",
            capabilities=len(capabilities),
            graph_nodes=graph.node_count(),
            graph_edges=graph.edge_count(),
            index_version=self._index_version,
        )

    async def refresh_index(
        self,
        sources: CapabilityIndexSources | Mapping[str, Any] | None = None,
    ) -> None:
        """Add or replace capabilities without a full rebuild.

        Additive: capabilities missing from ``sources`` stay indexed. The graph
        is rebuilt over the whole table with the presets from initialize().
        """
        if sources is None:
            return
        if not isinstance(sources, CapabilityIndexSources):
            sources = CapabilityIndexSources.model_validate(dict(sources))
        if sources.is_empty():
            return

        descriptors = normalize_sources(sources)
        await self._index.upsert_capabilities(descriptors)

        graph = CapabilityGraph()
        graph.build_graph(self._index.get_all_capabilities(), self._presets)

        self._graph = graph
        self._index_version += 1
        self._assembler.invalidate_cache()

        logger.info(
            "Capability index refreshed",
            upserted=len(descriptors),
            capabilities=self._index.size(),
            index_version=self._index_version,
        )

    # =========================================================================
    # Discovery
    # =========================================================================

    async def discover(
        self,
        query: str,
        options: DiscoveryQueryOptions | Mapping[str, Any] | None = None,
    ) -> CapabilityDiscoveryResult:
        """Tiered discovery context for ``query``.

        Before initialize() this returns a "not initialized" result instead of
        raising. Embedding and vector store failures propagate.
        """
        graph = self._graph
        version = self._index_version
        table = self._index.snapshot()
        if version == 0:
            return self._not_initialized_result()

        if options is None:
            options = DiscoveryQueryOptions()
        elif not isinstance(options, DiscoveryQueryOptions):
            options = DiscoveryQueryOptions.model_validate(dict(options))

        config = self._config.merged(options.config)

        embedding_start = time.perf_counter()
        search_results = await self._index.search(
            query,
            config.tier1_top_k * 2,
            {
                "kind": options.kind,
                "category": options.category,
                "only_available": options.only_available,
            },
        )
        embedding_time_ms = (time.perf_counter() - embedding_start) * 1000

        final_results = search_results
        graph_time_ms = 0.0
        if config.use_graph_reranking and search_results:
            graph_start = time.perf_counter()
            reranked = graph.rerank(
                [{"id": r.descriptor.id, "score": r.score} for r in search_results],
                config.graph_boost_factor,
            )
            final_results = [
                CapabilitySearchResult(descriptor=table[r.id], score=r.score)
                for r in reranked
                if r.id in table
            ]
            graph_time_ms = (time.perf_counter() - graph_start) * 1000

        tier0 = self._assembler.build_tier0(list(table.values()), version)
        result = self._assembler.assemble(
            tier0,
            final_results,
            config,
            {"embedding_time_ms": embedding_time_ms, "graph_traversal_time_ms": graph_time_ms},
        )

        logger.debug(
            "Discovery complete",
            candidates=len(search_results),
            tier1=len(result.tier1),
            tier2=len(result.tier2),
            total_tokens=result.token_estimate.total_tokens,
            embedding_ms=round(embedding_time_ms, 2),
            graph_ms=round(graph_time_ms, 2),
        )
        return result

    def _not_initialized_result(self) -> CapabilityDiscoveryResult:
        tokens = estimate_tokens(NOT_INITIALIZED_TIER0)
        return CapabilityDiscoveryResult(
            tier0=NOT_INITIALIZED_TIER0,
            token_estimate=TokenEstimate(tier0_tokens=tokens, total_tokens=tokens),
        )

    def render_for_prompt(self, result: CapabilityDiscoveryResult) -> str:
        return self._assembler.render_for_prompt(result)

    # =========================================================================
    # Accessors
    # =========================================================================

    def get_capability_detail(self, capability_id: str) -> CapabilityDescriptor | None:
        return self._index.get_capability(capability_id)

    def list_capability_ids(self) -> list[str]:
        return self._index.list_ids()

    def is_initialized(self) -> bool:
        return self._index_version > 0

    def get_stats(self) -> EngineStats:
        return EngineStats(
            capability_count=self._index.size(),
            graph_nodes=self._graph.node_count(),
            graph_edges=self._graph.edge_count(),
            index_version=self._index_version,
        )

    @property
    def config(self) -> DiscoveryConfig:
        return self._config

    @property
    def index_version(self) -> int:
        return self._index_version

    @property
    def graph(self) -> CapabilityGraph:
        return self._graph


__all__ = ["NOT_INITIALIZED_TIER0", "CapabilityDiscoveryEngine"]
