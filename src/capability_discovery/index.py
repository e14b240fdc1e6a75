"""
index.py - The Capability Index

Normalizes source records into CapabilityDescriptors, embeds them through the
injected EmbeddingProvider and stores the vectors in the injected VectorStore.
Keeps an in-memory descriptor table for id lookup and tier building.

The table is copy-on-write: every mutation builds a new dict and swaps it in,
so a reader holding the previous table keeps a consistent view.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from .config.logging import get_logger
from .embedding_strategy import CapabilityEmbeddingStrategy
from .errors import DiscoveryErrorCode, EmbeddingError
from .normalizer import normalize_sources
from .providers.interfaces import EmbeddingProvider, MetadataFilter, VectorDocument, VectorStore
from .types import (
    CapabilityDescriptor,
    CapabilityIndexSources,
    CapabilityKindFilter,
    CapabilitySearchResult,
)

logger = get_logger("capability_discovery.index")


def build_search_filter(
    kind: CapabilityKindFilter | None = None,
    category: str | None = None,
    only_available: bool = False,
) -> MetadataFilter | None:
    """Translate discovery filters into a vector store metadata filter."""
    conditions: MetadataFilter = {}
    if kind and kind != "any":
        conditions["kind"] = kind
    if category:
        conditions["category"] = category
    if only_available:
        conditions["available"] = True
    return conditions or None


class CapabilityIndex:
    """Vector index over capability descriptors."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_store: VectorStore,
        collection_name: str,
        embedding_model_id: str | None = None,
        strategy: CapabilityEmbeddingStrategy | None = None,
    ):
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._collection_name = collection_name
        self._embedding_model_id = embedding_model_id
        self._strategy = strategy or CapabilityEmbeddingStrategy()
        self._descriptors: dict[str, CapabilityDescriptor] = {}
        self._built = False

    # =========================================================================
    # Build / mutate
    # =========================================================================

    async def build_index(
        self,
        sources: CapabilityIndexSources | Mapping[str, Any] | None,
    ) -> list[CapabilityDescriptor]:
        """Normalize all sources and index them.

        Replaces the descriptor table wholesale. Returns the indexed
        descriptors (duplicate ids collapsed, last one wins).
        """
        descriptors = normalize_sources(sources)

        table: dict[str, CapabilityDescriptor] = {}
        for cap in descriptors:
            table[cap.id] = cap
        if table:
            await self._embed_and_store(list(table.values()))
        stale = [cid for cid in self._descriptors if cid not in table]
        if stale and await self._vector_store.collection_exists(self._collection_name):
            await self._vector_store.delete(self._collection_name, stale)

        # Swap only after the backend calls succeed
        self._descriptors = table
        self._built = True
        logger.info(
            "Capability index built",
            capabilities=len(table),
            collection=self._collection_name,
        )
        return list(table.values())

    async def upsert_capability(self, capability: CapabilityDescriptor) -> None:
        await self.upsert_capabilities([capability])

    async def upsert_capabilities(self, capabilities: Iterable[CapabilityDescriptor]) -> None:
        """Embed and upsert descriptors in one batch, replacing existing ids."""
        batch: dict[str, CapabilityDescriptor] = {}
        for cap in capabilities:
            batch[cap.id] = cap
        if not batch:
            return

        await self._embed_and_store(list(batch.values()))
        self._descriptors = {**self._descriptors, **batch}
        logger.debug("Upserted capabilities", count=len(batch))

    async def remove_capability(self, capability_id: str) -> None:
        if capability_id not in self._descriptors:
            return
        if await self._vector_store.collection_exists(self._collection_name):
            await self._vector_store.delete(self._collection_name, [capability_id])
        table = dict(self._descriptors)
        del table[capability_id]
        self._descriptors = table
        logger.debug("Removed capability", id=capability_id)

    async def _embed_and_store(self, capabilities: list[CapabilityDescriptor]) -> None:
        texts = [self._strategy.build_embedding_text(cap) for cap in capabilities]
        response = await self._embedding_provider.generate_embeddings(
            texts, self._embedding_model_id
        )
        embeddings = response.embeddings
        if len(embeddings) != len(texts):
            raise EmbeddingError(
                f"Embedding count mismatch: expected {len(texts)}, got {len(embeddings)}",
                code=DiscoveryErrorCode.EMBEDDING_FAILED,
                details={"expected": len(texts), "got": len(embeddings)},
            )

        if not await self._vector_store.collection_exists(self._collection_name):
            await self._vector_store.create_collection(
                self._collection_name,
                len(embeddings[0]),
                similarity_metric="cosine",
            )

        documents = [
            VectorDocument(
                id=cap.id,
                embedding=list(embedding),
                metadata={
                    "kind": cap.kind,
                    "name": cap.name,
                    "category": cap.category,
                    "available": cap.available,
                },
                text_content=text,
            )
            for cap, text, embedding in zip(capabilities, texts, embeddings)
        ]
        await self._vector_store.upsert(self._collection_name, documents)

    # =========================================================================
    # Search
    # =========================================================================

    async def search(
        self,
        query: str,
        top_k: int,
        filters: Mapping[str, Any] | None = None,
    ) -> list[CapabilitySearchResult]:
        """Semantic search over indexed capabilities.

        Args:
            query: Natural-language query
            top_k: Maximum number of hits requested from the vector store
            filters: Optional ``kind`` / ``category`` / ``only_available``

        Returns:
            Hits mapped to descriptors, best first. Ids no longer in the table
            are dropped.
        """
        if not self._built or not self._descriptors:
            return []

        filters = filters or {}
        metadata_filter = build_search_filter(
            kind=filters.get("kind"),
            category=filters.get("category"),
            only_available=bool(filters.get("only_available", False)),
        )

        response = await self._embedding_provider.generate_embeddings(
            query, self._embedding_model_id
        )
        if not response.embeddings:
            raise EmbeddingError(
                "Embedding provider returned no vector for the query",
                details={"query": query},
            )

        result = await self._vector_store.query(
            self._collection_name,
            response.embeddings[0],
            top_k=top_k,
            filter=metadata_filter,
            include_metadata=True,
        )

        table = self._descriptors
        hits: list[CapabilitySearchResult] = []
        for doc in result.documents:
            descriptor = table.get(doc.id)
            if descriptor is not None:
                hits.append(CapabilitySearchResult(descriptor=descriptor, score=doc.similarity_score))
        return hits

    # =========================================================================
    # Accessors
    # =========================================================================

    def get_capability(self, capability_id: str) -> CapabilityDescriptor | None:
        return self._descriptors.get(capability_id)

    def get_all_capabilities(self) -> list[CapabilityDescriptor]:
        return list(self._descriptors.values())

    def list_ids(self) -> list[str]:
        return list(self._descriptors.keys())

    def snapshot(self) -> Mapping[str, CapabilityDescriptor]:
        """Read-only view of the current descriptor table."""
        return MappingProxyType(self._descriptors)

    def get_by_category(self) -> dict[str, list[CapabilityDescriptor]]:
        """Descriptors grouped by category, in table order."""
        groups: dict[str, list[CapabilityDescriptor]] = {}
        for cap in self._descriptors.values():
            groups.setdefault(cap.category, []).append(cap)
        return groups

    def is_built(self) -> bool:
        return self._built

    def size(self) -> int:
        return len(self._descriptors)

    @property
    def strategy(self) -> CapabilityEmbeddingStrategy:
        return self._strategy

    @property
    def collection_name(self) -> str:
        return self._collection_name


__all__ = ["CapabilityIndex", "build_search_filter"]
