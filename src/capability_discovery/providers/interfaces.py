"""
interfaces.py - Protocol Definitions for Discovery Collaborators

Defines "what the engine needs" from an embedding provider and a vector
store, without binding to any backend. Implementations are injected into
CapabilityIndex / CapabilityDiscoveryEngine.
"""

from __future__ import annotations

from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

SimilarityMetric = Literal["cosine", "dotproduct", "euclidean"]

# Metadata filter: {field: scalar} for equality, or {field: {"$op": value}}
MetadataFilter = dict[str, Any]


class EmbeddingResponse(BaseModel):
    """Embeddings for a batch of texts, in input order."""

    embeddings: list[list[float]]
    usage: dict[str, Any] = Field(default_factory=dict)


class VectorDocument(BaseModel):
    """A document to store in a vector collection."""

    id: str
    embedding: list[float]
    metadata: dict[str, Any] | None = None
    text_content: str | None = None


class RetrievedVectorDocument(BaseModel):
    """A query hit; higher ``similarity_score`` is better."""

    id: str
    similarity_score: float
    metadata: dict[str, Any] | None = None
    text_content: str | None = None


class QueryResult(BaseModel):
    documents: list[RetrievedVectorDocument] = Field(default_factory=list)


class EmbeddingProvider(Protocol):
    """Interface for text embedding."""

    async def generate_embeddings(
        self,
        texts: str | list[str],
        model_id: str | None = None,
    ) -> EmbeddingResponse:
        """Embed one text or a batch; output order matches input order."""
        ...


class VectorStore(Protocol):
    """Interface for vector collection storage and similarity search."""

    async def create_collection(
        self,
        name: str,
        dimension: int,
        *,
        similarity_metric: SimilarityMetric = "cosine",
    ) -> None:
        """Create a collection with a fixed vector dimension."""
        ...

    async def collection_exists(self, name: str) -> bool:
        """Check whether a collection exists."""
        ...

    async def upsert(self, name: str, documents: list[VectorDocument]) -> None:
        """Insert or replace documents by id."""
        ...

    async def query(
        self,
        name: str,
        embedding: list[float],
        *,
        top_k: int,
        filter: MetadataFilter | None = None,
        include_metadata: bool = True,
    ) -> QueryResult:
        """Return up to ``top_k`` nearest documents, best first."""
        ...

    async def delete(self, name: str, ids: list[str]) -> None:
        """Delete documents by id; unknown ids are ignored."""
        ...


__all__ = [
    "EmbeddingProvider",
    "EmbeddingResponse",
    "MetadataFilter",
    "QueryResult",
    "RetrievedVectorDocument",
    "SimilarityMetric",
    "VectorDocument",
    "VectorStore",
]
