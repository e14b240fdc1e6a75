"""Embedding provider and vector store collaborators."""

from .interfaces import (
    EmbeddingProvider,
    EmbeddingResponse,
    MetadataFilter,
    QueryResult,
    RetrievedVectorDocument,
    SimilarityMetric,
    VectorDocument,
    VectorStore,
)
from .memory_store import InMemoryVectorStore, matches_filter

__all__ = [
    "EmbeddingProvider",
    "EmbeddingResponse",
    "InMemoryVectorStore",
    "MetadataFilter",
    "QueryResult",
    "RetrievedVectorDocument",
    "SimilarityMetric",
    "VectorDocument",
    "VectorStore",
    "matches_filter",
]
