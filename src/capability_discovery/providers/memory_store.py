"""
memory_store.py - In-memory vector store

Brute-force similarity search over process-local collections. Suitable for
tests, the CLI and small capability sets (hundreds of entries); swap in a real
ANN backend through the VectorStore protocol for anything larger.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from ..config.logging import get_logger
from ..errors import CollectionNotFoundError, DimensionMismatchError, VectorStoreError
from .interfaces import (
    MetadataFilter,
    QueryResult,
    RetrievedVectorDocument,
    SimilarityMetric,
    VectorDocument,
)

logger = get_logger("capability_discovery.providers.memory_store")

_MISSING = object()


@dataclass
class _Collection:
    dimension: int
    metric: SimilarityMetric
    documents: dict[str, VectorDocument] = field(default_factory=dict)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (norm_a * norm_b)


def _similarity(metric: SimilarityMetric, a: Sequence[float], b: Sequence[float]) -> float:
    if metric == "cosine":
        return cosine_similarity(a, b)
    if metric == "dotproduct":
        return sum(x * y for x, y in zip(a, b))
    # euclidean: negated distance so higher is better
    return -math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _matches_condition(value: Any, condition: dict[str, Any]) -> bool:
    for op, operand in condition.items():
        if op == "$eq":
            if value is _MISSING or value != operand:
                return False
        elif op == "$ne":
            if value is not _MISSING and value == operand:
                return False
        elif op in ("$gt", "$gte", "$lt", "$lte"):
            if not _is_number(value):
                return False
            if op == "$gt" and not value > operand:
                return False
            if op == "$gte" and not value >= operand:
                return False
            if op == "$lt" and not value < operand:
                return False
            if op == "$lte" and not value <= operand:
                return False
        elif op == "$in":
            if value is _MISSING or value not in operand:
                return False
        elif op == "$nin":
            if value is not _MISSING and value in operand:
                return False
        elif op == "$exists":
            exists = value is not _MISSING and value is not None
            if bool(operand) != exists:
                return False
        elif op == "$contains":
            if isinstance(value, list):
                if operand not in value:
                    return False
            elif isinstance(value, str):
                if str(operand) not in value:
                    return False
            else:
                return False
        elif op == "$all":
            if not isinstance(value, list):
                return False
            if any(item not in value for item in operand):
                return False
        elif op == "$textSearch":
            if not isinstance(value, str) or str(operand).lower() not in value.lower():
                return False
        else:
            raise VectorStoreError(
                f"Unsupported metadata filter operator: {op}",
                details={"operator": op},
            )
    return True


def matches_filter(metadata: dict[str, Any] | None, filter: MetadataFilter) -> bool:
    """Evaluate a metadata filter.

    ``{field: scalar}`` means equality; ``{field: {"$op": value, ...}}`` applies
    every operator. Documents without metadata never match a filter.
    """
    if metadata is None:
        return False
    for key, condition in filter.items():
        value = metadata.get(key, _MISSING)
        if isinstance(condition, dict):
            if not _matches_condition(value, condition):
                return False
        elif value is _MISSING or value != condition:
            return False
    return True


class InMemoryVectorStore:
    """Process-local VectorStore implementation."""

    def __init__(self) -> None:
        self._collections: dict[str, _Collection] = {}

    def _get(self, name: str) -> _Collection:
        collection = self._collections.get(name)
        if collection is None:
            raise CollectionNotFoundError(
                f"Collection '{name}' does not exist",
                details={"collection": name},
            )
        return collection

    @staticmethod
    def _check_dimension(collection: _Collection, name: str, vector: Sequence[float]) -> None:
        if len(vector) != collection.dimension:
            raise DimensionMismatchError(
                f"Vector dimension {len(vector)} does not match collection "
                f"'{name}' dimension {collection.dimension}",
                details={
                    "collection": name,
                    "expected": collection.dimension,
                    "got": len(vector),
                },
            )

    async def create_collection(
        self,
        name: str,
        dimension: int,
        *,
        similarity_metric: SimilarityMetric = "cosine",
    ) -> None:
        if dimension <= 0:
            raise VectorStoreError(
                f"Collection dimension must be positive, got {dimension}",
                details={"collection": name, "dimension": dimension},
            )
        existing = self._collections.get(name)
        if existing is not None:
            if existing.dimension != dimension:
                raise DimensionMismatchError(
                    f"Collection '{name}' already exists with dimension {existing.dimension}",
                    details={"collection": name, "expected": existing.dimension, "got": dimension},
                )
            return
        self._collections[name] = _Collection(dimension=dimension, metric=similarity_metric)
        logger.debug("Created collection", collection=name, dimension=dimension)

    async def collection_exists(self, name: str) -> bool:
        return name in self._collections

    async def drop_collection(self, name: str) -> None:
        self._collections.pop(name, None)

    async def upsert(self, name: str, documents: list[VectorDocument]) -> None:
        collection = self._get(name)
        for doc in documents:
            self._check_dimension(collection, name, doc.embedding)
        for doc in documents:
            collection.documents[doc.id] = doc

    async def query(
        self,
        name: str,
        embedding: list[float],
        *,
        top_k: int,
        filter: MetadataFilter | None = None,
        include_metadata: bool = True,
    ) -> QueryResult:
        collection = self._get(name)
        self._check_dimension(collection, name, embedding)
        if top_k <= 0:
            return QueryResult()

        hits: list[RetrievedVectorDocument] = []
        for doc in collection.documents.values():
            if filter and not matches_filter(doc.metadata, filter):
                continue
            hits.append(
                RetrievedVectorDocument(
                    id=doc.id,
                    similarity_score=_similarity(collection.metric, embedding, doc.embedding),
                    metadata=doc.metadata if include_metadata else None,
                    text_content=doc.text_content,
                )
            )

        hits.sort(key=lambda h: h.similarity_score, reverse=True)
        return QueryResult(documents=hits[:top_k])

    async def delete(self, name: str, ids: list[str]) -> None:
        collection = self._get(name)
        for doc_id in ids:
            collection.documents.pop(doc_id, None)

    def count(self, name: str) -> int:
        return len(self._get(name).documents)


__all__ = [
    "InMemoryVectorStore",
    "cosine_similarity",
    "matches_filter",
]
