"""Tests for the in-memory vector store and metadata filters."""

from __future__ import annotations

import pytest

from capability_discovery.errors import (
    CollectionNotFoundError,
    DimensionMismatchError,
    VectorStoreError,
)
from capability_discovery.providers import InMemoryVectorStore, VectorDocument, matches_filter


def doc(doc_id: str, embedding: list[float], **metadata) -> VectorDocument:
    return VectorDocument(id=doc_id, embedding=embedding, metadata=metadata or None)


class TestMatchesFilter:
    META = {"kind": "tool", "count": 3, "tags": ["a", "b"], "title": "Web Search", "on": True}

    @pytest.mark.parametrize(
        "flt,expected",
        [
            ({"kind": "tool"}, True),
            ({"kind": "skill"}, False),
            ({"kind": {"$eq": "tool"}}, True),
            ({"kind": {"$ne": "tool"}}, False),
            ({"count": {"$gt": 2, "$lte": 3}}, True),
            ({"count": {"$lt": 3}}, False),
            ({"title": {"$gt": 1}}, False),
            ({"kind": {"$in": ["tool", "skill"]}}, True),
            ({"kind": {"$nin": ["tool"]}}, False),
            ({"missing": {"$exists": False}}, True),
            ({"kind": {"$exists": True}}, True),
            ({"tags": {"$contains": "a"}}, True),
            ({"title": {"$contains": "Search"}}, True),
            ({"count": {"$contains": 3}}, False),
            ({"tags": {"$all": ["a", "b"]}}, True),
            ({"tags": {"$all": ["a", "c"]}}, False),
            ({"title": {"$textSearch": "web"}}, True),
            ({"title": {"$textSearch": "image"}}, False),
            ({"on": True}, True),
            ({"missing": "x"}, False),
        ],
    )
    def test_operators(self, flt, expected):
        assert matches_filter(self.META, flt) is expected

    def test_no_metadata_never_matches(self):
        assert matches_filter(None, {"kind": "tool"}) is False

    def test_unknown_operator_raises(self):
        with pytest.raises(VectorStoreError):
            matches_filter(self.META, {"kind": {"$regex": "t.*"}})


class TestInMemoryVectorStore:
    @pytest.mark.asyncio
    async def test_query_orders_by_cosine(self, store):
        await store.create_collection("c", 2)
        await store.upsert(
            "c",
            [doc("x", [1.0, 0.0]), doc("y", [0.0, 1.0]), doc("z", [1.0, 1.0])],
        )
        result = await store.query("c", [1.0, 0.1], top_k=2)
        assert [d.id for d in result.documents] == ["x", "z"]
        assert result.documents[0].similarity_score > result.documents[1].similarity_score

    @pytest.mark.asyncio
    async def test_query_with_filter(self, store):
        await store.create_collection("c", 2)
        await store.upsert(
            "c",
            [doc("x", [1.0, 0.0], kind="tool"), doc("y", [0.9, 0.1], kind="skill")],
        )
        result = await store.query("c", [1.0, 0.0], top_k=5, filter={"kind": "skill"})
        assert [d.id for d in result.documents] == ["y"]

    @pytest.mark.asyncio
    async def test_upsert_replaces_and_delete_removes(self, store):
        await store.create_collection("c", 2)
        await store.upsert("c", [doc("x", [1.0, 0.0])])
        await store.upsert("c", [doc("x", [0.0, 1.0])])
        assert store.count("c") == 1
        await store.delete("c", ["x", "unknown"])
        assert store.count("c") == 0

    @pytest.mark.asyncio
    async def test_dimension_mismatch(self, store):
        await store.create_collection("c", 3)
        with pytest.raises(DimensionMismatchError) as exc_info:
            await store.upsert("c", [doc("x", [1.0, 0.0])])
        assert exc_info.value.details == {"collection": "c", "expected": 3, "got": 2}
        with pytest.raises(DimensionMismatchError):
            await store.query("c", [1.0], top_k=1)

    @pytest.mark.asyncio
    async def test_unknown_collection(self, store):
        assert not await store.collection_exists("nope")
        with pytest.raises(CollectionNotFoundError):
            await store.query("nope", [1.0], top_k=1)

    @pytest.mark.asyncio
    async def test_create_collection_is_idempotent(self, store):
        await store.create_collection("c", 2)
        await store.create_collection("c", 2)
        assert await store.collection_exists("c")
        with pytest.raises(DimensionMismatchError):
            await store.create_collection("c", 4)

    @pytest.mark.asyncio
    async def test_euclidean_metric(self, store):
        await store.create_collection("e", 2, similarity_metric="euclidean")
        await store.upsert("e", [doc("near", [1.0, 1.0]), doc("far", [5.0, 5.0])])
        result = await store.query("e", [0.0, 0.0], top_k=2)
        assert [d.id for d in result.documents] == ["near", "far"]

    @pytest.mark.asyncio
    async def test_drop_collection(self, store):
        await store.create_collection("d", 2)
        await store.upsert("d", [doc("a", [1.0, 0.0])])
        await store.drop_collection("d")
        assert not await store.collection_exists("d")
        await store.drop_collection("d")
