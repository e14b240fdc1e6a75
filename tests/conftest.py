"""Shared fixtures: deterministic embeddings and an in-memory vector store."""

from __future__ import annotations

import hashlib
import math
import re

import pytest

from capability_discovery.config.settings import Settings
from capability_discovery.providers import EmbeddingResponse, InMemoryVectorStore

_TOKEN = re.compile(r"[a-z0-9]+")


class HashingEmbeddingProvider:
    """Bag-of-words hashing embedder.

    Texts sharing words get positive cosine similarity; identical texts score
    1.0. Records every call for assertions.
    """

    def __init__(self, dimension: int = 256):
        self.dimension = dimension
        self.calls: list[list[str]] = []

    def embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dimension
        for token in _TOKEN.findall(text.lower()):
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            vector[int.from_bytes(digest[:4], "big") % self.dimension] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        return [v / norm for v in vector] if norm else vector

    async def generate_embeddings(self, texts, model_id=None) -> EmbeddingResponse:
        batch = [texts] if isinstance(texts, str) else list(texts)
        self.calls.append(batch)
        return EmbeddingResponse(
            embeddings=[self.embed(t) for t in batch],
            usage={"total_tokens": sum(len(t.split()) for t in batch)},
        )


@pytest.fixture
def embedder() -> HashingEmbeddingProvider:
    return HashingEmbeddingProvider()


@pytest.fixture
def store() -> InMemoryVectorStore:
    return InMemoryVectorStore()


@pytest.fixture
def sample_sources() -> dict:
    return {
        "tools": [
            {
                "name": "web-search",
                "displayName": "Web Search",
                "description": "Search the web for current information and news",
                "category": "information",
                "inputSchema": {
                    "type": "object",
                    "properties": {
                        "query": {"type": "string", "description": "Search query"},
                        "max_results": {"type": "number", "default": 5},
                    },
                    "required": ["query"],
                },
            },
            {
                "name": "gh",
                "description": "GitHub command line for issues and pull requests",
                "category": "developer-tools",
            },
            {
                "name": "git",
                "description": "Version control operations: commit, diff, log",
                "category": "developer-tools",
            },
        ],
        "skills": [
            {
                "name": "github",
                "description": "Manage GitHub issues, pull requests and releases",
                "category": "developer-tools",
                "tags": ["github", "code-review", "issues"],
                "requiredTools": ["gh"],
                "content": "# GitHub\nUse gh to manage repositories.",
            },
            {
                "name": "code-review",
                "description": "Review pull requests and suggest code changes",
                "category": "developer-tools",
                "tags": ["github", "code-review"],
            },
            {
                "name": "weather",
                "description": "Look up the weather forecast for a city",
                "category": "information",
                "tags": ["weather"],
            },
        ],
        "channels": [
            {
                "platform": "discord",
                "displayName": "Discord",
                "description": "Send and receive Discord messages",
                "capabilities": ["text", "threads"],
            },
        ],
    }


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Point settings at an empty temp location and reset the singleton."""
    monkeypatch.setenv("CAPABILITY_DISCOVERY_CONFIG", str(tmp_path / "no-settings.yaml"))
    monkeypatch.delenv("CAPABILITY_DISCOVERY_DIRS", raising=False)
    Settings().reload()
    yield
    Settings().reload()
