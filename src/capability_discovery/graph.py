"""
Capability relationship graph for associative re-ranking.

Builds an undirected, weighted graph over capability ids from metadata, not
from LLM extraction, and uses it to adjust semantic search scores:

- DEPENDS_ON (1.0): a capability lists ``T`` in requiredTools and ``tool:T`` exists
- COMPOSED_WITH (0.5): both capabilities appear in the same agent preset
- TAGGED_WITH (0.3 per shared tag): at least two shared tags
- SAME_CATEGORY (0.1): same (kind, category) group of 2..8 members

The graph is simple: one edge per unordered pair. When several signals connect
a pair, the strictly heavier one wins and ties keep the earlier signal.

Storage is an adjacency map ``{id -> {neighbor_id -> CapabilityEdge}}``; both
directions point at the same edge object.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from itertools import combinations
from typing import Any

from .config.logging import get_logger
from .types import (
    STRUCTURAL_EDGE_TYPES,
    CapabilityDescriptor,
    CapabilityEdge,
    CapabilityEdgeType,
    PresetCoOccurrence,
    RelatedCapability,
    RerankedResult,
    Subgraph,
)

logger = get_logger("capability_discovery.graph")

DEPENDS_ON_WEIGHT = 1.0
COMPOSED_WITH_WEIGHT = 0.5
TAG_OVERLAP_WEIGHT = 0.3
SAME_CATEGORY_WEIGHT = 0.1

# Minimum distinct shared tags for a TAGGED_WITH edge
MIN_TAG_OVERLAP = 2
# Category groups outside this size range get no SAME_CATEGORY edges
MIN_CATEGORY_GROUP = 2
MAX_CATEGORY_GROUP = 8


def _pair_key(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


class CapabilityGraph:
    """Undirected relationship graph over capability ids."""

    def __init__(self) -> None:
        self._adjacency: dict[str, dict[str, CapabilityEdge]] = {}
        self._edge_count = 0

    # =========================================================================
    # Build
    # =========================================================================

    def build_graph(
        self,
        capabilities: Sequence[CapabilityDescriptor],
        preset_co_occurrences: Iterable[PresetCoOccurrence] | None = None,
    ) -> None:
        """Rebuild the graph from scratch.

        Passes run in a fixed order (nodes, dependencies, presets, tags,
        categories) so the result only depends on the input order.
        """
        self.clear()

        for cap in capabilities:
            self._adjacency.setdefault(cap.id, {})

        for cap in capabilities:
            for tool_name in cap.required_tools:
                self._upsert_edge(cap.id, f"tool:{tool_name}", "DEPENDS_ON", DEPENDS_ON_WEIGHT)

        for preset in preset_co_occurrences or []:
            members = [cid for cid in dict.fromkeys(preset.capability_ids) if cid in self._adjacency]
            for a, b in combinations(members, 2):
                self._upsert_edge(a, b, "COMPOSED_WITH", COMPOSED_WITH_WEIGHT)

        self._add_tag_edges(capabilities)
        self._add_category_edges(capabilities)

        logger.debug(
            "Capability graph built",
            nodes=self.node_count(),
            edges=self.edge_count(),
        )

    def _add_tag_edges(self, capabilities: Sequence[CapabilityDescriptor]) -> None:
        tag_index: dict[str, list[str]] = {}
        for cap in capabilities:
            for tag in dict.fromkeys(cap.tags):
                members = tag_index.setdefault(tag, [])
                if cap.id not in members:
                    members.append(cap.id)

        overlaps: dict[tuple[str, str], int] = {}
        for members in tag_index.values():
            for a, b in combinations(members, 2):
                key = _pair_key(a, b)
                overlaps[key] = overlaps.get(key, 0) + 1

        for (a, b), count in overlaps.items():
            if count >= MIN_TAG_OVERLAP:
                self._upsert_edge(a, b, "TAGGED_WITH", round(TAG_OVERLAP_WEIGHT * count, 10))

    def _add_category_edges(self, capabilities: Sequence[CapabilityDescriptor]) -> None:
        groups: dict[tuple[str, str], list[str]] = {}
        for cap in capabilities:
            members = groups.setdefault((cap.kind, cap.category), [])
            if cap.id not in members:
                members.append(cap.id)

        for members in groups.values():
            if MIN_CATEGORY_GROUP <= len(members) <= MAX_CATEGORY_GROUP:
                for a, b in combinations(members, 2):
                    self._upsert_edge(a, b, "SAME_CATEGORY", SAME_CATEGORY_WEIGHT)

    def _upsert_edge(
        self,
        source: str,
        target: str,
        edge_type: CapabilityEdgeType,
        weight: float,
    ) -> None:
        if source == target:
            return
        if source not in self._adjacency or target not in self._adjacency:
            return

        existing = self._adjacency[source].get(target)
        if existing is not None and weight <= existing.weight:
            return

        edge = CapabilityEdge(source_id=source, target_id=target, type=edge_type, weight=weight)
        if existing is None:
            self._edge_count += 1
        self._adjacency[source][target] = edge
        self._adjacency[target][source] = edge

    # =========================================================================
    # Query
    # =========================================================================

    def get_related(self, capability_id: str) -> list[RelatedCapability]:
        """One-hop neighbors, heaviest first. Unknown ids have none."""
        neighbors = self._adjacency.get(capability_id)
        if not neighbors:
            return []
        related = [
            RelatedCapability(id=nid, weight=edge.weight, relation_type=edge.type)
            for nid, edge in neighbors.items()
        ]
        related.sort(key=lambda r: r.weight, reverse=True)
        return related

    def get_subgraph(self, capability_ids: Iterable[str]) -> Subgraph:
        """Induced subgraph over the ids that exist in the graph."""
        nodes = [cid for cid in dict.fromkeys(capability_ids) if cid in self._adjacency]
        node_set = set(nodes)

        edges: list[CapabilityEdge] = []
        seen: set[tuple[str, str]] = set()
        for node in nodes:
            for neighbor, edge in self._adjacency[node].items():
                if neighbor not in node_set:
                    continue
                key = _pair_key(node, neighbor)
                if key in seen:
                    continue
                seen.add(key)
                edges.append(edge)
        return Subgraph(nodes=nodes, edges=edges)

    def rerank(
        self,
        search_results: Sequence[Any],
        graph_boost_factor: float,
    ) -> list[RerankedResult]:
        """Diffuse relevance across edges.

        Related capabilities that were both retrieved reinforce each other by
        ``factor * weight``. A neighbor that was not retrieved is admitted only
        over a structural edge (DEPENDS_ON, COMPOSED_WITH), scored
        ``original_score * factor * weight``.

        Args:
            search_results: Items with ``id`` and ``score`` (attributes or keys)
            graph_boost_factor: Scale for every boost

        Returns:
            Results sorted by score descending (stable for ties).
        """
        working: dict[str, RerankedResult] = {}
        originals: list[tuple[str, float]] = []
        for item in search_results:
            rid, score = _id_and_score(item)
            working[rid] = RerankedResult(id=rid, score=score, boosted=False)
            originals.append((rid, score))

        for rid, original_score in originals:
            for rel in self.get_related(rid):
                neighbor = working.get(rel.id)
                if neighbor is not None:
                    neighbor.score += graph_boost_factor * rel.weight
                    neighbor.boosted = True
                    working[rid].boosted = True
                elif rel.relation_type in STRUCTURAL_EDGE_TYPES:
                    working[rel.id] = RerankedResult(
                        id=rel.id,
                        score=original_score * graph_boost_factor * rel.weight,
                        boosted=True,
                    )

        return sorted(working.values(), key=lambda r: r.score, reverse=True)

    # =========================================================================
    # Accessors
    # =========================================================================

    def has_node(self, capability_id: str) -> bool:
        return capability_id in self._adjacency

    def node_count(self) -> int:
        return len(self._adjacency)

    def edge_count(self) -> int:
        return self._edge_count

    def edges(self) -> list[CapabilityEdge]:
        """All edges, each unordered pair once."""
        return self.get_subgraph(self._adjacency.keys()).edges

    def clear(self) -> None:
        self._adjacency = {}
        self._edge_count = 0


def _id_and_score(item: Any) -> tuple[str, float]:
    if isinstance(item, dict):
        return str(item["id"]), float(item["score"])
    descriptor = getattr(item, "descriptor", None)
    if descriptor is not None:
        return descriptor.id, float(item.score)
    return str(item.id), float(item.score)


__all__ = [
    "COMPOSED_WITH_WEIGHT",
    "DEPENDS_ON_WEIGHT",
    "MAX_CATEGORY_GROUP",
    "MIN_CATEGORY_GROUP",
    "MIN_TAG_OVERLAP",
    "SAME_CATEGORY_WEIGHT",
    "TAG_OVERLAP_WEIGHT",
    "CapabilityGraph",
]
