"""
assembler.py - Tiered, token-budgeted discovery context

Three tiers of increasing detail and cost:

- Tier 0: category overview, always in context, cached per index version
- Tier 1: ranked one-line summaries of the retrieved candidates
- Tier 2: full detail (schema / skill instructions) for the top tier-1 entries

Budgets are enforced here, greedily and in relevance order. Candidates are
never reordered to pack a budget more tightly.
"""

from __future__ import annotations

import math
import re
import time
from collections.abc import Mapping, Sequence

from .config.settings import DiscoveryConfig
from .embedding_strategy import CapabilityEmbeddingStrategy
from .types import (
    CapabilityDescriptor,
    CapabilityDiscoveryResult,
    CapabilitySearchResult,
    DiscoveryDiagnostics,
    Tier1Result,
    Tier2Result,
    TokenEstimate,
)

CHARS_PER_TOKEN = 4
TIER0_NAME_LIMIT = 4
TIER0_HEADER = "Available capability categories:"
TIER0_FOOTER = "Use discover_capabilities to get details on any capability."
TIER1_HEADER = "Relevant capabilities:"
TIER2_HEADER = "--- Detailed Capability Reference ---"
UNCATEGORIZED = "other"

# Never a real index version
_NO_VERSION = -1

_SEGMENT = re.compile(r"([-_])")


def estimate_tokens(text: str) -> int:
    """Rough token count (~4 chars per token for English text)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)


def title_case_category(category: str) -> str:
    """``developer-tools`` -> ``Developer-Tools``."""
    return "".join(part[:1].upper() + part[1:] for part in _SEGMENT.split(category))


class CapabilityContextAssembler:
    """Builds CapabilityDiscoveryResults under per-tier token budgets."""

    def __init__(self, strategy: CapabilityEmbeddingStrategy | None = None):
        self._strategy = strategy or CapabilityEmbeddingStrategy()
        self._cached_tier0: str | None = None
        self._cached_version = _NO_VERSION

    # =========================================================================
    # Tier 0
    # =========================================================================

    def build_tier0(self, capabilities: Sequence[CapabilityDescriptor], version: int) -> str:
        """Category overview, regenerated only when ``version`` changes."""
        if self._cached_tier0 is not None and self._cached_version == version:
            return self._cached_tier0

        groups: dict[str, list[str]] = {}
        for cap in capabilities:
            groups.setdefault(cap.category or UNCATEGORIZED, []).append(cap.name)

        # sorted() is stable: equal counts keep first-appearance order
        ordered = sorted(groups.items(), key=lambda item: len(item[1]), reverse=True)

        lines = [TIER0_HEADER]
        for category, names in ordered:
            shown = ", ".join(names[:TIER0_NAME_LIMIT])
            extra = len(names) - TIER0_NAME_LIMIT
            suffix = f", (+{extra} more)" if extra > 0 else ""
            lines.append(f"- {title_case_category(category)} ({len(names)}): {shown}{suffix}")
        lines.append(TIER0_FOOTER)

        text = "\n".join(lines)
        self._cached_tier0 = text
        self._cached_version = version
        return text

    def invalidate_cache(self) -> None:
        self._cached_tier0 = None
        self._cached_version = _NO_VERSION

    # =========================================================================
    # Tiers 1 and 2
    # =========================================================================

    def assemble(
        self,
        tier0_text: str,
        search_results: Sequence[CapabilitySearchResult],
        config: DiscoveryConfig | None = None,
        timings: Mapping[str, float] | None = None,
    ) -> CapabilityDiscoveryResult:
        """Apply relevance filtering, top-K limits and token budgets.

        Args:
            tier0_text: Overview text from build_tier0
            search_results: Scored candidates (already reranked)
            config: Budgets and limits (defaults when omitted)
            timings: ``embedding_time_ms`` / ``graph_traversal_time_ms``

        Returns:
            The three-tier result with token and timing accounting.
        """
        start = time.perf_counter()
        config = config or DiscoveryConfig()
        timings = timings or {}

        candidates = [r for r in search_results if r.score >= config.tier1_min_relevance]
        candidates.sort(key=lambda r: r.score, reverse=True)

        tier1: list[Tier1Result] = []
        tier1_used = 0
        for candidate in candidates:
            if len(tier1) >= config.tier1_top_k:
                break
            summary = self._strategy.build_compact_summary(candidate.descriptor)
            line = f"{len(tier1) + 1}. {summary}"
            cost = estimate_tokens(line)
            if tier1_used + cost > config.tier1_token_budget:
                break
            tier1_used += cost
            tier1.append(
                Tier1Result(
                    capability=candidate.descriptor,
                    relevance_score=candidate.score,
                    summary_text=line,
                )
            )

        tier2: list[Tier2Result] = []
        tier2_used = 0
        for entry in tier1[: config.tier2_top_k]:
            full_text = self._strategy.build_full_detail_text(entry.capability)
            cost = estimate_tokens(full_text)
            if tier2_used + cost > config.tier2_token_budget:
                continue
            tier2_used += cost
            tier2.append(Tier2Result(capability=entry.capability, full_text=full_text))

        tier0_tokens = estimate_tokens(tier0_text)
        tier1_tokens = estimate_tokens("".join(r.summary_text for r in tier1))
        tier2_tokens = estimate_tokens("".join(r.full_text for r in tier2))

        return CapabilityDiscoveryResult(
            tier0=tier0_text,
            tier1=tier1,
            tier2=tier2,
            token_estimate=TokenEstimate(
                tier0_tokens=tier0_tokens,
                tier1_tokens=tier1_tokens,
                tier2_tokens=tier2_tokens,
                total_tokens=tier0_tokens + tier1_tokens + tier2_tokens,
            ),
            diagnostics=DiscoveryDiagnostics(
                query_time_ms=(time.perf_counter() - start) * 1000,
                embedding_time_ms=float(timings.get("embedding_time_ms", 0.0)),
                graph_traversal_time_ms=float(timings.get("graph_traversal_time_ms", 0.0)),
                candidates_scanned=len(search_results),
                capabilities_retrieved=len(tier1),
            ),
        )

    # =========================================================================
    # Rendering
    # =========================================================================

    def render_for_prompt(self, result: CapabilityDiscoveryResult) -> str:
        """Flatten a result into one prompt block; empty tiers get no header."""
        parts = [result.tier0]

        if result.tier1:
            parts.append("")
            parts.append(TIER1_HEADER)
            parts.extend(r.summary_text for r in result.tier1)

        if result.tier2:
            parts.append("")
            parts.append(TIER2_HEADER)
            for r in result.tier2:
                parts.append("")
                parts.append(r.full_text)

        return "\n".join(parts)


__all__ = [
    "CHARS_PER_TOKEN",
    "CapabilityContextAssembler",
    "estimate_tokens",
    "title_case_category",
]
