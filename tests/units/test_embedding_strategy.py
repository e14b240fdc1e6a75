"""Tests for capability text renderings."""

from __future__ import annotations

from capability_discovery.embedding_strategy import (
    CapabilityEmbeddingStrategy,
    extract_parameter_names,
    format_schema_for_context,
    truncate_description,
)
from capability_discovery.types import CapabilityDescriptor, SkillSourceRef, ToolSourceRef

SCHEMA = {
    "type": "object",
    "properties": {
        "query": {"type": "string", "description": "Search query"},
        "max_results": {"type": "number", "default": 5},
        "region": {"type": "string", "enum": ["us", "eu"]},
        "safe": {"type": "boolean"},
    },
    "required": ["query"],
}


def tool_cap(**overrides) -> CapabilityDescriptor:
    fields = dict(
        id="tool:web-search",
        kind="tool",
        name="web-search",
        display_name="Web Search",
        description="Search the web",
        category="information",
        full_schema=SCHEMA,
        source_ref=ToolSourceRef(tool_name="web-search"),
    )
    fields.update(overrides)
    return CapabilityDescriptor(**fields)


class TestHelpers:
    def test_extract_parameter_names(self):
        assert extract_parameter_names(SCHEMA) == ["query", "max_results", "region", "safe"]
        assert extract_parameter_names(SCHEMA, 2) == ["query", "max_results"]

    def test_extract_parameter_names_without_properties(self):
        assert extract_parameter_names(None) == []
        assert extract_parameter_names({"type": "object"}) == []

    def test_truncate_description(self):
        assert truncate_description("x" * 120) == "x" * 120
        truncated = truncate_description("x" * 121)
        assert len(truncated) == 120
        assert truncated.endswith("...")

    def test_format_schema_lines(self):
        text = format_schema_for_context(SCHEMA)
        lines = text.split("\n")
        assert lines[0] == "  query (string, required): Search query"
        assert lines[1] == "  max_results (number) (default: 5)"
        assert lines[2] == "  region (string) [us|eu]"

    def test_format_schema_without_properties(self):
        assert format_schema_for_context({"type": "object"}) == "  (no parameters)"


class TestEmbeddingText:
    def test_full_tool(self):
        text = CapabilityEmbeddingStrategy().build_embedding_text(tool_cap())
        assert text.split("\n") == [
            "Web Search (web-search)",
            "Search the web",
            "Category: information",
            "Parameters: query, max_results, region, safe",
        ]

    def test_same_display_name_uses_name_only(self):
        text = CapabilityEmbeddingStrategy().build_embedding_text(
            tool_cap(display_name="web-search", full_schema=None)
        )
        assert text.split("\n")[0] == "web-search"
        assert "Parameters" not in text

    def test_tags_and_requirements(self):
        cap = tool_cap(tags=["search", "news"], required_tools=["curl"])
        text = CapabilityEmbeddingStrategy().build_embedding_text(cap)
        assert "Use cases: search, news" in text
        assert text.endswith("Requires: curl")


class TestCompactSummary:
    def test_tool_summary_lists_first_three_params(self):
        summary = CapabilityEmbeddingStrategy().build_compact_summary(tool_cap())
        assert summary == "web-search (tool): Search the web. Params: query, max_results, region"

    def test_unavailable_note(self):
        summary = CapabilityEmbeddingStrategy().build_compact_summary(
            tool_cap(available=False, full_schema=None)
        )
        assert summary == (
            "web-search (tool): Search the web. "
            "[not available: missing secrets or dependencies]"
        )

    def test_skill_summary_skips_params(self):
        cap = CapabilityDescriptor(
            id="skill:github",
            kind="skill",
            name="github",
            display_name="Github",
            description="Manage issues",
            category="developer-tools",
            required_tools=["gh"],
            full_schema=SCHEMA,
            source_ref=SkillSourceRef(skill_name="github"),
        )
        summary = CapabilityEmbeddingStrategy().build_compact_summary(cap)
        assert summary == "github (skill): Manage issues. Requires: gh"

    def test_long_description_is_truncated(self):
        summary = CapabilityEmbeddingStrategy().build_compact_summary(
            tool_cap(description="d" * 200, full_schema=None)
        )
        assert summary == "web-search (tool): " + "d" * 117 + "..."


class TestFullDetail:
    def test_tool_detail(self):
        text = CapabilityEmbeddingStrategy().build_full_detail_text(tool_cap())
        assert text.startswith("# Web Search\nKind: tool | Category: information\n")
        assert "## Input Schema" in text
        assert "  query (string, required): Search query" in text
        assert "## Skill Instructions" not in text

    def test_skill_detail(self):
        cap = CapabilityDescriptor(
            id="skill:github",
            kind="skill",
            name="github",
            display_name="Github",
            description="Manage issues",
            category="developer-tools",
            tags=["github"],
            required_secrets=["GITHUB_TOKEN"],
            full_content="Use gh issue list.",
            source_ref=SkillSourceRef(skill_name="github"),
        )
        text = CapabilityEmbeddingStrategy().build_full_detail_text(cap)
        assert "## Skill Instructions\nUse gh issue list." in text
        assert "Required secrets: GITHUB_TOKEN" in text
        assert text.endswith("Tags: github")
        assert "## Input Schema" not in text
