"""
embedding_strategy.py - Text renderings of a capability

Three outputs per descriptor, each built only from fields that are present:

1. Embedding text: name, description, category, tags, parameter names and
   dependencies; the input for vector similarity.
2. Compact summary: one line for tier-1 prompt injection.
3. Full detail text: the tier-2 document (schema and skill instructions).
"""

from __future__ import annotations

import json
from typing import Any

from .types import CapabilityDescriptor

SUMMARY_DESCRIPTION_LIMIT = 120
SUMMARY_PARAM_LIMIT = 3
UNAVAILABLE_NOTE = "[not available: missing secrets or dependencies]"

_SCHEMA_KINDS = ("tool", "extension")


def extract_parameter_names(schema: dict[str, Any] | None, limit: int | None = None) -> list[str]:
    """Top-level property names of a JSON-Schema object, optionally limited."""
    if not schema:
        return []
    properties = schema.get("properties")
    if not isinstance(properties, dict):
        return []
    names = list(properties.keys())
    return names[:limit] if limit is not None else names


def truncate_description(text: str, limit: int = SUMMARY_DESCRIPTION_LIMIT) -> str:
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def format_schema_for_context(schema: dict[str, Any]) -> str:
    """Render schema properties as indented ``name (type, required): desc`` lines."""
    properties = schema.get("properties")
    if not isinstance(properties, dict) or not properties:
        return "  (no parameters)"

    required = schema.get("required")
    required_set = set(required) if isinstance(required, list) else set()

    lines: list[str] = []
    for name, prop in properties.items():
        prop = prop if isinstance(prop, dict) else {}
        type_label = prop.get("type", "any")
        if isinstance(type_label, list):
            type_label = "|".join(str(t) for t in type_label)
        req_label = ", required" if name in required_set else ""
        line = f"  {name} ({type_label}{req_label})"
        if prop.get("description"):
            line += f": {prop['description']}"
        if isinstance(prop.get("enum"), list):
            line += f" [{'|'.join(str(v) for v in prop['enum'])}]"
        if "default" in prop:
            line += f" (default: {json.dumps(prop['default'])})"
        lines.append(line)
    return "\n".join(lines)


class CapabilityEmbeddingStrategy:
    """Builds the embedding, summary and detail texts for descriptors."""

    def build_embedding_text(self, cap: CapabilityDescriptor) -> str:
        parts: list[str] = []

        if cap.display_name and cap.display_name != cap.name:
            parts.append(f"{cap.display_name} ({cap.name})")
        else:
            parts.append(cap.name)

        if cap.description:
            parts.append(cap.description)
        if cap.category:
            parts.append(f"Category: {cap.category}")
        if cap.tags:
            parts.append(f"Use cases: {', '.join(cap.tags)}")

        params = extract_parameter_names(cap.full_schema)
        if params:
            parts.append(f"Parameters: {', '.join(params)}")

        if cap.required_tools:
            parts.append(f"Requires: {', '.join(cap.required_tools)}")

        return "\n".join(parts)

    def build_compact_summary(self, cap: CapabilityDescriptor) -> str:
        """One tier-1 line, roughly 30-50 tokens."""
        parts = [f"{cap.name} ({cap.kind}): {truncate_description(cap.description)}"]

        if not cap.available:
            parts.append(UNAVAILABLE_NOTE)

        if cap.kind in _SCHEMA_KINDS:
            params = extract_parameter_names(cap.full_schema, SUMMARY_PARAM_LIMIT)
            if params:
                parts.append(f"Params: {', '.join(params)}")

        if cap.required_tools:
            parts.append(f"Requires: {', '.join(cap.required_tools)}")

        return ". ".join(parts)

    def build_full_detail_text(self, cap: CapabilityDescriptor) -> str:
        parts = [
            f"# {cap.display_name or cap.name}",
            f"Kind: {cap.kind} | Category: {cap.category}",
        ]

        if cap.description:
            parts.append(f"\n{cap.description}")

        if cap.full_schema is not None:
            parts.append("\n## Input Schema")
            parts.append(format_schema_for_context(cap.full_schema))

        if cap.full_content:
            parts.append("\n## Skill Instructions")
            parts.append(cap.full_content)

        if cap.required_secrets:
            parts.append(f"\nRequired secrets: {', '.join(cap.required_secrets)}")
        if cap.tags:
            parts.append(f"Tags: {', '.join(cap.tags)}")

        return "\n".join(parts)


__all__ = [
    "CapabilityEmbeddingStrategy",
    "extract_parameter_names",
    "format_schema_for_context",
    "truncate_description",
]
