"""
normalizer.py - Source records to CapabilityDescriptor

The only code that understands the per-platform record shapes. Each record is
validated on its own: a malformed record is logged and skipped, the rest of
the batch continues.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .config.logging import get_logger
from .types import (
    CapabilityDescriptor,
    CapabilityIndexSources,
    ChannelSource,
    ChannelSourceRef,
    ExtensionSource,
    ExtensionSourceRef,
    SkillSource,
    SkillSourceRef,
    ToolSource,
    ToolSourceRef,
)

logger = get_logger("capability_discovery.normalizer")

DEFAULT_TOOL_CATEGORY = "general"
DEFAULT_SKILL_CATEGORY = "general"
CHANNEL_CATEGORY = "communication"

_NAME_SEPARATORS = re.compile(r"[-_]+")

M = TypeVar("M", bound=BaseModel)


def humanize_name(name: str) -> str:
    """``web-search`` -> ``Web Search``."""
    segments = [s for s in _NAME_SEPARATORS.split(name) if s]
    return " ".join(s[:1].upper() + s[1:] for s in segments) or name


def normalize_tool(tool: ToolSource) -> CapabilityDescriptor:
    return CapabilityDescriptor(
        id=f"tool:{tool.name}",
        kind="tool",
        name=tool.name,
        display_name=tool.display_name or tool.name,
        description=tool.description,
        category=tool.category or DEFAULT_TOOL_CATEGORY,
        tags=[],
        required_secrets=[],
        required_tools=[],
        available=True,
        has_side_effects=tool.has_side_effects,
        full_schema=tool.input_schema,
        source_ref=ToolSourceRef(tool_name=tool.name),
    )


def normalize_skill(skill: SkillSource) -> CapabilityDescriptor:
    required_tools = skill.required_tools
    if required_tools is None and skill.metadata and skill.metadata.requires:
        required_tools = skill.metadata.requires.bins

    return CapabilityDescriptor(
        id=f"skill:{skill.name}",
        kind="skill",
        name=skill.name,
        display_name=skill.display_name or humanize_name(skill.name),
        description=skill.description,
        category=skill.category or DEFAULT_SKILL_CATEGORY,
        tags=list(skill.tags or []),
        required_secrets=list(skill.required_secrets or []),
        required_tools=list(required_tools or []),
        available=True,
        full_content=skill.content,
        source_ref=SkillSourceRef(skill_name=skill.name, skill_path=skill.source_path),
    )


def normalize_extension(ext: ExtensionSource) -> CapabilityDescriptor:
    return CapabilityDescriptor(
        id=f"extension:{ext.name}",
        kind="extension",
        name=ext.name,
        display_name=ext.display_name or ext.name,
        description=ext.description,
        category=ext.category,
        tags=[],
        required_secrets=list(ext.required_secrets),
        required_tools=[],
        # Catalog entries are not installed unless the catalog says so
        available=bool(ext.available),
        source_ref=ExtensionSourceRef(package_name=ext.name, extension_id=ext.id),
    )


def normalize_channel(channel: ChannelSource) -> CapabilityDescriptor:
    return CapabilityDescriptor(
        id=f"channel:{channel.platform}",
        kind="channel",
        name=channel.platform,
        display_name=channel.display_name or channel.platform,
        description=channel.description,
        category=CHANNEL_CATEGORY,
        tags=list(channel.capabilities),
        required_secrets=[],
        required_tools=[],
        available=True,
        source_ref=ChannelSourceRef(platform=channel.platform),
    )


def _coerce(model: type[M], record: Any) -> M:
    if isinstance(record, model):
        return record
    if isinstance(record, BaseModel):
        record = record.model_dump()
    return model.model_validate(record)


def _normalize_each(
    kind: str,
    records: Iterable[Any] | None,
    model: type[M],
    convert: Callable[[M], CapabilityDescriptor],
) -> list[CapabilityDescriptor]:
    descriptors: list[CapabilityDescriptor] = []
    for position, record in enumerate(records or []):
        try:
            descriptors.append(convert(_coerce(model, record)))
        except ValidationError as e:
            logger.warning(
                "Skipping malformed capability record",
                source=kind,
                position=position,
                errors=[
                    f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
                ],
            )
    return descriptors


def _identity(descriptor: CapabilityDescriptor) -> CapabilityDescriptor:
    return descriptor


def normalize_sources(
    sources: CapabilityIndexSources | Mapping[str, Any] | None,
) -> list[CapabilityDescriptor]:
    """Normalize every source stream into descriptors.

    Order: tools, skills, extensions, channels, manifests (input order within
    each stream). Duplicate ids are kept here; the index upserts them.
    """
    if sources is None:
        return []
    if not isinstance(sources, CapabilityIndexSources):
        sources = CapabilityIndexSources.model_validate(dict(sources))

    descriptors: list[CapabilityDescriptor] = []
    descriptors += _normalize_each("tools", sources.tools, ToolSource, normalize_tool)
    descriptors += _normalize_each("skills", sources.skills, SkillSource, normalize_skill)
    descriptors += _normalize_each(
        "extensions", sources.extensions, ExtensionSource, normalize_extension
    )
    descriptors += _normalize_each("channels", sources.channels, ChannelSource, normalize_channel)
    descriptors += _normalize_each(
        "manifests", sources.manifests, CapabilityDescriptor, _identity
    )
    return descriptors


__all__ = [
    "CHANNEL_CATEGORY",
    "humanize_name",
    "normalize_channel",
    "normalize_extension",
    "normalize_skill",
    "normalize_sources",
    "normalize_tool",
]
