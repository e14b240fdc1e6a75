"""Tests for CAPABILITY.yaml scanning and watching."""

from __future__ import annotations

import json
import os
import threading
import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from capability_discovery.config.settings import Settings
from capability_discovery.errors import ManifestError
from capability_discovery.manifest import CapabilityManifestScanner


def write_capability(base: Path, dirname: str, manifest: str, **files: str) -> Path:
    cap_dir = base / dirname
    cap_dir.mkdir(parents=True)
    (cap_dir / files.pop("manifest_name", "CAPABILITY.yaml")).write_text(manifest)
    for name, content in files.items():
        (cap_dir / name.replace("__", ".")).write_text(content)
    return cap_dir


TOOL_MANIFEST = """\
name: pdf-export
kind: tool
description: Export documents to PDF
tags: [documents, export]
requiredSecrets:
  - PDF_API_KEY
hasSideEffects: true
"""


class TestScan:
    def test_scan_parses_manifest(self, tmp_path):
        write_capability(tmp_path, "pdf", TOOL_MANIFEST)
        [cap] = CapabilityManifestScanner().scan([tmp_path])
        assert cap.id == "tool:pdf-export"
        assert cap.display_name == "pdf-export"
        assert cap.category == "custom"
        assert cap.tags == ["documents", "export"]
        assert cap.required_secrets == ["PDF_API_KEY"]
        assert cap.has_side_effects is True
        assert cap.available is True
        assert cap.source_ref.type == "manifest"
        assert cap.source_ref.entry_id == "tool:pdf-export"
        assert cap.source_ref.manifest_path.endswith("CAPABILITY.yaml")

    def test_yml_extension(self, tmp_path):
        write_capability(tmp_path, "pdf", TOOL_MANIFEST, manifest_name="CAPABILITY.yml")
        assert len(CapabilityManifestScanner().scan([tmp_path])) == 1

    def test_sibling_skill_and_schema_files(self, tmp_path):
        schema = {"type": "object", "properties": {"path": {"type": "string"}}}
        write_capability(
            tmp_path,
            "pdf",
            TOOL_MANIFEST,
            SKILL__md="# PDF\nExport carefully.",
            schema__json=json.dumps(schema),
        )
        [cap] = CapabilityManifestScanner().scan([tmp_path])
        assert cap.full_content == "# PDF\nExport carefully."
        assert cap.full_schema == schema

    def test_explicit_skill_content_and_inline_schema(self, tmp_path):
        manifest = (
            "name: notes\n"
            "kind: skill\n"
            "description: Take notes\n"
            "id: skill:my-notes\n"
            "displayName: My Notes\n"
            "category: productivity\n"
            "skillContent: docs/guide.md\n"
            "inputSchema:\n"
            "  type: object\n"
            "  properties:\n"
            "    text: {type: string}\n"
        )
        cap_dir = write_capability(tmp_path, "notes", manifest)
        (cap_dir / "docs").mkdir()
        (cap_dir / "docs" / "guide.md").write_text("guide body")
        [cap] = CapabilityManifestScanner().scan([tmp_path])
        assert cap.id == "skill:my-notes"
        assert cap.display_name == "My Notes"
        assert cap.category == "productivity"
        assert cap.full_content == "guide body"
        assert cap.full_schema["properties"]["text"] == {"type": "string"}

    def test_missing_required_fields_skipped(self, tmp_path):
        write_capability(tmp_path, "bad", "name: nameless-kind\ndescription: x\n")
        write_capability(tmp_path, "good", TOOL_MANIFEST)
        caps = CapabilityManifestScanner().scan([tmp_path])
        assert [c.name for c in caps] == ["pdf-export"]

    def test_invalid_yaml_skipped(self, tmp_path):
        write_capability(tmp_path, "broken", "name: [unclosed\n")
        write_capability(tmp_path, "invalid-kind", "name: x\nkind: widget\ndescription: y\n")
        write_capability(tmp_path, "good", TOOL_MANIFEST)
        caps = CapabilityManifestScanner().scan([tmp_path])
        assert [c.name for c in caps] == ["pdf-export"]

    def test_undecodable_files_skipped(self, tmp_path):
        bad = tmp_path / "binary"
        bad.mkdir()
        (bad / "CAPABILITY.yaml").write_bytes(b"name: x\nkind: tool\ndescription: \xff\xfe\n")
        cap_dir = write_capability(tmp_path, "good", TOOL_MANIFEST)
        (cap_dir / "SKILL.md").write_bytes(b"\xff\xfe body")
        (cap_dir / "schema.json").write_bytes(b"\xff\xfe")

        [cap] = CapabilityManifestScanner().scan([tmp_path])
        assert cap.name == "pdf-export"
        assert cap.full_content is None
        assert cap.full_schema is None

    def test_skill_content_outside_dir_ignored(self, tmp_path):
        (tmp_path / "secret.txt").write_text("do not leak")
        manifest = TOOL_MANIFEST + "skillContent: ../../secret.txt\n"
        write_capability(tmp_path / "caps", "pdf", manifest)
        [cap] = CapabilityManifestScanner().scan([tmp_path / "caps"])
        assert cap.full_content is None

    def test_parse_manifest_raises_on_invalid_kind(self, tmp_path):
        cap_dir = write_capability(tmp_path, "w", "name: x\nkind: widget\ndescription: y\n")
        with pytest.raises(ManifestError):
            CapabilityManifestScanner().parse_manifest(cap_dir / "CAPABILITY.yaml", cap_dir)

    def test_missing_dirs_and_plain_files(self, tmp_path):
        (tmp_path / "README.md").write_text("not a capability dir")
        (tmp_path / "empty").mkdir()
        caps = CapabilityManifestScanner().scan([tmp_path / "nope", tmp_path])
        assert caps == []

    def test_default_dirs_include_env(self, tmp_path, monkeypatch):
        extra_a = tmp_path / "a"
        extra_b = tmp_path / "b"
        monkeypatch.setenv("CAPABILITY_DISCOVERY_DIRS", f"{extra_a}{os.pathsep}{extra_b}")
        dirs = CapabilityManifestScanner().get_default_dirs()
        assert dirs[0] == Path.home() / ".capability-discovery" / "capabilities"
        assert dirs[-2:] == [extra_a, extra_b]


@pytest.mark.slow
class TestWatch:
    def test_watch_debounces_into_one_rescan(self, tmp_path):
        scanner = CapabilityManifestScanner()
        received: list[list] = []
        done = threading.Event()

        def on_change(descriptors):
            received.append(descriptors)
            done.set()

        scanner.watch([tmp_path], on_change, debounce_seconds=0.3)
        try:
            assert scanner.is_watching
            write_capability(tmp_path, "pdf", TOOL_MANIFEST)
            (tmp_path / "pdf" / "SKILL.md").write_text("body")
            assert done.wait(timeout=10)
            time.sleep(0.6)
        finally:
            scanner.stop_watching()

        assert not scanner.is_watching
        assert received[-1][0].id == "tool:pdf-export"
        assert len(received) <= 2


class TestWatchSettings:
    def test_debounce_defaults_to_setting(self, tmp_path, monkeypatch):
        path = tmp_path / "settings.yaml"
        path.write_text("manifest:\n  debounce_seconds: 1.25\n")
        monkeypatch.setenv("CAPABILITY_DISCOVERY_CONFIG", str(path))
        Settings().reload()

        observer = MagicMock()
        timer = MagicMock()
        timer_factory = MagicMock(return_value=timer)
        monkeypatch.setattr("capability_discovery.manifest.Observer", lambda: observer)
        monkeypatch.setattr("capability_discovery.manifest.threading.Timer", timer_factory)

        scanner = CapabilityManifestScanner()
        scanner.watch([tmp_path], lambda descriptors: None)
        handler = observer.schedule.call_args.args[0]
        handler.on_any_event(MagicMock())

        assert timer_factory.call_args.args[0] == 1.25
        timer.start.assert_called_once()
        scanner.stop_watching()
        observer.stop.assert_called_once()
