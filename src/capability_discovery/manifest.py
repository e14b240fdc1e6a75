"""
manifest.py - CAPABILITY.yaml discovery

Scans capability directories for user-defined capabilities:

    ~/.capability-discovery/capabilities/
      my-tool/
        CAPABILITY.yaml     # name, kind, description, ...
        SKILL.md            # optional, becomes full_content
        schema.json         # optional, becomes full_schema

Each direct subdirectory with a CAPABILITY.yaml (or .yml) is one capability.
The resulting descriptors are fed to the engine as ``manifests``.

Usage:
    scanner = CapabilityManifestScanner()
    descriptors = scanner.scan()
    scanner.watch(scanner.get_default_dirs(), on_change=handle)
"""

from __future__ import annotations

import json
import os
import threading
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config.logging import get_logger
from .config.settings import get_setting
from .errors import ManifestError
from .types import CapabilityDescriptor, ManifestSourceRef

logger = get_logger("capability_discovery.manifest")

MANIFEST_FILENAMES = ("CAPABILITY.yaml", "CAPABILITY.yml")
DEFAULT_SKILL_FILE = "SKILL.md"
DEFAULT_SCHEMA_FILE = "schema.json"
DEFAULT_MANIFEST_CATEGORY = "custom"
DIRS_ENV_VAR = "CAPABILITY_DISCOVERY_DIRS"
DEFAULT_DEBOUNCE_SECONDS = 0.5

_REQUIRED_FIELDS = ("name", "kind", "description")

ManifestChangeCallback = Callable[[list[CapabilityDescriptor]], None]


class _ManifestChangeHandler(FileSystemEventHandler):
    """Collapses bursts of file events into one rescan."""

    def __init__(self, trigger: Callable[[], None]):
        self._trigger = trigger

    def on_any_event(self, event: FileSystemEvent) -> None:
        self._trigger()


class CapabilityManifestScanner:
    """Finds and parses CAPABILITY.yaml manifests."""

    def __init__(self) -> None:
        self._observers: list[Any] = []
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    # =========================================================================
    # Discovery
    # =========================================================================

    def get_default_dirs(self) -> list[Path]:
        """User, project and ``CAPABILITY_DISCOVERY_DIRS`` directories."""
        dirs = [
            Path.home() / ".capability-discovery" / "capabilities",
            Path.cwd() / ".capability-discovery" / "capabilities",
        ]
        env_dirs = os.environ.get(DIRS_ENV_VAR, "")
        dirs.extend(Path(d).expanduser() for d in env_dirs.split(os.pathsep) if d)
        return dirs

    def scan(self, dirs: Sequence[str | Path] | None = None) -> list[CapabilityDescriptor]:
        """Parse every capability directory under ``dirs``.

        Missing directories are skipped. A manifest that cannot be parsed is
        logged and skipped.
        """
        scan_dirs = [Path(d) for d in dirs] if dirs is not None else self.get_default_dirs()
        descriptors: list[CapabilityDescriptor] = []

        for base in scan_dirs:
            if not base.is_dir():
                continue
            try:
                entries = sorted(p for p in base.iterdir() if p.is_dir())
            except OSError as e:
                logger.warning("Cannot list capability directory", path=str(base), error=str(e))
                continue

            for cap_dir in entries:
                manifest_path = _find_manifest(cap_dir)
                if manifest_path is None:
                    continue
                try:
                    descriptor = self.parse_manifest(manifest_path, cap_dir)
                except ManifestError as e:
                    logger.warning(
                        "Failed to parse capability manifest",
                        path=str(manifest_path),
                        error=e.message,
                    )
                    continue
                if descriptor is not None:
                    descriptors.append(descriptor)

        logger.debug("Manifest scan complete", dirs=len(scan_dirs), found=len(descriptors))
        return descriptors

    def parse_manifest(
        self,
        manifest_path: str | Path,
        cap_dir: str | Path | None = None,
    ) -> CapabilityDescriptor | None:
        """Parse one manifest into a descriptor.

        Returns None (with a warning) when ``name``, ``kind`` or
        ``description`` is missing.

        Raises:
            ManifestError: unreadable file, invalid YAML, or invalid field values
        """
        manifest_path = Path(manifest_path)
        cap_dir = Path(cap_dir) if cap_dir is not None else manifest_path.parent

        try:
            raw = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
            raise ManifestError(
                f"Cannot read manifest {manifest_path}: {e}",
                details={"path": str(manifest_path)},
            ) from e

        if not isinstance(raw, dict):
            raise ManifestError(
                f"Manifest {manifest_path} must contain a mapping",
                details={"path": str(manifest_path)},
            )

        missing = [f for f in _REQUIRED_FIELDS if not raw.get(f)]
        if missing:
            logger.warning(
                "Missing required fields in capability manifest",
                path=str(manifest_path),
                missing=missing,
            )
            return None

        kind = str(raw["kind"])
        name = str(raw["name"])
        capability_id = str(raw.get("id") or f"{kind}:{name}")

        try:
            return CapabilityDescriptor(
                id=capability_id,
                kind=kind,
                name=name,
                display_name=raw.get("displayName") or name,
                description=str(raw["description"]),
                category=raw.get("category") or DEFAULT_MANIFEST_CATEGORY,
                tags=raw.get("tags") or [],
                required_secrets=raw.get("requiredSecrets") or [],
                required_tools=raw.get("requiredTools") or [],
                available=True,
                has_side_effects=raw.get("hasSideEffects"),
                full_schema=_load_schema(raw, cap_dir),
                full_content=_load_skill_content(raw, cap_dir),
                source_ref=ManifestSourceRef(
                    manifest_path=str(manifest_path),
                    entry_id=capability_id,
                ),
            )
        except ValidationError as e:
            raise ManifestError(
                f"Invalid manifest {manifest_path}: {e.error_count()} field error(s)",
                details={"path": str(manifest_path), "errors": e.errors(include_url=False)},
            ) from e

    # =========================================================================
    # Watching
    # =========================================================================

    def watch(
        self,
        dirs: Sequence[str | Path],
        on_change: ManifestChangeCallback,
        debounce_seconds: float | None = None,
    ) -> None:
        """Rescan ``dirs`` after file changes and pass the result to ``on_change``.

        Events are debounced: the rescan runs ``debounce_seconds`` after the
        last event of a burst. Defaults to the ``manifest.debounce_seconds``
        setting. ``on_change`` runs on a background thread.
        """
        if debounce_seconds is None:
            debounce_seconds = float(
                get_setting("manifest.debounce_seconds", DEFAULT_DEBOUNCE_SECONDS)
            )
        watch_dirs = [Path(d) for d in dirs]

        def rescan() -> None:
            with self._lock:
                self._timer = None
            try:
                descriptors = self.scan(watch_dirs)
            except OSError as e:
                logger.warning("Manifest rescan failed", error=str(e))
                return
            on_change(descriptors)

        def trigger() -> None:
            with self._lock:
                if self._timer is not None:
                    self._timer.cancel()
                self._timer = threading.Timer(debounce_seconds, rescan)
                self._timer.daemon = True
                self._timer.start()

        handler = _ManifestChangeHandler(trigger)
        for d in watch_dirs:
            if not d.is_dir():
                continue
            observer = Observer()
            observer.schedule(handler, str(d), recursive=True)
            observer.start()
            self._observers.append(observer)
            logger.info("Watching capability directory", path=str(d))

    def stop_watching(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        for observer in self._observers:
            observer.stop()
            observer.join()
        self._observers = []

    @property
    def is_watching(self) -> bool:
        return bool(self._observers)


def _find_manifest(cap_dir: Path) -> Path | None:
    for filename in MANIFEST_FILENAMES:
        candidate = cap_dir / filename
        if candidate.is_file():
            return candidate
    return None


def _load_skill_content(raw: dict[str, Any], cap_dir: Path) -> str | None:
    relative = raw.get("skillContent")
    if relative:
        skill_path = (cap_dir / str(relative)).resolve()
        if not skill_path.is_relative_to(cap_dir.resolve()):
            logger.warning(
                "Ignoring skill content outside the capability directory",
                path=str(skill_path),
                cap_dir=str(cap_dir),
            )
            return None
    else:
        skill_path = cap_dir / DEFAULT_SKILL_FILE
    if not skill_path.is_file():
        return None
    try:
        return skill_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Cannot read skill content", path=str(skill_path), error=str(e))
        return None


def _load_schema(raw: dict[str, Any], cap_dir: Path) -> dict[str, Any] | None:
    schema = raw.get("inputSchema")
    if isinstance(schema, dict):
        return schema

    schema_path = cap_dir / DEFAULT_SCHEMA_FILE
    if not schema_path.is_file():
        return None
    try:
        loaded = json.loads(schema_path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning("Ignoring unreadable schema.json", path=str(schema_path), error=str(e))
        return None
    return loaded if isinstance(loaded, dict) else None


__all__ = [
    "DIRS_ENV_VAR",
    "MANIFEST_FILENAMES",
    "CapabilityManifestScanner",
    "ManifestChangeCallback",
]
