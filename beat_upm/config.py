"""Installer configuration — defaults, ``beat_upm.yaml``, and environment overrides.

Example ``beat_upm.yaml`` in the Unity project root::

    registry:
      name: Beat
      url: https://beat-unity.com/
      scopes: [beat]
    package_id: beat.core
    marker_backend: preference
    strategy: textual
    package_command: openupm add {package}
    self_delete:
      - Assets/Editor/BeatUnityInstaller.cs

Precedence, lowest first: defaults, the YAML file, ``BEAT_UPM_*``
environment variables. Command-line flags are applied on top by the CLI.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field, replace
from pathlib import Path

import yaml

from beat_upm.errors import ConfigError
from beat_upm.manifest.locator import MANIFEST_RELATIVE_PATH
from beat_upm.manifest.patcher import PatchStrategy
from beat_upm.markers import (
    DEFAULT_MARKER_KEY,
    DEFAULT_PREFERENCES_PATH,
    FileMarkerStore,
    MarkerStore,
    PreferenceStore,
)
from beat_upm.models import BEAT_CORE_PACKAGE, BEAT_REGISTRY, ScopedRegistry

CONFIG_FILE_NAME = "beat_upm.yaml"
ENV_PREFIX = "BEAT_UPM_"

MARKER_BACKENDS = ("file", "preference")


@dataclass
class InstallerConfig:
    """Everything the installer needs to know about one project."""

    registry: ScopedRegistry = field(default_factory=lambda: replace(BEAT_REGISTRY))
    package_id: str = BEAT_CORE_PACKAGE
    manifest_path: Path = MANIFEST_RELATIVE_PATH
    marker_backend: str = "file"
    marker_key: str = DEFAULT_MARKER_KEY
    preferences_path: Path = DEFAULT_PREFERENCES_PATH
    strategy: PatchStrategy = PatchStrategy.TEXTUAL
    package_command: list[str] = field(default_factory=list)
    poll_interval: float = 0.1
    timeout: float = 300.0
    self_delete: list[Path] = field(default_factory=list)

    def marker_store(self, project_root: str | Path) -> MarkerStore:
        """Build the marker store selected by ``marker_backend``."""
        if self.marker_backend == "preference":
            return PreferenceStore(project_root, self.preferences_path)
        return FileMarkerStore(project_root)


def load_config(
    project_root: str | Path | None = None,
    config_path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> InstallerConfig:
    """Load configuration for a project.

    Reads *config_path* if given (it must exist), otherwise
    ``<project_root>/beat_upm.yaml`` if present, then applies environment
    overrides from *environ* (defaults to ``os.environ``).

    Raises:
        ConfigError: If the file is unreadable, not a mapping, or holds
            invalid values.
    """
    data: dict = {}
    if config_path is not None:
        path = Path(config_path)
        if not path.is_file():
            raise ConfigError(f"Config file not found: {path}")
        data = _read_yaml(path)
    elif project_root is not None:
        path = Path(project_root) / CONFIG_FILE_NAME
        if path.is_file():
            data = _read_yaml(path)

    env = os.environ if environ is None else environ
    overrides = {
        "package_id": env.get(f"{ENV_PREFIX}PACKAGE"),
        "marker_backend": env.get(f"{ENV_PREFIX}MARKER"),
        "preferences_path": env.get(f"{ENV_PREFIX}PREFERENCES"),
        "strategy": env.get(f"{ENV_PREFIX}STRATEGY"),
        "package_command": env.get(f"{ENV_PREFIX}PACKAGE_COMMAND"),
    }
    data.update({k: v for k, v in overrides.items() if v})

    return config_from_dict(data)


def config_from_dict(data: dict) -> InstallerConfig:
    """Build an :class:`InstallerConfig` from a plain mapping."""
    config = InstallerConfig()

    try:
        if "registry" in data:
            registry = data["registry"] or {}
            if not isinstance(registry, dict):
                raise ConfigError("'registry' must be a mapping")
            scopes = registry.get("scopes", BEAT_REGISTRY.scopes)
            if isinstance(scopes, str):
                scopes = [scopes]
            config.registry = ScopedRegistry(
                name=registry.get("name", BEAT_REGISTRY.name),
                url=registry.get("url", BEAT_REGISTRY.url),
                scopes=scopes,
            )
        if data.get("package_id"):
            config.package_id = str(data["package_id"])
        if data.get("manifest_path"):
            config.manifest_path = Path(data["manifest_path"])
        if data.get("marker_key"):
            config.marker_key = str(data["marker_key"])
        if data.get("preferences_path"):
            config.preferences_path = Path(data["preferences_path"]).expanduser()
        if "poll_interval" in data:
            config.poll_interval = float(data["poll_interval"])
        if "timeout" in data:
            config.timeout = float(data["timeout"])
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    if data.get("marker_backend"):
        backend = str(data["marker_backend"]).lower()
        if backend not in MARKER_BACKENDS:
            raise ConfigError(
                f"Invalid marker_backend '{backend}'. Must be one of: {', '.join(MARKER_BACKENDS)}"
            )
        config.marker_backend = backend

    if data.get("strategy"):
        config.strategy = parse_strategy(data["strategy"])

    command = data.get("package_command")
    if command:
        config.package_command = shlex.split(command) if isinstance(command, str) else [
            str(part) for part in command
        ]

    self_delete = data.get("self_delete") or []
    if isinstance(self_delete, str):
        self_delete = [self_delete]
    config.self_delete = [Path(p) for p in self_delete]

    return config


def parse_strategy(value: str | PatchStrategy) -> PatchStrategy:
    if isinstance(value, PatchStrategy):
        return value
    try:
        return PatchStrategy(str(value).lower())
    except ValueError:
        choices = ", ".join(s.value for s in PatchStrategy)
        raise ConfigError(f"Invalid strategy '{value}'. Must be one of: {choices}") from None


def _read_yaml(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping")
    return data
