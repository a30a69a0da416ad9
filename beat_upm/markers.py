"""Marker stores — persisted "installer already ran" flags.

Each store answers two questions for one project: has the step identified
by *key* completed (``is_done``), and record that it has (``mark_done``).
Markers are never removed by the installer.

Two backends mirror where a Unity editor script can keep state:

- :class:`FileMarkerStore` writes ``ProjectSettings/<key>.txt`` inside the
  project, so the flag travels with the project's version control.
- :class:`PreferenceStore` keeps a per-user YAML preferences file, the
  analogue of editor preferences, partitioned by project root.
"""

from __future__ import annotations

import abc
import logging
from pathlib import Path

import yaml

from beat_upm.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_MARKER_KEY = "BeatUPM"
DEFAULT_PREFERENCES_PATH = Path.home() / ".beat_upm" / "preferences.yaml"


class MarkerStore(abc.ABC):
    """Persisted boolean flags scoped to one project."""

    @abc.abstractmethod
    def is_done(self, key: str) -> bool:
        """Return True if *key* has been marked done."""

    @abc.abstractmethod
    def mark_done(self, key: str) -> None:
        """Record *key* as done."""


class FileMarkerStore(MarkerStore):
    """Marker files under the project's settings directory."""

    MARKER_DIR = "ProjectSettings"
    MARKER_TEXT = "Beat Unity registry installed.\n"

    def __init__(self, project_root: str | Path, marker_dir: str | Path = MARKER_DIR):
        self.project_root = Path(project_root)
        self.marker_dir = self.project_root / marker_dir

    def marker_path(self, key: str) -> Path:
        return self.marker_dir / f"{key}.txt"

    def is_done(self, key: str) -> bool:
        return self.marker_path(key).exists()

    def mark_done(self, key: str) -> None:
        path = self.marker_path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.MARKER_TEXT, encoding="utf-8")
        logger.debug("[Beat UPM] Wrote marker %s", path)


class PreferenceStore(MarkerStore):
    """Per-user YAML preferences, one section per project root.

    File layout::

        projects:
          /home/me/MyGame:
            BeatUPM: true
    """

    def __init__(
        self,
        project_root: str | Path,
        preferences_path: str | Path = DEFAULT_PREFERENCES_PATH,
    ):
        self.scope = str(Path(project_root).expanduser().resolve())
        self.preferences_path = Path(preferences_path).expanduser()

    def is_done(self, key: str) -> bool:
        projects = self._load().get("projects") or {}
        return bool((projects.get(self.scope) or {}).get(key, False))

    def mark_done(self, key: str) -> None:
        data = self._load()
        projects = data.get("projects") or {}
        section = projects.get(self.scope) or {}
        section[key] = True
        projects[self.scope] = section
        data["projects"] = projects

        self.preferences_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.preferences_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
        logger.debug("[Beat UPM] Set preference %s for %s", key, self.scope)

    def _load(self) -> dict:
        if not self.preferences_path.exists():
            return {}
        try:
            with open(self.preferences_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Could not read preferences file {self.preferences_path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid preferences file {self.preferences_path}: {e}") from e
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ConfigError(f"Preferences file {self.preferences_path} is not a mapping")
        return data
