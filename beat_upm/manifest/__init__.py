"""Manifest mutation engine for ``Packages/manifest.json``.

- Locator: resolve the project root and manifest path
- Reader: load text, strip the byte-order mark
- Presence: decide whether a scoped registry is already declared
- Patcher: splice a registry entry into the manifest text
- Writer: atomically write UTF-8 without a byte-order mark
"""

from beat_upm.manifest.locator import find_project_root, locate_manifest
from beat_upm.manifest.patcher import PatchStrategy, patch_manifest
from beat_upm.manifest.presence import is_registry_present, read_registries
from beat_upm.manifest.reader import read_manifest
from beat_upm.manifest.writer import write_manifest

__all__ = [
    "PatchStrategy",
    "find_project_root",
    "is_registry_present",
    "locate_manifest",
    "patch_manifest",
    "read_manifest",
    "read_registries",
    "write_manifest",
]
