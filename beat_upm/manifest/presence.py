"""Registry presence checks.

Two strategies decide whether a scoped registry is already declared:

- **Structural** parses the manifest and inspects ``scopedRegistries``.
- **Textual** scans for ``"name": "<registry>"`` with any spacing around the
  colon. It works on hand-edited manifests that a strict JSON parser rejects
  but the Unity package manager still accepts.

Known limitation of the textual scan: it matches a ``"name"`` field with the
same value anywhere in the document, not only inside ``scopedRegistries``.
"""

from __future__ import annotations

import json
import logging
import re

from beat_upm.models import ScopedRegistry

logger = logging.getLogger(__name__)

SCOPED_REGISTRIES = "scopedRegistries"


def _name_pattern(name: str) -> re.Pattern:
    return re.compile(r'"name"\s*:\s*"' + re.escape(name) + '"')


def is_present_textual(text: str, name: str) -> bool:
    """Return True if *text* contains a ``"name"`` field equal to *name*."""
    return _name_pattern(name).search(text) is not None


def is_present_structural(text: str, name: str) -> bool:
    """Return True if the parsed ``scopedRegistries`` array has an entry named *name*.

    Raises:
        ValueError: If *text* is not valid JSON (``json.JSONDecodeError``).
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        return False
    registries = data.get(SCOPED_REGISTRIES)
    if not isinstance(registries, list):
        return False
    return any(
        isinstance(entry, dict) and entry.get("name") == name for entry in registries
    )


def is_registry_present(text: str, name: str) -> bool:
    """Check presence structurally, falling back to the textual scan.

    The textual scan is used only when *text* does not parse as JSON.
    """
    try:
        return is_present_structural(text, name)
    except json.JSONDecodeError as e:
        logger.debug("[Beat UPM] Manifest is not strict JSON (%s); using text scan.", e)
        return is_present_textual(text, name)


def read_registries(text: str) -> list[ScopedRegistry]:
    """Return the scoped registries declared in *text*.

    Entries missing a name, url, or scopes are skipped.

    Raises:
        ValueError: If *text* is not valid JSON.
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        return []

    registries = []
    for entry in data.get(SCOPED_REGISTRIES) or []:
        if not isinstance(entry, dict):
            continue
        try:
            registries.append(ScopedRegistry.from_dict(entry))
        except ValueError as e:
            logger.debug("[Beat UPM] Skipping incomplete registry entry: %s", e)
    return registries
