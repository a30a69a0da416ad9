"""Registry patcher — insert a scoped registry into manifest text.

The default textual strategy never re-serializes the manifest: it splices the
new entry into the existing text so that every other byte (key order,
spacing, line endings, hand-written comments the package manager tolerates)
survives unchanged.

Case A, ``"scopedRegistries"`` already exists::

    "scopedRegistries": [
      { ...existing... },        <- kept as-is
      { ...new entry... }        <- appended after a comma
    ],

Case B, the key is absent: a new ``"scopedRegistries": [...]`` block is
inserted right after the root object's opening brace, followed by a comma
so the next property still parses.

The structural strategy parses and re-serializes instead. It is opt-in and
falls back to the textual strategy for manifests that are not strict JSON.
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum

from beat_upm.errors import MalformedStructureError
from beat_upm.manifest.presence import SCOPED_REGISTRIES, is_present_textual
from beat_upm.models import ScopedRegistry

logger = logging.getLogger(__name__)

SCOPED_REGISTRIES_KEY = f'"{SCOPED_REGISTRIES}"'
DEFAULT_INDENT = "  "

_INDENT_RE = re.compile(r'^([ \t]+)"', re.MULTILINE)
_KEY_SEPARATOR_RE = re.compile(r"\s*:\s*")


class PatchStrategy(Enum):
    """How the registry entry is written into the manifest."""

    TEXTUAL = "textual"
    STRUCTURAL = "structural"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def patch_manifest(
    text: str,
    entry: ScopedRegistry,
    strategy: PatchStrategy = PatchStrategy.TEXTUAL,
) -> str:
    """Return *text* with *entry* added to its ``scopedRegistries`` array.

    Returns *text* unchanged when an entry with the same name is already
    there.

    Raises:
        MalformedStructureError: If the array or root object cannot be located.
    """
    if strategy == PatchStrategy.STRUCTURAL:
        try:
            return patch_structural(text, entry)
        except json.JSONDecodeError as e:
            logger.warning(
                "[Beat UPM] manifest.json is not strict JSON (%s); "
                "falling back to textual patching.",
                e,
            )
    return patch_textual(text, entry)


def patch_textual(text: str, entry: ScopedRegistry) -> str:
    """Splice *entry* into *text* without re-serializing the document."""
    indent = detect_indent(text)
    newline = detect_newline(text)
    fragment = render_entry(entry, indent, newline)

    key_index = text.find(SCOPED_REGISTRIES_KEY)
    if key_index >= 0:
        return _insert_into_existing(text, key_index, entry, fragment, indent, newline)
    return _insert_new_block(text, fragment, indent, newline)


def patch_structural(text: str, entry: ScopedRegistry) -> str:
    """Parse *text*, append *entry*, and re-serialize.

    Key order and values are preserved; whitespace is normalized to the
    document's detected indentation.

    Raises:
        json.JSONDecodeError: If *text* is not valid JSON.
        MalformedStructureError: If the root is not an object or
            ``scopedRegistries`` is not an array.
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise MalformedStructureError("manifest.json root is not a JSON object")

    registries = data.get(SCOPED_REGISTRIES)
    if SCOPED_REGISTRIES not in data:
        data = {SCOPED_REGISTRIES: [entry.to_dict()], **data}
    elif registries is None:
        data[SCOPED_REGISTRIES] = [entry.to_dict()]
    elif not isinstance(registries, list):
        raise MalformedStructureError(f"{SCOPED_REGISTRIES} is not an array")
    elif any(isinstance(r, dict) and r.get("name") == entry.name for r in registries):
        return text
    else:
        registries.append(entry.to_dict())

    return json.dumps(data, indent=detect_indent(text), ensure_ascii=False) + "\n"


def render_entry(
    entry: ScopedRegistry,
    indent: str = DEFAULT_INDENT,
    newline: str = "\n",
) -> str:
    """Render *entry* as a JSON object literal nested two levels deep.

    With the default indent this produces::

            {
              "name": "Beat",
              "url": "https://beat-unity.com/",
              "scopes": [
                "beat"
              ]
            }
    """
    body = json.dumps(entry.to_dict(), indent=indent, ensure_ascii=False)
    prefix = indent * 2
    return newline.join(prefix + line for line in body.splitlines())


def detect_indent(text: str) -> str:
    """Return the indentation unit of the first indented key in *text*."""
    match = _INDENT_RE.search(text)
    return match.group(1) if match else DEFAULT_INDENT


def detect_newline(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def find_matching_bracket(
    text: str,
    start: int,
    open_char: str = "[",
    close_char: str = "]",
) -> int:
    """Return the index of the bracket closing the one at *start*, or -1.

    Depth counting skips arrays nested inside registry entries (such as
    ``scopes``).
    """
    depth = 0
    for i in range(start, len(text)):
        c = text[i]
        if c == open_char:
            depth += 1
        elif c == close_char:
            depth -= 1
            if depth == 0:
                return i
    return -1


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _insert_into_existing(
    text: str,
    key_index: int,
    entry: ScopedRegistry,
    fragment: str,
    indent: str,
    newline: str,
) -> str:
    key_end = key_index + len(SCOPED_REGISTRIES_KEY)
    array_start = text.find("[", key_end)
    if array_start < 0:
        raise MalformedStructureError(f"No array follows {SCOPED_REGISTRIES_KEY}")

    if _KEY_SEPARATOR_RE.fullmatch(text, key_end, array_start) is None:
        raise MalformedStructureError(f"{SCOPED_REGISTRIES_KEY} is not followed by an array")

    array_end = find_matching_bracket(text, array_start)
    if array_end < 0:
        raise MalformedStructureError(f"Unterminated {SCOPED_REGISTRIES_KEY} array")

    content = text[array_start + 1:array_end]
    if is_present_textual(content, entry.name):
        return text

    closing = newline + fragment + newline + indent
    right_trimmed = content.rstrip()
    if not right_trimmed:
        new_content = closing
    elif not right_trimmed.endswith("}"):
        # Not a list of objects; append anyway.
        new_content = content + "," + closing
    else:
        new_content = right_trimmed + "," + closing

    return text[:array_start + 1] + new_content + text[array_end:]


def _insert_new_block(text: str, fragment: str, indent: str, newline: str) -> str:
    first_brace = text.find("{")
    if first_brace < 0:
        raise MalformedStructureError("manifest.json has no root object")

    insert_at = first_brace + 1
    rest = text[insert_at:]
    if rest.lstrip().startswith("}"):
        # Empty root object: no next property to separate from.
        trailing = "" if rest.startswith(("\n", "\r\n")) else newline
    else:
        trailing = ","

    block = (
        newline + indent + SCOPED_REGISTRIES_KEY + ": [" + newline
        + fragment + newline
        + indent + "]" + trailing
    )
    return text[:insert_at] + block + rest
