"""Read manifest text with the byte-order mark removed."""

from __future__ import annotations

from pathlib import Path

from beat_upm.errors import ManifestIOError, NotFoundError

BOM = "\ufeff"


def strip_bom(text: str) -> str:
    """Drop a single leading byte-order-mark character, if present."""
    if text.startswith(BOM):
        return text[1:]
    return text


def read_manifest(path: str | Path) -> str:
    """Read the manifest at *path* as UTF-8 text.

    Bytes are decoded without newline translation so that a later write
    reproduces the file's original line endings.

    Raises:
        NotFoundError: If the file does not exist.
        ManifestIOError: If the file cannot be opened or is not valid UTF-8.
    """
    path = Path(path)
    try:
        raw = path.read_bytes()
    except FileNotFoundError as e:
        raise NotFoundError(f"manifest.json not found at {path}") from e
    except OSError as e:
        raise ManifestIOError(f"Could not read {path}: {e}") from e

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ManifestIOError(f"{path} is not valid UTF-8: {e}") from e

    return strip_bom(text)
