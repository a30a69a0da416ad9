"""Atomic UTF-8 (no BOM) replacement of the manifest file."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path

from beat_upm.errors import ManifestIOError
from beat_upm.manifest.reader import strip_bom


def write_manifest(path: str | Path, text: str) -> None:
    """Replace the file at *path* with *text*.

    The text is written as UTF-8 without a byte-order mark, with no newline
    translation, to a temporary file next to the target which is then
    renamed over it. An existing file keeps its permission bits. A failure
    leaves the existing file untouched.

    Raises:
        ManifestIOError: On any filesystem failure.
    """
    path = Path(path)
    tmp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            newline="",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as tmp:
            tmp_path = Path(tmp.name)
            tmp.write(strip_bom(text))
            tmp.flush()
            os.fsync(tmp.fileno())
        if path.exists():
            shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ManifestIOError(f"Could not write {path}: {e}") from e
