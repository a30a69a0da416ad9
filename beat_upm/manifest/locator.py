"""Locate Unity project roots and their package manifest."""

from __future__ import annotations

from pathlib import Path

from beat_upm.errors import NotFoundError

MANIFEST_RELATIVE_PATH = Path("Packages") / "manifest.json"

# A directory holding both of these is a Unity project root even before
# the package manager has written a manifest.
_PROJECT_MARKER_DIRS = ("Assets", "ProjectSettings")


def locate_manifest(
    project_root: str | Path,
    relative_path: str | Path = MANIFEST_RELATIVE_PATH,
) -> Path:
    """Return the absolute path of the manifest under *project_root*.

    Only the project root is checked; whether the manifest file itself
    exists is the reader's concern.

    Raises:
        NotFoundError: If *project_root* does not exist or is not a directory.
    """
    root = Path(project_root).expanduser()
    if not root.is_dir():
        raise NotFoundError(f"Project root not found: {root}")
    return (root / relative_path).resolve()


def find_project_root(start: str | Path) -> Path:
    """Walk upward from *start* to the enclosing Unity project root.

    *start* may be a file, any directory inside the project, or the
    project's ``Assets`` data folder (whose parent is the root).

    Raises:
        NotFoundError: If no ancestor looks like a Unity project.
    """
    path = Path(start).expanduser().resolve()
    if path.is_file():
        path = path.parent
    if path.name == "Assets" and path.parent.joinpath("ProjectSettings").is_dir():
        return path.parent

    for candidate in (path, *path.parents):
        if (candidate / MANIFEST_RELATIVE_PATH).is_file():
            return candidate
        if all((candidate / d).is_dir() for d in _PROJECT_MARKER_DIRS):
            return candidate

    raise NotFoundError(f"No Unity project found at or above {start}")
