"""Remove the installer's own files after a successful run.

Inside a Unity project an editor script is deleted together with its
``.meta`` sidecar, otherwise the asset database reports a dangling GUID.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class SelfDeregisterHook:
    """Deletes the given files (and their ``.meta`` files) when called."""

    def __init__(self, paths: list[str | Path]):
        self.paths = [Path(p) for p in paths]

    def __call__(self) -> list[Path]:
        """Delete every existing target.

        Returns:
            The paths that were actually removed.
        """
        removed: list[Path] = []
        for path in self.paths:
            for target in (path, path.with_name(path.name + ".meta")):
                if not target.is_file():
                    continue
                try:
                    target.unlink()
                except OSError as e:
                    logger.warning("[Beat UPM] Could not delete %s: %s", target, e)
                    continue
                removed.append(target)
                logger.info("[Beat UPM] Removed %s", target)
        return removed
