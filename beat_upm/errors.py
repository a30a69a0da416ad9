"""Installer errors.

Every component raises a subclass of :class:`InstallerError`; the coordinator
is the only place that catches them.
"""


class InstallerError(Exception):
    """Base class for all installer failures."""


class NotFoundError(InstallerError):
    """The project root or the manifest file could not be found."""


class ManifestIOError(InstallerError):
    """The manifest could not be read, decoded, or written."""


class MalformedStructureError(InstallerError):
    """The manifest's brace/bracket structure could not be located."""


class ConfigError(InstallerError):
    """The installer configuration is invalid."""
