"""One-time scoped registry installer for Unity projects.

Registers the Beat package registry in a project's ``Packages/manifest.json``,
requests the ``beat.core`` companion package, and records that the installer
has run so it never runs twice for the same project.
"""

__version__ = "0.1.0"
