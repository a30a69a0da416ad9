"""Install coordinator — the idempotent entry point of the installer.

Two levels of operation:

- :meth:`InstallCoordinator.ensure_registry_installed` performs
  locate → read → check → patch → write on one manifest and raises on failure.
- :meth:`InstallCoordinator.run` is the one-time installer: it honours the
  project's marker, ensures the registry, requests the companion package,
  polls that request from the update loop, and only then sets the marker.
  Errors stop here; they are logged and reported to the operator, never
  raised to the host.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable

from beat_upm.config import InstallerConfig
from beat_upm.errors import InstallerError
from beat_upm.manifest.locator import MANIFEST_RELATIVE_PATH, locate_manifest
from beat_upm.manifest.patcher import PatchStrategy, patch_manifest
from beat_upm.manifest.presence import is_registry_present
from beat_upm.manifest.reader import read_manifest
from beat_upm.manifest.writer import write_manifest
from beat_upm.markers import DEFAULT_MARKER_KEY, MarkerStore
from beat_upm.models import (
    BEAT_CORE_PACKAGE,
    BEAT_REGISTRY,
    InstallReport,
    InstallResult,
    RunStatus,
    ScopedRegistry,
)
from beat_upm.notify import Notifier
from beat_upm.packages import AddRequest, PackageClient, RequestStatus
from beat_upm.scheduler import UpdateLoop

logger = logging.getLogger(__name__)

NOTIFY_TITLE = "Beat"


class InstallCoordinator:
    """Runs the Beat installer against Unity projects.

    Args:
        markers: Store holding the "already ran" flag for the project.
        loop: Update loop used for deferred runs and request polling.
        packages: Client for the companion package request. When None the
            run completes as soon as the registry is in place.
        notifier: Receives one success or failure message per run.
        self_deregister: Called after a fully successful run.
    """

    def __init__(
        self,
        markers: MarkerStore,
        loop: UpdateLoop | None = None,
        packages: PackageClient | None = None,
        notifier: Notifier | None = None,
        *,
        registry: ScopedRegistry = BEAT_REGISTRY,
        package_id: str = BEAT_CORE_PACKAGE,
        marker_key: str = DEFAULT_MARKER_KEY,
        strategy: PatchStrategy = PatchStrategy.TEXTUAL,
        manifest_path: str | Path = MANIFEST_RELATIVE_PATH,
        self_deregister: Callable[[], object] | None = None,
    ):
        self.markers = markers
        self.loop = loop or UpdateLoop()
        self.packages = packages
        self.notifier = notifier or Notifier()
        self.registry = registry
        self.package_id = package_id
        self.marker_key = marker_key
        self.strategy = strategy
        self.manifest_path = Path(manifest_path)
        self.self_deregister = self_deregister
        self.last_report: InstallReport | None = None
        self.pending_request: AddRequest | None = None
        self._watcher: Callable[[], None] | None = None

    @classmethod
    def from_config(
        cls,
        config: InstallerConfig,
        project_root: str | Path,
        loop: UpdateLoop | None = None,
        packages: PackageClient | None = None,
        notifier: Notifier | None = None,
        self_deregister: Callable[[], object] | None = None,
    ) -> InstallCoordinator:
        return cls(
            markers=config.marker_store(project_root),
            loop=loop,
            packages=packages,
            notifier=notifier,
            registry=config.registry,
            package_id=config.package_id,
            marker_key=config.marker_key,
            strategy=config.strategy,
            manifest_path=config.manifest_path,
            self_deregister=self_deregister,
        )

    # -- manifest -------------------------------------------------------

    def ensure_registry_installed(
        self,
        project_root: str | Path,
        entry: ScopedRegistry | None = None,
    ) -> InstallResult:
        """Make sure *entry* is declared in the project's manifest.

        Safe to call repeatedly: a registry that is already declared is left
        alone and the file is not rewritten.

        Raises:
            NotFoundError: If the project root or manifest is missing.
            ManifestIOError: If the manifest cannot be read or written.
            MalformedStructureError: If the manifest cannot be patched.
        """
        entry = entry or self.registry
        path = locate_manifest(project_root, self.manifest_path)
        text = read_manifest(path)

        if is_registry_present(text, entry.name):
            logger.info("[Beat UPM] %s registry already present, skipping.", entry.name)
            return InstallResult.ALREADY_PRESENT

        updated = patch_manifest(text, entry, self.strategy)
        if updated == text:
            logger.info("[Beat UPM] %s registry already present, skipping.", entry.name)
            return InstallResult.ALREADY_PRESENT

        write_manifest(path, updated)
        logger.info("[Beat UPM] %s scoped registry added to %s.", entry.name, path)
        return InstallResult.INSTALLED

    # -- one-time run ---------------------------------------------------

    def schedule(self, project_root: str | Path) -> bool:
        """Defer a run to the next loop tick unless the project is already done.

        The marker is read here, once; the deferred run does not re-check it.

        Returns:
            True if a run was scheduled.
        """
        try:
            if self.markers.is_done(self.marker_key):
                logger.debug("[Beat UPM] Marker %s set, not scheduling.", self.marker_key)
                return False
        except (InstallerError, OSError):
            logger.exception("[Beat UPM] Could not read marker %s", self.marker_key)
            return False

        def deferred_run() -> None:
            self.loop.unsubscribe(deferred_run)
            self._run(Path(project_root))

        self.loop.subscribe(deferred_run)
        return True

    def run(self, project_root: str | Path, force: bool = False) -> InstallReport:
        """Run the installer once for *project_root*.

        With *force* the marker is ignored, which re-runs a completed install
        (the registry step is then a no-op).
        """
        root = Path(project_root)
        if not force:
            try:
                done = self.markers.is_done(self.marker_key)
            except (InstallerError, OSError) as e:
                return self._fail(InstallReport(project_root=root), e, "read marker")
            if done:
                logger.info("[Beat UPM] Already installed for %s, skipping.", root)
                self.last_report = InstallReport(project_root=root, status=RunStatus.SKIPPED)
                return self.last_report
        return self._run(root)

    def _run(self, root: Path) -> InstallReport:
        report = InstallReport(project_root=root)
        self.last_report = report

        try:
            report.registry_result = self.ensure_registry_installed(root)
        except InstallerError as e:
            return self._fail(report, e, f"install registry into {root / self.manifest_path}")

        if self.packages is None:
            self._complete(report)
            return report

        report.package_id = self.package_id
        request = self.packages.add(self.package_id)
        self._watch(request, report)
        return report

    def _watch(self, request: AddRequest, report: InstallReport) -> None:
        def check_add_request() -> None:
            if not request.is_completed:
                return
            self.loop.unsubscribe(check_add_request)
            self.pending_request = None
            self._watcher = None

            if request.status == RequestStatus.SUCCESS:
                logger.info("[Beat UPM] Installed %s package.", request.package_id)
                self._complete(report)
            else:
                logger.error(
                    "[Beat UPM] Failed to install %s: %s", request.package_id, request.error
                )
                report.status = RunStatus.FAILED
                report.error = request.error
                self.notifier.notify(
                    NOTIFY_TITLE,
                    f"Failed to install {request.package_id}: {request.error}",
                    error=True,
                )

        report.status = RunStatus.PENDING
        self.pending_request = request
        self._watcher = check_add_request
        self.loop.subscribe(check_add_request)

    def cancel(self) -> None:
        """Stop waiting for an in-flight package request.

        The request is cancelled and the marker stays unset, so the next run
        retries. The report keeps its ``PENDING`` status.
        """
        request = self.pending_request
        if request is None:
            return
        if self._watcher is not None:
            self.loop.unsubscribe(self._watcher)
        self.pending_request = None
        self._watcher = None
        request.cancel()
        logger.warning("[Beat UPM] Gave up waiting for %s.", request.package_id)

    def _complete(self, report: InstallReport) -> None:
        try:
            self.markers.mark_done(self.marker_key)
        except (InstallerError, OSError) as e:
            self._fail(report, e, f"write marker {self.marker_key}")
            return

        report.status = RunStatus.COMPLETED
        self.notifier.notify(NOTIFY_TITLE, "Registry installed.")

        if self.self_deregister is not None:
            self.self_deregister()

    def _fail(self, report: InstallReport, error: Exception, operation: str) -> InstallReport:
        logger.error("[Beat UPM] Failed to %s", operation, exc_info=error)
        report.status = RunStatus.FAILED
        report.error = str(error)
        self.last_report = report
        self.notifier.notify(
            NOTIFY_TITLE,
            "Failed to install registry. Check console for details.",
            error=True,
        )
        return report
