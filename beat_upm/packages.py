"""Package client -- asynchronous "add package by identifier" requests.

Mirrors the Unity package manager's request objects: :meth:`PackageClient.add`
returns immediately with an :class:`AddRequest` that the caller polls from
the update loop until ``is_completed`` turns True.
"""

from __future__ import annotations

import abc
import logging
import shlex
import subprocess
import tempfile
from enum import Enum
from pathlib import Path
from typing import IO

logger = logging.getLogger(__name__)


class RequestStatus(Enum):
    IN_PROGRESS = "in_progress"
    SUCCESS = "success"
    FAILURE = "failure"


class AddRequest:
    """A pending or finished package-add request."""

    def __init__(self, package_id: str):
        self.package_id = package_id
        self.status = RequestStatus.IN_PROGRESS
        self.error = ""

    @property
    def is_completed(self) -> bool:
        if self.status == RequestStatus.IN_PROGRESS:
            self.refresh()
        return self.status != RequestStatus.IN_PROGRESS

    def refresh(self) -> None:
        """Update ``status`` from the underlying operation. Must not block."""

    def complete(self, error: str = "") -> None:
        self.error = error
        self.status = RequestStatus.FAILURE if error else RequestStatus.SUCCESS

    def cancel(self) -> None:
        """Abandon the request. An unfinished request completes as a failure."""
        if self.status == RequestStatus.IN_PROGRESS:
            self.complete("cancelled")


class PackageClient(abc.ABC):
    """Starts package installations in the host's package manager."""

    @abc.abstractmethod
    def add(self, package_id: str) -> AddRequest:
        """Request installation of *package_id* without waiting for it."""


class CommandAddRequest(AddRequest):
    """An add request backed by a child process."""

    def __init__(self, package_id: str, process: subprocess.Popen, stderr: IO[str]):
        super().__init__(package_id)
        self.process = process
        self._stderr = stderr

    def refresh(self) -> None:
        returncode = self.process.poll()
        if returncode is None:
            return
        self._stderr.seek(0)
        output = self._stderr.read().strip()
        self._stderr.close()
        if returncode == 0:
            self.complete()
        else:
            self.complete(output or f"command exited with status {returncode}")

    def cancel(self) -> None:
        if self.status != RequestStatus.IN_PROGRESS:
            return
        if self.process.poll() is None:
            self.process.terminate()
            try:
                self.process.wait(timeout=5)
            except subprocess.TimeoutExpired:
                self.process.kill()
                self.process.wait()
        self._stderr.close()
        logger.debug("[Beat UPM] Cancelled request for %s", self.package_id)
        self.complete("cancelled")


class CommandPackageClient(PackageClient):
    """Adds packages by running a command-line package tool.

    *command* is an argument list in which ``{package}`` is replaced by the
    package identifier, e.g. ``["openupm", "add", "{package}"]``. The command
    runs in the project root.
    """

    def __init__(self, command: list[str] | str, project_root: str | Path):
        if isinstance(command, str):
            command = shlex.split(command)
        if not command:
            raise ValueError("Package command must not be empty")
        self.command = list(command)
        self.project_root = Path(project_root)

    def add(self, package_id: str) -> AddRequest:
        args = [part.replace("{package}", package_id) for part in self.command]
        logger.debug("[Beat UPM] Running %s", shlex.join(args))
        # Temp file, not a pipe: nothing reads it until the child exits.
        stderr = tempfile.TemporaryFile(mode="w+", encoding="utf-8")
        try:
            process = subprocess.Popen(
                args,
                cwd=self.project_root,
                stdout=subprocess.DEVNULL,
                stderr=stderr,
            )
        except OSError as e:
            stderr.close()
            request = AddRequest(package_id)
            request.complete(f"could not run {args[0]}: {e}")
            return request
        return CommandAddRequest(package_id, process, stderr)
