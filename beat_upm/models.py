"""Installer data models — registry descriptors, results, and run reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


@dataclass
class ScopedRegistry:
    """A named, URL-addressed package source restricted to a set of scopes."""

    name: str
    url: str
    scopes: list[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.name:
            raise ValueError("Scoped registry requires a name")
        if not self.url:
            raise ValueError(f"Scoped registry '{self.name}' requires a url")
        if not self.scopes:
            raise ValueError(f"Scoped registry '{self.name}' requires at least one scope")
        self.scopes = list(self.scopes)

    def to_dict(self) -> dict:
        return {"name": self.name, "url": self.url, "scopes": list(self.scopes)}

    @classmethod
    def from_dict(cls, data: dict) -> ScopedRegistry:
        return cls(
            name=data.get("name", ""),
            url=data.get("url", ""),
            scopes=data.get("scopes", []),
        )


# The registry and package this installer exists to add.
BEAT_REGISTRY = ScopedRegistry(
    name="Beat",
    url="https://beat-unity.com/",
    scopes=["beat"],
)

BEAT_CORE_PACKAGE = "beat.core"


class InstallResult(Enum):
    """Outcome of ensuring a registry is present in the manifest."""

    INSTALLED = "installed"
    ALREADY_PRESENT = "already_present"


class RunStatus(Enum):
    """State of a one-time installer run."""

    SKIPPED = "skipped"  # Marker already set for this project
    PENDING = "pending"  # Registry written, package request in flight
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class InstallReport:
    """What happened during a one-time installer run."""

    project_root: Path
    status: RunStatus = RunStatus.PENDING
    registry_result: InstallResult | None = None
    package_id: str = ""
    error: str = ""

    @property
    def is_finished(self) -> bool:
        return self.status != RunStatus.PENDING

    @property
    def succeeded(self) -> bool:
        return self.status in (RunStatus.COMPLETED, RunStatus.SKIPPED)

    def summary(self) -> str:
        parts = [f"{self.project_root}: {self.status.value}"]
        if self.registry_result is not None:
            parts.append(f"registry {self.registry_result.value}")
        if self.package_id:
            parts.append(f"package {self.package_id}")
        if self.error:
            parts.append(f"error: {self.error}")
        return " | ".join(parts)
