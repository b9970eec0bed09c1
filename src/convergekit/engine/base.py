"""Convergence engine contract.

The engine owns the task graph, resource diffing and the backends. The driver
builds one EngineRequest, calls converge() exactly once and never retries.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from convergekit.core.lifecycle import LifecycleOverrides
from convergekit.core.modes import Backend, Mode
from convergekit.core.phases import Phase
from convergekit.errors import ConvergeError
from convergekit.state.models import Cluster, InstanceGroup


class ConvergenceEngineError(ConvergeError):
    """Raised by engines when convergence fails."""


@dataclass(frozen=True)
class ImageAsset:
    download_location: str
    canonical_location: str = ""


@dataclass(frozen=True)
class FileAsset:
    download_url: str
    canonical_url: str = ""
    sha256: str = ""


@dataclass(frozen=True)
class EngineRequest:
    cluster: Cluster
    instance_groups: list[InstanceGroup]
    mode: Mode
    backend: Backend
    phase: Phase
    out_dir: str
    lifecycle_overrides: LifecycleOverrides
    get_assets: bool = False
    allow_downgrade: bool = False
    cancel: threading.Event | None = field(default=None, compare=False)

    @property
    def dry_run(self) -> bool:
        return self.mode == Mode.DRY_RUN


@dataclass
class ConvergenceResult:
    backend_used: Backend
    task_outcomes: dict[str, dict] = field(default_factory=dict)
    image_assets: list[ImageAsset] = field(default_factory=list)
    file_assets: list[FileAsset] = field(default_factory=list)
    has_pending_changes: bool = False

    def has_changes(self) -> bool:
        return self.has_pending_changes


class ConvergenceEngine:
    def converge(self, request: EngineRequest) -> ConvergenceResult:
        raise NotImplementedError
