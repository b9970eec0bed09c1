"""Execution plan resolution.

The plan is a pure function of the request: the same request always yields an
equal plan, and nothing here touches the state store, the engine or the
filesystem.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from convergekit.core.lifecycle import LifecycleOverrides, parse_lifecycle_overrides
from convergekit.core.modes import Backend, Mode
from convergekit.core.phases import Phase, parse_phase
from convergekit.core.request import ConvergenceRequest
from convergekit.errors import InputValidationError

_DEFAULT_OUT_DIRS = {
    Backend.TERRAFORM: "out/terraform",
    Backend.CLOUDFORMATION: "out/cloudformation",
}
_DEFAULT_OUT_DIR = "out"


@dataclass(frozen=True)
class ExecutionPlan:
    mode: Mode
    backend: Backend
    phase: Phase
    out_dir: str
    requested_target: Backend
    lifecycle_overrides: LifecycleOverrides = field(default_factory=LifecycleOverrides)

    def __post_init__(self) -> None:
        if self.backend == Backend.DRYRUN and self.mode != Mode.DRY_RUN:
            raise ValueError("the dryrun backend cannot apply changes")
        if self.backend == Backend.DIRECT and self.mode != Mode.APPLY:
            raise ValueError("the direct backend only runs in apply mode")

    @property
    def is_dry_run(self) -> bool:
        return self.mode == Mode.DRY_RUN

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "backend": self.backend.value,
            "requested_target": self.requested_target.value,
            "phase": self.phase.value or "all",
            "out_dir": self.out_dir,
            "lifecycle_overrides": self.lifecycle_overrides.to_dict(),
        }


def target_names() -> list[str]:
    return [backend.value for backend in Backend]


def parse_target(target: str) -> Backend:
    for backend in Backend:
        if backend.value == target:
            return backend
    raise InputValidationError(
        f"unsupported target {target!r}, available targets: {', '.join(target_names())}"
    )


def resolve_target(target: str, yes: bool) -> tuple[Mode, Backend]:
    """Decide whether this run may mutate live infrastructure.

    Only the direct target touches live resources, so only it is gated on
    --yes. Terraform and CloudFormation just render files and always apply.
    """
    requested = parse_target(target)
    if requested == Backend.DIRECT:
        if not yes:
            return Mode.DRY_RUN, Backend.DRYRUN
        return Mode.APPLY, Backend.DIRECT
    if requested == Backend.DRYRUN:
        return Mode.DRY_RUN, Backend.DRYRUN
    return Mode.APPLY, requested


def default_out_dir(target: Backend, out_dir: str = "") -> str:
    if out_dir:
        return out_dir
    return _DEFAULT_OUT_DIRS.get(target, _DEFAULT_OUT_DIR)


def build_execution_plan(request: ConvergenceRequest) -> ExecutionPlan:
    mode, backend = resolve_target(request.target, request.yes)
    requested = parse_target(request.target)
    return ExecutionPlan(
        mode=mode,
        backend=backend,
        phase=parse_phase(request.phase),
        out_dir=default_out_dir(requested, request.out_dir),
        requested_target=requested,
        lifecycle_overrides=parse_lifecycle_overrides(request.lifecycle_overrides),
    )
