import pytest

from convergekit.core.lifecycle import Lifecycle
from convergekit.core.modes import Backend, Mode
from convergekit.core.phases import Phase
from convergekit.core.plan import build_execution_plan, default_out_dir, resolve_target
from convergekit.core.request import ConvergenceRequest
from convergekit.errors import InputValidationError


def test_direct_without_yes_is_dry_run() -> None:
    assert resolve_target("direct", False) == (Mode.DRY_RUN, Backend.DRYRUN)


def test_direct_with_yes_applies() -> None:
    assert resolve_target("direct", True) == (Mode.APPLY, Backend.DIRECT)


@pytest.mark.parametrize("yes", [False, True])
def test_dryrun_target_never_applies(yes: bool) -> None:
    assert resolve_target("dryrun", yes) == (Mode.DRY_RUN, Backend.DRYRUN)


@pytest.mark.parametrize("yes", [False, True])
@pytest.mark.parametrize("target", ["terraform", "cloudformation"])
def test_rendering_targets_always_apply(target: str, yes: bool) -> None:
    mode, backend = resolve_target(target, yes)
    assert mode == Mode.APPLY
    assert backend.value == target


@pytest.mark.parametrize("target", ["", "Direct", "pulumi"])
def test_unknown_target_fails_fast(target: str) -> None:
    with pytest.raises(InputValidationError) as excinfo:
        resolve_target(target, True)
    assert "direct, dryrun, terraform, cloudformation" in str(excinfo.value)


@pytest.mark.parametrize(
    ("target", "expected"),
    [
        (Backend.TERRAFORM, "out/terraform"),
        (Backend.CLOUDFORMATION, "out/cloudformation"),
        (Backend.DIRECT, "out"),
        (Backend.DRYRUN, "out"),
    ],
)
def test_default_out_dir(target: Backend, expected: str) -> None:
    assert default_out_dir(target) == expected
    assert default_out_dir(target, "custom/dir") == "custom/dir"


def test_direct_without_yes_ignores_other_flags() -> None:
    request = ConvergenceRequest(
        cluster_name="demo.example.com",
        target="direct",
        yes=False,
        phase="network",
        out_dir="elsewhere",
        admin_ttl_s=3600,
        internal=True,
    )
    plan = build_execution_plan(request)
    assert plan.mode == Mode.DRY_RUN
    assert plan.backend == Backend.DRYRUN
    assert plan.requested_target == Backend.DIRECT


def test_build_plan_is_deterministic() -> None:
    request = ConvergenceRequest(
        cluster_name="demo.example.com",
        target="terraform",
        phase="iam",
        lifecycle_overrides=("SecurityGroups=Ignore",),
    )
    first = build_execution_plan(request)
    second = build_execution_plan(request)
    assert first == second
    assert hash(first) == hash(second)
    assert first.phase == Phase.SECURITY
    assert first.out_dir == "out/terraform"
    assert first.lifecycle_overrides == {"SecurityGroups": Lifecycle.IGNORE}
    assert first.to_dict() == {
        "mode": "apply",
        "backend": "terraform",
        "requested_target": "terraform",
        "phase": "security",
        "out_dir": "out/terraform",
        "lifecycle_overrides": {"SecurityGroups": "Ignore"},
    }


def test_build_plan_rejects_bad_override_before_anything_else() -> None:
    request = ConvergenceRequest(cluster_name="c", lifecycle_overrides=("A=B=C",))
    with pytest.raises(InputValidationError):
        build_execution_plan(request)
