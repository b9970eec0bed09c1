"""Operator guidance after a convergence run.

Every message is a pure function of the plan, the engine result and the
NarrativeContext; call sites never format guidance themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from convergekit.config import OPERATOR_CLI
from convergekit.core.modes import Backend

MUST_CONFIRM_MESSAGE = "Must specify --yes to apply changes"
NO_CHANGES_MESSAGE = "No changes need to be applied"

CLUSTER_STARTING_MESSAGE = "Cluster is starting.  It should be ready in a few minutes."
CHANGES_APPLIED_MESSAGE = "Cluster changes have been applied to the cloud."
ROLLING_UPDATE_REMINDER = (
    f"Changes may require instances to restart: {OPERATOR_CLI} rolling-update cluster"
)
SSH_USER = "ubuntu"
CLOUDFORMATION_TEMPLATE = "kubernetes.json"


@dataclass(frozen=True)
class NarrativeContext:
    first_run: bool
    backend: Backend
    cluster_name: str
    out_dir: str
    master_public_name: str
    bastion_present: bool = False
    bastion_public_name: str | None = None


def dry_run_message(has_pending_changes: bool) -> str:
    if has_pending_changes:
        return MUST_CONFIRM_MESSAGE
    return NO_CHANGES_MESSAGE


def cloudformation_stack_name(cluster_name: str) -> str:
    return "kubernetes-" + cluster_name.replace(".", "-")


def _rendered_output_lines(ctx: NarrativeContext) -> list[str]:
    if ctx.backend == Backend.TERRAFORM:
        lines = ["", f"Terraform output has been placed into {ctx.out_dir}"]
        if ctx.first_run:
            lines += [
                "Run these commands to apply the configuration:",
                f"   cd {ctx.out_dir}",
                "   terraform plan",
                "   terraform apply",
                "",
            ]
        return lines

    lines = ["", f"Cloudformation output has been placed into {ctx.out_dir}"]
    if ctx.first_run:
        template = PurePosixPath(ctx.out_dir) / CLOUDFORMATION_TEMPLATE
        lines += [
            "Run this command to apply the configuration:",
            "   aws cloudformation create-stack --capabilities CAPABILITY_NAMED_IAM "
            f"--stack-name {cloudformation_stack_name(ctx.cluster_name)} "
            f"--template-body file://{template}",
            "",
        ]
    return lines


def _ssh_hint(ctx: NarrativeContext) -> str:
    if not ctx.bastion_present:
        return f" * ssh to the master: ssh -i ~/.ssh/id_rsa {SSH_USER}@{ctx.master_public_name}"
    if ctx.bastion_public_name:
        return f" * ssh to the bastion: ssh -A -i ~/.ssh/id_rsa {SSH_USER}@{ctx.bastion_public_name}"
    return " * to ssh to the bastion, you probably want to configure a bastionPublicName."


def first_run_suggestions(ctx: NarrativeContext) -> list[str]:
    return [
        "Suggestions:",
        f" * validate cluster: {OPERATOR_CLI} validate cluster --wait 10m",
        " * list nodes: kubectl get nodes --show-labels",
        _ssh_hint(ctx),
        f" * the {SSH_USER} user is specific to Ubuntu. If not using Ubuntu please use the "
        "appropriate user based on your OS.",
        f" * read about installing addons at: https://{OPERATOR_CLI}.sigs.k8s.io/operations/addons.",
        "",
    ]


def render_outcome(ctx: NarrativeContext) -> str:
    """Guidance text for an applied run; ends with a newline."""
    if ctx.backend in {Backend.TERRAFORM, Backend.CLOUDFORMATION}:
        lines = _rendered_output_lines(ctx)
    elif ctx.first_run:
        lines = ["", CLUSTER_STARTING_MESSAGE, ""]
    else:
        lines = ["", CHANGES_APPLIED_MESSAGE, ""]

    if ctx.first_run:
        lines += first_run_suggestions(ctx)
    else:
        # Whether a restart is really needed is not detected here.
        lines += ["", ROLLING_UPDATE_REMINDER, ""]
    return "\n".join(lines) + "\n"
