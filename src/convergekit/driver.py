"""`update cluster` driver.

One invocation runs as a single synchronous sequence:

1) validate input and resolve the ExecutionPlan (no side effects)
2) load the cluster and instance groups
3) bootstrap actions (legacy SSH key import)
4) invoke the engine exactly once
5) dry run: report pending changes and stop
6) apply: export kubeconfig, then narrate the outcome
"""

from __future__ import annotations

import sys
import threading
from dataclasses import dataclass, field
from typing import TextIO

from convergekit.audit.explain import ExplainLog
from convergekit.bootstrap.ssh_key import import_legacy_ssh_key
from convergekit.core.modes import Backend
from convergekit.core.plan import ExecutionPlan, build_execution_plan
from convergekit.core.request import ConvergenceRequest
from convergekit.engine.base import (
    ConvergenceEngine,
    ConvergenceResult,
    EngineRequest,
    FileAsset,
    ImageAsset,
)
from convergekit.errors import ConvergeError, ConvergenceCancelled
from convergekit.kubeconfig.builder import (
    KubeconfigBuilder,
    KubeconfigMergePolicy,
    KubeconfigWriter,
)
from convergekit.kubeconfig.contexts import ContextStore, has_context
from convergekit.kubeconfig.identity import (
    NO_CREDENTIAL_ADVISORY,
    KubeconfigOptions,
    resolve_kubeconfig_options,
    select_identity,
)
from convergekit.report.narrative import NarrativeContext, dry_run_message, render_outcome
from convergekit.state.models import Cluster, InstanceGroup, uses_bastion
from convergekit.state.store import ClusterStore, CredentialStore


@dataclass
class Collaborators:
    clusters: ClusterStore
    credentials: CredentialStore
    engine: ConvergenceEngine
    kubeconfig_builder: KubeconfigBuilder
    kubeconfig_writer: KubeconfigWriter
    contexts: ContextStore


@dataclass
class UpdateClusterResults:
    plan: ExecutionPlan
    cluster: Cluster | None = None
    backend_used: Backend | None = None
    task_outcomes: dict[str, dict] = field(default_factory=dict)
    image_assets: list[ImageAsset] = field(default_factory=list)
    file_assets: list[FileAsset] = field(default_factory=list)
    first_run: bool = False
    kubeconfig_exported: bool = False


def _export_kubeconfig(
    cluster: Cluster,
    options: KubeconfigOptions,
    collaborators: Collaborators,
    *,
    err: TextIO,
    explain: ExplainLog,
) -> bool:
    """Write the kubeconfig and report whether this is the first run."""
    try:
        first_run = not has_context(collaborators.contexts, cluster.name)
    except ConvergeError as e:
        # Unknown state counts as "seen before" so first-run text is not repeated.
        print(f"WARNING: error reading kubeconfig: {e}", file=err)
        first_run = False

    print("INFO: Exporting kubeconfig for cluster", file=err)
    identity = select_identity(options)
    doc = collaborators.kubeconfig_builder.build(cluster, identity, internal=options.internal)
    collaborators.kubeconfig_writer.write(doc, KubeconfigMergePolicy(set_current_context=True))

    if not identity.has_credential:
        print(f"WARNING: {NO_CREDENTIAL_ADVISORY}", file=err)
    explain.kubeconfig_exported(doc, identity, first_run=first_run)
    return first_run


def run_update_cluster(
    request: ConvergenceRequest,
    collaborators: Collaborators,
    *,
    out: TextIO,
    err: TextIO | None = None,
    explain: ExplainLog | None = None,
    cancel: threading.Event | None = None,
) -> UpdateClusterResults:
    if err is None:
        err = sys.stderr
    if explain is None:
        explain = ExplainLog()
    kubeconfig_options = resolve_kubeconfig_options(
        create=request.create_kubeconfig,
        admin_ttl_s=request.admin_ttl_s,
        user=request.user,
        internal=request.internal,
    )
    plan = build_execution_plan(request)
    explain.plan_resolved(request.cluster_name, plan)
    for flag in kubeconfig_options.implied_by:
        print(f"INFO: {flag} implies --create-kube-config", file=err)

    results = UpdateClusterResults(plan=plan)
    cluster = collaborators.clusters.get_cluster(request.cluster_name)
    instance_groups: list[InstanceGroup] = collaborators.clusters.list_instance_groups(cluster.name)
    results.cluster = cluster

    if request.ssh_public_key:
        key_path = import_legacy_ssh_key(
            request.ssh_public_key,
            collaborators.credentials,
            cluster_name=cluster.name,
            out=out,
            err=err,
        )
        explain.ssh_key_imported(key_path)

    engine_request = EngineRequest(
        cluster=cluster,
        instance_groups=instance_groups,
        mode=plan.mode,
        backend=plan.backend,
        phase=plan.phase,
        out_dir=plan.out_dir,
        lifecycle_overrides=plan.lifecycle_overrides,
        get_assets=request.get_assets,
        allow_downgrade=request.allow_downgrade,
        cancel=cancel,
    )
    explain.engine_invoked(engine_request)
    result: ConvergenceResult = collaborators.engine.converge(engine_request)
    if cancel is not None and cancel.is_set():
        raise ConvergenceCancelled("convergence cancelled; kubeconfig and report skipped")
    explain.engine_completed(result)

    results.backend_used = result.backend_used
    results.task_outcomes = result.task_outcomes
    results.image_assets = result.image_assets
    results.file_assets = result.file_assets

    if plan.is_dry_run:
        if not request.get_assets:
            message = dry_run_message(result.has_changes())
            print(message, file=out)
            explain.dry_run_report(message)
        return results

    if kubeconfig_options.create:
        results.first_run = _export_kubeconfig(
            cluster,
            kubeconfig_options,
            collaborators,
            err=err,
            explain=explain,
        )
        results.kubeconfig_exported = True

    if request.get_assets:
        return results

    ctx = NarrativeContext(
        first_run=results.first_run,
        backend=plan.backend,
        cluster_name=cluster.name,
        out_dir=plan.out_dir,
        master_public_name=cluster.master_public_name,
        bastion_present=uses_bastion(instance_groups),
        bastion_public_name=cluster.bastion_public_name or None,
    )
    out.write(render_outcome(ctx))
    explain.narrative_emitted(ctx)
    return results
