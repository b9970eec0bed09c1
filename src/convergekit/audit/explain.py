"""Decision trail for `update cluster`.

One JSON line per driver step:

    {"ts": ..., "event": ..., "cluster": ..., "payload": {...}}

An ExplainLog without a path records nothing, so the driver reports every
step unconditionally and payload shaping lives here rather than at call sites.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from convergekit.core.plan import ExecutionPlan
from convergekit.engine.base import ConvergenceResult, EngineRequest
from convergekit.kubeconfig.builder import KubeconfigDocument
from convergekit.kubeconfig.identity import KubeconfigIdentity
from convergekit.report.narrative import NarrativeContext


@dataclass
class ExplainLog:
    path: Path | None = None
    cluster: str = ""

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def emit(self, event: str, payload: dict) -> None:
        if self.path is None:
            return
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "cluster": self.cluster,
            "payload": payload,
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, ensure_ascii=False, sort_keys=True) + "\n")

    def plan_resolved(self, cluster_name: str, plan: ExecutionPlan) -> None:
        self.cluster = cluster_name
        self.emit("plan_resolved", plan.to_dict())

    def ssh_key_imported(self, path: Path) -> None:
        self.emit("ssh_key_imported", {"path": str(path)})

    def engine_invoked(self, request: EngineRequest) -> None:
        self.emit(
            "engine_invoked",
            {
                "backend": request.backend.value,
                "mode": request.mode.value,
                "phase": request.phase.value or "all",
                "instance_groups": [group.name for group in request.instance_groups],
                "get_assets": request.get_assets,
                "allow_downgrade": request.allow_downgrade,
            },
        )

    def engine_completed(self, result: ConvergenceResult) -> None:
        self.emit(
            "engine_completed",
            {
                "backend_used": result.backend_used.value,
                "tasks": len(result.task_outcomes),
                "has_pending_changes": result.has_pending_changes,
                "image_assets": len(result.image_assets),
                "file_assets": len(result.file_assets),
            },
        )

    def dry_run_report(self, message: str) -> None:
        self.emit("dry_run_report", {"message": message})

    def kubeconfig_exported(
        self,
        doc: KubeconfigDocument,
        identity: KubeconfigIdentity,
        *,
        first_run: bool,
    ) -> None:
        self.emit(
            "kubeconfig_exported",
            {
                "context": doc.context_name,
                "server": doc.server,
                "identity": identity.kind.value,
                "embeds_credential": doc.embeds_credential,
                "first_run": first_run,
            },
        )

    def narrative_emitted(self, ctx: NarrativeContext) -> None:
        self.emit(
            "narrative_emitted",
            {
                "first_run": ctx.first_run,
                "backend": ctx.backend.value,
                "bastion_present": ctx.bastion_present,
            },
        )
