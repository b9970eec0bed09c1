from __future__ import annotations

from dataclasses import dataclass

from convergekit.kubeconfig.kubectl import check_kubectl


class ContextStore:
    def list_contexts(self) -> list[str]:
        raise NotImplementedError


@dataclass
class KubectlContextStore(ContextStore):
    kubectl: str = "kubectl"

    def list_contexts(self) -> list[str]:
        result = check_kubectl(
            self.kubectl,
            ["config", "get-contexts", "-o", "name"],
            action="error getting config from kubectl",
        )
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def has_context(store: ContextStore, name: str) -> bool:
    return name in store.list_contexts()
