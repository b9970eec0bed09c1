"""Process configuration.

Only the CLI reads the environment; the driver receives a DriverConfig.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from convergekit.core.lifecycle import split_override_list

# Command named in operator guidance (deprecations, advisories, follow-ups).
OPERATOR_CLI = "kops"

STATE_STORE_ENV_VAR = "CONVERGEKIT_STATE_STORE"
LIFECYCLE_OVERRIDES_ENV_VAR = "CONVERGEKIT_LIFECYCLE_OVERRIDES"
ENGINE_ENV_VAR = "CONVERGEKIT_ENGINE"
KUBECTL_ENV_VAR = "KUBECTL"
KUBECONFIG_ENV_VAR = "KUBECONFIG"
_HOME_CONFIG_DIR = Path(".config") / "convergekit"


def _env_str(environ: Mapping[str, str], name: str) -> str:
    return (environ.get(name) or "").strip()


def default_state_store() -> Path:
    return Path.home() / _HOME_CONFIG_DIR / "state"


def default_kubeconfig() -> Path:
    return Path.home() / ".kube" / "config"


def _kubeconfig_target(environ: Mapping[str, str]) -> Path:
    # kubectl writes new entries into the first file of a KUBECONFIG list.
    for entry in _env_str(environ, KUBECONFIG_ENV_VAR).split(os.pathsep):
        if entry.strip():
            return Path(entry.strip()).expanduser()
    return default_kubeconfig()


@dataclass(frozen=True)
class DriverConfig:
    state_store: Path
    kubeconfig: Path = field(default_factory=default_kubeconfig)
    kubectl: str = "kubectl"
    engine: str = ""
    lifecycle_overrides: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DriverConfig":
        env = os.environ if environ is None else environ
        state_store = _env_str(env, STATE_STORE_ENV_VAR)
        return cls(
            state_store=Path(state_store).expanduser() if state_store else default_state_store(),
            kubeconfig=_kubeconfig_target(env),
            kubectl=_env_str(env, KUBECTL_ENV_VAR) or "kubectl",
            engine=_env_str(env, ENGINE_ENV_VAR),
            lifecycle_overrides=tuple(split_override_list(_env_str(env, LIFECYCLE_OVERRIDES_ENV_VAR))),
        )
