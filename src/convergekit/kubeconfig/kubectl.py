"""kubectl invocation.

run_kubectl never raises on process failure; the KubectlResult says what went
wrong. check_kubectl turns a failed result into KubeconfigError.
"""

from __future__ import annotations

import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from convergekit.errors import KubeconfigError

DEFAULT_TIMEOUT_S = 20.0


@dataclass(frozen=True)
class KubectlResult:
    argv: tuple[str, ...]
    rc: int
    stdout: str = ""
    stderr: str = ""
    # not_found, exec_failed or timeout: kubectl never produced an exit code.
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.rc == 0

    def describe(self) -> str:
        stderr = self.stderr.strip()
        if self.error == "not_found":
            return f"kubectl not found: {stderr}"
        if self.error == "exec_failed":
            return f"kubectl could not be executed: {stderr}"
        if self.error == "timeout":
            return "kubectl timed out"
        return stderr or f"kubectl exited with rc={self.rc}"


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _kubectl_exec(
    argv: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> KubectlResult:
    args = tuple(argv)
    try:
        cp = subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            timeout=timeout_s,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        return KubectlResult(argv=args, rc=127, stderr=str(e), error="not_found")
    except subprocess.TimeoutExpired as e:
        return KubectlResult(
            argv=args,
            rc=124,
            stdout=_as_text(e.stdout),
            stderr=_as_text(e.stderr),
            error="timeout",
        )
    except OSError as e:
        # Not executable, bad interpreter line and similar exec failures.
        return KubectlResult(argv=args, rc=126, stderr=str(e), error="exec_failed")
    return KubectlResult(argv=args, rc=cp.returncode, stdout=cp.stdout, stderr=cp.stderr)


def run_kubectl(
    kubectl: str,
    args: Sequence[str],
    *,
    kubeconfig: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout_s: float = DEFAULT_TIMEOUT_S,
) -> KubectlResult:
    argv = [kubectl, *args]
    if kubeconfig is not None:
        argv.append(f"--kubeconfig={kubeconfig}")
    return _kubectl_exec(argv, env=env, timeout_s=timeout_s)


def check_kubectl(
    kubectl: str,
    args: Sequence[str],
    *,
    action: str,
    kubeconfig: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> KubectlResult:
    result = run_kubectl(kubectl, args, kubeconfig=kubeconfig, env=env)
    if not result.ok:
        raise KubeconfigError(f"{action}: {result.describe()}")
    return result
