# --- test import path bootstrap (src/ layout) ---
import sys as _sys
from pathlib import Path as _Path

_SRC = _Path(__file__).resolve().parents[1] / "src"
if _SRC.is_dir():
    _p = str(_SRC)
    if _p not in _sys.path:
        _sys.path.insert(0, _p)
# --- end bootstrap ---

import json
import sys
import tempfile
from pathlib import Path

import pytest


@pytest.fixture
def ck_path() -> Path:
    repo_root = Path(__file__).resolve().parents[1]
    local = repo_root / ".venv" / "bin" / "ck"
    if local.exists():
        return local

    # Use a repo-local shim when local venv entrypoint is unavailable.
    shim_dir = Path(tempfile.mkdtemp(prefix="ck-shim-"))
    shim = shim_dir / "ck"
    shim.write_text(
        f"""#!/usr/bin/env bash
set -Eeuo pipefail
export PYTHONPATH=\"{repo_root}/src${{PYTHONPATH:+:${{PYTHONPATH}}}}\"
exec \"{sys.executable}\" -c 'import sys; from convergekit.cli import main; raise SystemExit(main())' \"$@\"
""",
        encoding="utf-8",
    )
    shim.chmod(0o755)
    return shim


@pytest.fixture
def fake_kubectl(tmp_path: Path, monkeypatch) -> Path:
    """kubectl stand-in: logs argv to kubectl.log, lists contexts from contexts.txt.

    KUBECONFIG points at tmp_path/kubeconfig so merges never touch the real one.
    """
    bin_dir = tmp_path / "fake-bin"
    bin_dir.mkdir()
    log = tmp_path / "kubectl.log"
    contexts = tmp_path / "contexts.txt"
    script = bin_dir / "kubectl"
    script.write_text(
        f"""#!/usr/bin/env bash
set -Eeuo pipefail
echo "$*" >> "{log}"
if [[ "${{1:-}} ${{2:-}}" == "config get-contexts" ]]; then
  if [[ -f "{contexts}" ]]; then cat "{contexts}"; fi
elif [[ "${{1:-}} ${{2:-}}" == "config view" ]]; then
  echo "apiVersion: v1"
  echo "kind: Config"
fi
""",
        encoding="utf-8",
    )
    script.chmod(0o755)
    monkeypatch.setenv("KUBECONFIG", str(tmp_path / "kubeconfig"))
    return script


def write_cluster_state(
    root: Path,
    name: str = "demo.example.com",
    *,
    instance_groups: list[dict] | None = None,
    bastion_public_name: str | None = None,
) -> Path:
    cluster_dir = root / name
    cluster_dir.mkdir(parents=True, exist_ok=True)
    spec: dict = {"cloudProvider": "aws", "masterPublicName": f"api.{name}"}
    if bastion_public_name is not None:
        spec["topology"] = {"bastion": {"bastionPublicName": bastion_public_name}}
    (cluster_dir / "cluster.json").write_text(
        json.dumps({"name": name, "spec": spec}, indent=2) + "\n",
        encoding="utf-8",
    )
    ig_dir = cluster_dir / "instancegroups"
    ig_dir.mkdir(exist_ok=True)
    groups = instance_groups
    if groups is None:
        groups = [
            {"name": "control-plane", "spec": {"role": "Master", "minSize": 1, "maxSize": 1}},
            {"name": "nodes", "spec": {"role": "Node", "minSize": 2, "maxSize": 2}},
        ]
    for group in groups:
        (ig_dir / f"{group['name']}.json").write_text(json.dumps(group) + "\n", encoding="utf-8")
    return cluster_dir


def write_replay(path: Path, **fields: object) -> Path:
    payload = {"schema_version": "convergence_replay.v0", **fields}
    path.write_text(json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8")
    return path
