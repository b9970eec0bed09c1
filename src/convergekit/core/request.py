from __future__ import annotations

from dataclasses import dataclass

from convergekit.core.modes import Backend


@dataclass(frozen=True)
class ConvergenceRequest:
    """Operator intent for one `update cluster` invocation.

    admin_ttl_s
    Lifetime of an exported admin credential; 0 means no admin credential.

    get_assets
    Only collect image/file assets; skip reporting and kubeconfig export.
    """

    cluster_name: str
    yes: bool = False
    target: str = Backend.DIRECT.value
    phase: str = ""
    lifecycle_overrides: tuple[str, ...] = ()
    ssh_public_key: str = ""
    out_dir: str = ""
    create_kubeconfig: bool = True
    admin_ttl_s: int = 0
    user: str = ""
    internal: bool = False
    get_assets: bool = False
    allow_downgrade: bool = False
