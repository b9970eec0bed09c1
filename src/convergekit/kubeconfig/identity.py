"""Kubeconfig identity selection.

Exactly one identity ends up in the exported context. --admin and --user
cannot be combined; each of --admin, --user and --internal implies
--create-kube-config.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from convergekit.config import OPERATOR_CLI
from convergekit.errors import InputValidationError

# Lifetime used when --admin is given without a value.
DEFAULT_ADMIN_TTL_S = 18 * 3600

NO_CREDENTIAL_ADVISORY = (
    "Exported kubeconfig with no user authentication; use --admin, --user or "
    f"--auth-plugin flags with `{OPERATOR_CLI} export kubeconfig`"
)


class IdentityKind(str, Enum):
    NONE = "none"
    ADMIN_CERT = "admin_cert"
    NAMED_USER = "named_user"
    INTERNAL_DNS = "internal_dns"


@dataclass(frozen=True)
class KubeconfigIdentity:
    kind: IdentityKind
    ttl_s: int = 0
    user: str = ""

    @property
    def has_credential(self) -> bool:
        return self.kind in {IdentityKind.ADMIN_CERT, IdentityKind.NAMED_USER}


@dataclass(frozen=True)
class KubeconfigOptions:
    create: bool
    admin_ttl_s: int = 0
    user: str = ""
    internal: bool = False
    implied_by: tuple[str, ...] = ()


def resolve_kubeconfig_options(
    *,
    create: bool,
    admin_ttl_s: int,
    user: str,
    internal: bool,
) -> KubeconfigOptions:
    """Validate identity flags and apply the --create-kube-config implications.

    implied_by lists the flags that switched kubeconfig export on although the
    operator did not ask for it.
    """
    if admin_ttl_s < 0:
        raise InputValidationError(f"invalid --admin lifetime: {admin_ttl_s}s")
    if admin_ttl_s != 0 and user:
        raise InputValidationError("cannot use both --admin and --user")

    implied: list[str] = []
    if not create:
        if admin_ttl_s != 0:
            implied.append("--admin")
        if user:
            implied.append("--user")
        if internal:
            implied.append("--internal")

    return KubeconfigOptions(
        create=create or bool(implied),
        admin_ttl_s=admin_ttl_s,
        user=user,
        internal=internal,
        implied_by=tuple(implied),
    )


def select_identity(options: KubeconfigOptions) -> KubeconfigIdentity:
    if options.admin_ttl_s != 0:
        return KubeconfigIdentity(kind=IdentityKind.ADMIN_CERT, ttl_s=options.admin_ttl_s)
    if options.user:
        return KubeconfigIdentity(kind=IdentityKind.NAMED_USER, user=options.user)
    if options.internal:
        return KubeconfigIdentity(kind=IdentityKind.INTERNAL_DNS)
    return KubeconfigIdentity(kind=IdentityKind.NONE)
