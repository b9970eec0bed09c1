"""Legacy --ssh-public-key import.

Deprecated: operators should create the secret directly. The import runs
before the engine and any failure aborts the whole invocation.
"""

from __future__ import annotations

from pathlib import Path
from typing import TextIO

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization

from convergekit.config import OPERATOR_CLI
from convergekit.errors import BootstrapError, ConvergeError
from convergekit.state.store import CredentialStore

SSH_PRIMARY_SLOT = "admin"


def deprecation_notice(cluster_name: str) -> str:
    return (
        "--ssh-public-key on update is deprecated - please use "
        f"`{OPERATOR_CLI} create secret --name {cluster_name} sshpublickey admin -i ~/.ssh/id_rsa.pub` instead"
    )


def read_ssh_public_key(path: str) -> tuple[Path, bytes]:
    """Expand, read and parse an OpenSSH public key file."""
    expanded = Path(path).expanduser()
    try:
        data = expanded.read_bytes()
    except OSError as e:
        raise BootstrapError(f"error reading SSH key file {str(expanded)!r}: {e}") from e
    try:
        serialization.load_ssh_public_key(data.strip())
    except (ValueError, UnsupportedAlgorithm) as e:
        raise BootstrapError(f"error parsing SSH key file {str(expanded)!r}: {e}") from e
    return expanded, data


def import_legacy_ssh_key(
    path: str,
    credentials: CredentialStore,
    *,
    cluster_name: str,
    out: TextIO,
    err: TextIO,
) -> Path:
    print(deprecation_notice(cluster_name), file=out)
    expanded, data = read_ssh_public_key(path)
    try:
        credentials.add_ssh_public_key(SSH_PRIMARY_SLOT, data)
    except ConvergeError as e:
        raise BootstrapError(f"error adding SSH public key: {e}") from e
    except OSError as e:
        raise BootstrapError(f"error adding SSH public key: {e}") from e
    print(f"INFO: Using SSH public key: {expanded}", file=err)
    return expanded
