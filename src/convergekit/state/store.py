"""File-backed cluster state store.

Layout under the store root:

    <root>/<cluster>/cluster.json
    <root>/<cluster>/instancegroups/<name>.json
    <root>/<cluster>/secrets/sshpublickey/<slot>.pub
    <root>/<cluster>/pki/ca.crt
    <root>/<cluster>/pki/ca.key
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from convergekit.errors import ClusterNotFoundError, StateStoreError
from convergekit.state.models import Cluster, InstanceGroup, InstanceGroupRole


class ClusterStore:
    def get_cluster(self, name: str) -> Cluster:
        raise NotImplementedError

    def list_instance_groups(self, cluster_name: str) -> list[InstanceGroup]:
        raise NotImplementedError


class CredentialStore:
    def add_ssh_public_key(self, slot: str, data: bytes) -> None:
        raise NotImplementedError


class KeyStore:
    def get_ca_keypair(self, cluster_name: str) -> tuple[bytes, bytes]:
        """Return (certificate PEM, private key PEM) of the cluster CA."""
        raise NotImplementedError

    def get_ca_certificate(self, cluster_name: str) -> bytes | None:
        raise NotImplementedError


def _read_json_object(path: Path) -> dict:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise StateStoreError(f"error reading {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise StateStoreError(f"{path}: invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise StateStoreError(f"{path}: document must be an object")
    return payload


def _expect_str(payload: dict, key: str, *, source: Path) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise StateStoreError(f"{source}: {key} is required and must be non-empty string")
    return value.strip()


def _expect_size(spec: dict, key: str, *, source: Path) -> int:
    value = spec.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise StateStoreError(f"{source}: spec.{key} must be a non-negative integer, got {value!r}")
    return value


def _parse_cluster(payload: dict, *, source: Path) -> Cluster:
    name = _expect_str(payload, "name", source=source)
    spec = payload.get("spec") or {}
    if not isinstance(spec, dict):
        raise StateStoreError(f"{source}: spec must be an object")
    topology = spec.get("topology") or {}
    if not isinstance(topology, dict):
        raise StateStoreError(f"{source}: spec.topology must be an object")
    bastion = topology.get("bastion") or {}
    if not isinstance(bastion, dict):
        raise StateStoreError(f"{source}: spec.topology.bastion must be an object")
    bastion_public_name = bastion.get("bastionPublicName") or ""
    if not isinstance(bastion_public_name, str):
        raise StateStoreError(f"{source}: spec.topology.bastion.bastionPublicName must be string")

    master_public_name = spec.get("masterPublicName") or f"api.{name}"
    master_internal_name = spec.get("masterInternalName") or ""
    if not isinstance(master_public_name, str) or not isinstance(master_internal_name, str):
        raise StateStoreError(f"{source}: spec.masterPublicName/masterInternalName must be strings")

    return Cluster(
        name=name,
        cloud_provider=str(spec.get("cloudProvider") or ""),
        master_public_name=master_public_name,
        master_internal_name=master_internal_name,
        bastion_public_name=bastion_public_name,
        spec=spec,
    )


def _parse_instance_group(payload: dict, *, source: Path) -> InstanceGroup:
    name = _expect_str(payload, "name", source=source)
    spec = payload.get("spec") or {}
    if not isinstance(spec, dict):
        raise StateStoreError(f"{source}: spec must be an object")
    raw_role = spec.get("role")
    try:
        role = InstanceGroupRole(raw_role)
    except ValueError:
        allowed = ", ".join(role.value for role in InstanceGroupRole)
        raise StateStoreError(
            f"{source}: spec.role {raw_role!r} is not one of: {allowed}"
        ) from None
    return InstanceGroup(
        name=name,
        role=role,
        min_size=_expect_size(spec, "minSize", source=source),
        max_size=_expect_size(spec, "maxSize", source=source),
    )


@dataclass
class FileStateStore(ClusterStore, CredentialStore, KeyStore):
    root: Path
    cluster_name: str = ""

    def _cluster_dir(self, name: str) -> Path:
        return self.root / name

    def get_cluster(self, name: str) -> Cluster:
        path = self._cluster_dir(name) / "cluster.json"
        if not path.exists():
            raise ClusterNotFoundError(f"cluster not found {name!r} in state store {self.root}")
        cluster = _parse_cluster(_read_json_object(path), source=path)
        if cluster.name != name:
            raise StateStoreError(f"{path}: name {cluster.name!r} does not match {name!r}")
        return cluster

    def list_instance_groups(self, cluster_name: str) -> list[InstanceGroup]:
        ig_dir = self._cluster_dir(cluster_name) / "instancegroups"
        if not ig_dir.is_dir():
            return []
        return [
            _parse_instance_group(_read_json_object(path), source=path)
            for path in sorted(ig_dir.glob("*.json"))
        ]

    def add_ssh_public_key(self, slot: str, data: bytes) -> None:
        if not self.cluster_name:
            raise StateStoreError("credential store is not bound to a cluster")
        key_dir = self._cluster_dir(self.cluster_name) / "secrets" / "sshpublickey"
        try:
            key_dir.mkdir(parents=True, exist_ok=True)
            (key_dir / f"{slot}.pub").write_bytes(data)
        except OSError as e:
            raise StateStoreError(f"error writing SSH public key {slot!r}: {e}") from e

    def get_ca_certificate(self, cluster_name: str) -> bytes | None:
        path = self._cluster_dir(cluster_name) / "pki" / "ca.crt"
        if not path.exists():
            return None
        return path.read_bytes()

    def get_ca_keypair(self, cluster_name: str) -> tuple[bytes, bytes]:
        pki = self._cluster_dir(cluster_name) / "pki"
        try:
            return (pki / "ca.crt").read_bytes(), (pki / "ca.key").read_bytes()
        except OSError as e:
            raise StateStoreError(f"error reading CA keypair for {cluster_name!r}: {e}") from e
