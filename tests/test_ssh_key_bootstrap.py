import io
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from convergekit.bootstrap.ssh_key import SSH_PRIMARY_SLOT, import_legacy_ssh_key
from convergekit.errors import BootstrapError, StateStoreError
from convergekit.state.store import CredentialStore


class RecordingCredentialStore(CredentialStore):
    def __init__(self, fail: bool = False) -> None:
        self.keys: dict[str, bytes] = {}
        self.fail = fail

    def add_ssh_public_key(self, slot: str, data: bytes) -> None:
        if self.fail:
            raise StateStoreError("store is read-only")
        self.keys[slot] = data


def _openssh_public_key() -> bytes:
    key = Ed25519PrivateKey.from_private_bytes(bytes(range(32)))
    return key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    ) + b" operator@example\n"


def test_import_expands_home_and_stores_primary_slot(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    ssh_dir = tmp_path / ".ssh"
    ssh_dir.mkdir()
    data = _openssh_public_key()
    (ssh_dir / "id_ed25519.pub").write_bytes(data)

    store = RecordingCredentialStore()
    out = io.StringIO()
    err = io.StringIO()
    path = import_legacy_ssh_key(
        "~/.ssh/id_ed25519.pub",
        store,
        cluster_name="demo.example.com",
        out=out,
        err=err,
    )

    assert path == ssh_dir / "id_ed25519.pub"
    assert store.keys == {SSH_PRIMARY_SLOT: data}
    assert "--ssh-public-key on update is deprecated" in out.getvalue()
    assert "--name demo.example.com sshpublickey admin" in out.getvalue()
    assert "Using SSH public key" in err.getvalue()


def test_missing_key_file_is_fatal(tmp_path: Path) -> None:
    store = RecordingCredentialStore()
    with pytest.raises(BootstrapError) as excinfo:
        import_legacy_ssh_key(
            str(tmp_path / "absent.pub"),
            store,
            cluster_name="c",
            out=io.StringIO(),
            err=io.StringIO(),
        )
    assert "error reading SSH key file" in str(excinfo.value)
    assert store.keys == {}


def test_unparsable_key_is_fatal(tmp_path: Path) -> None:
    key_file = tmp_path / "garbage.pub"
    key_file.write_text("not a key\n", encoding="utf-8")
    store = RecordingCredentialStore()
    with pytest.raises(BootstrapError) as excinfo:
        import_legacy_ssh_key(str(key_file), store, cluster_name="c", out=io.StringIO(), err=io.StringIO())
    assert "error parsing SSH key file" in str(excinfo.value)
    assert store.keys == {}


def test_store_failure_is_fatal(tmp_path: Path) -> None:
    key_file = tmp_path / "id.pub"
    key_file.write_bytes(_openssh_public_key())
    with pytest.raises(BootstrapError) as excinfo:
        import_legacy_ssh_key(
            str(key_file),
            RecordingCredentialStore(fail=True),
            cluster_name="c",
            out=io.StringIO(),
            err=io.StringIO(),
        )
    assert "error adding SSH public key" in str(excinfo.value)
