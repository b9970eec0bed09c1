"""Kubeconfig construction and merge.

The builder turns a cluster and an identity into a KubeconfigDocument; the
writer merges that document into the operator's kubeconfig file through kubectl,
so existing clusters, users and contexts are preserved.
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path

from convergekit.errors import KubeconfigError
from convergekit.kubeconfig.certs import issue_admin_certificate
from convergekit.kubeconfig.identity import IdentityKind, KubeconfigIdentity
from convergekit.kubeconfig.kubectl import check_kubectl
from convergekit.state.models import Cluster
from convergekit.state.store import KeyStore


@dataclass(frozen=True)
class KubeconfigDocument:
    context_name: str
    cluster_name: str
    server: str
    ca_pem: bytes | None = None
    user_name: str = ""
    client_cert_pem: bytes | None = None
    client_key_pem: bytes | None = None

    @property
    def embeds_credential(self) -> bool:
        return self.client_cert_pem is not None and self.client_key_pem is not None


@dataclass(frozen=True)
class KubeconfigMergePolicy:
    set_current_context: bool = True


class KubeconfigBuilder:
    def build(
        self,
        cluster: Cluster,
        identity: KubeconfigIdentity,
        *,
        internal: bool,
    ) -> KubeconfigDocument:
        raise NotImplementedError


class KubeconfigWriter:
    def write(self, doc: KubeconfigDocument, policy: KubeconfigMergePolicy) -> None:
        raise NotImplementedError


def server_url(cluster: Cluster, *, internal: bool) -> str:
    host = cluster.internal_api_name if internal else cluster.master_public_name
    return f"https://{host}"


@dataclass
class StateStoreKubeconfigBuilder(KubeconfigBuilder):
    keystore: KeyStore

    def build(
        self,
        cluster: Cluster,
        identity: KubeconfigIdentity,
        *,
        internal: bool,
    ) -> KubeconfigDocument:
        internal = internal or identity.kind == IdentityKind.INTERNAL_DNS
        ca_pem = self.keystore.get_ca_certificate(cluster.name)
        doc_fields = {
            "context_name": cluster.name,
            "cluster_name": cluster.name,
            "server": server_url(cluster, internal=internal),
            "ca_pem": ca_pem,
        }

        if identity.kind == IdentityKind.ADMIN_CERT:
            ca_cert_pem, ca_key_pem = self.keystore.get_ca_keypair(cluster.name)
            cert_pem, key_pem = issue_admin_certificate(ca_cert_pem, ca_key_pem, ttl_s=identity.ttl_s)
            return KubeconfigDocument(
                **doc_fields,
                user_name=cluster.name,
                client_cert_pem=cert_pem,
                client_key_pem=key_pem,
            )
        if identity.kind == IdentityKind.NAMED_USER:
            return KubeconfigDocument(**doc_fields, user_name=identity.user)
        return KubeconfigDocument(**doc_fields)


@dataclass
class KubectlKubeconfigWriter(KubeconfigWriter):
    """Merge a document into kubeconfig_path with a single write.

    Cluster, credentials and context are first staged in a scratch kubeconfig
    through `kubectl config --kubeconfig=<scratch>`. kubectl then merges the
    scratch file over the target (scratch entries win) and the flattened
    result replaces the target atomically. A failure before the replace leaves
    the target untouched.
    """

    kubeconfig_path: Path
    kubectl: str = "kubectl"

    def _stage(self, args: list[str], staged: Path) -> None:
        check_kubectl(
            self.kubectl,
            args,
            kubeconfig=staged,
            action=f"error writing kubeconfig ({' '.join(args[:2])})",
        )

    def _merge(self, staged: Path) -> str:
        sources = [str(staged)]
        if self.kubeconfig_path.exists():
            sources.append(str(self.kubeconfig_path))
        env = {**os.environ, "KUBECONFIG": os.pathsep.join(sources)}
        result = check_kubectl(
            self.kubectl,
            ["config", "view", "--flatten", "--raw"],
            env=env,
            action="error merging kubeconfig",
        )
        return result.stdout

    def _replace_target(self, content: str) -> None:
        target = self.kubeconfig_path
        tmp_name = ""
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=target.parent,
                prefix=f".{target.name}.",
                delete=False,
            ) as f:
                tmp_name = f.name
                f.write(content)
            os.chmod(tmp_name, 0o600)
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise KubeconfigError(f"error writing kubeconfig {target}: {e}") from e

    def write(self, doc: KubeconfigDocument, policy: KubeconfigMergePolicy) -> None:
        with tempfile.TemporaryDirectory(prefix="convergekit-kubecfg-") as tmp:
            tmp_dir = Path(tmp)
            staged = tmp_dir / "kubeconfig"

            cluster_args = ["config", "set-cluster", doc.cluster_name, f"--server={doc.server}"]
            if doc.ca_pem:
                ca_path = tmp_dir / "ca.crt"
                ca_path.write_bytes(doc.ca_pem)
                cluster_args += [f"--certificate-authority={ca_path}", "--embed-certs=true"]
            self._stage(cluster_args, staged)

            if doc.embeds_credential:
                cert_path = tmp_dir / "client.crt"
                key_path = tmp_dir / "client.key"
                cert_path.write_bytes(doc.client_cert_pem or b"")
                key_path.write_bytes(doc.client_key_pem or b"")
                key_path.chmod(0o600)
                self._stage(
                    [
                        "config",
                        "set-credentials",
                        doc.user_name,
                        f"--client-certificate={cert_path}",
                        f"--client-key={key_path}",
                        "--embed-certs=true",
                    ],
                    staged,
                )

            context_args = ["config", "set-context", doc.context_name, f"--cluster={doc.cluster_name}"]
            if doc.user_name:
                context_args.append(f"--user={doc.user_name}")
            self._stage(context_args, staged)

            if policy.set_current_context:
                self._stage(["config", "use-context", doc.context_name], staged)

            merged = self._merge(staged)
        self._replace_target(merged)
