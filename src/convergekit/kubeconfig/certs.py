"""Short-lived admin client certificates signed by the cluster CA."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed448, ed25519
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from convergekit.errors import KubeconfigError

ADMIN_COMMON_NAME = "kubecfg"
ADMIN_ORGANIZATION = "system:masters"
# Tolerate small clock skew between this host and the API server.
_BACKDATE = timedelta(minutes=5)


def _load_ca(ca_cert_pem: bytes, ca_key_pem: bytes) -> tuple[x509.Certificate, object]:
    try:
        ca_cert = x509.load_pem_x509_certificate(ca_cert_pem)
        ca_key = serialization.load_pem_private_key(ca_key_pem, password=None)
    except (ValueError, TypeError) as e:
        raise KubeconfigError(f"error loading cluster CA: {e}") from e
    return ca_cert, ca_key


def issue_admin_certificate(
    ca_cert_pem: bytes,
    ca_key_pem: bytes,
    *,
    ttl_s: int,
    common_name: str = ADMIN_COMMON_NAME,
    now: datetime | None = None,
) -> tuple[bytes, bytes]:
    """Return (certificate PEM, private key PEM) for a cluster admin."""
    if ttl_s <= 0:
        raise KubeconfigError(f"admin certificate lifetime must be positive, got {ttl_s}s")
    ca_cert, ca_key = _load_ca(ca_cert_pem, ca_key_pem)

    issued_at = now or datetime.now(timezone.utc)
    key = ec.generate_private_key(ec.SECP256R1())
    subject = x509.Name(
        [
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, ADMIN_ORGANIZATION),
            x509.NameAttribute(NameOID.COMMON_NAME, common_name),
        ]
    )
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(ca_cert.subject)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(issued_at - _BACKDATE)
        .not_valid_after(issued_at + timedelta(seconds=ttl_s))
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.CLIENT_AUTH]),
            critical=False,
        )
    )
    # Edwards-curve keys sign without a separate digest.
    algorithm = None
    if not isinstance(ca_key, (ed25519.Ed25519PrivateKey, ed448.Ed448PrivateKey)):
        algorithm = hashes.SHA256()
    cert = builder.sign(private_key=ca_key, algorithm=algorithm)

    cert_pem = cert.public_bytes(serialization.Encoding.PEM)
    key_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return cert_pem, key_pem
