"""
Offline issuance of combined client and serving certificates, for bootstrap and recovery.

Output uses the same certificate derivation as the reconcile loop, so material minted here is
accepted as-is once the controller takes over. Only the common name differs: no node
identity is known offline, so the placeholder identity is used.
"""
import io
import logging
from datetime import datetime
from datetime import timezone
from typing import Iterable
from typing import Optional
from typing import Tuple

from etcdpki.certs.issuer import build_leaf_spec
from etcdpki.certs.issuer import issue_leaf
from etcdpki.certs.pem import decode_certificate
from etcdpki.certs.pem import decode_private_key
from etcdpki.certs.pem import encode_certificate
from etcdpki.certs.pem import encode_private_key
from etcdpki.exceptions import CertificateParseError
from etcdpki.models.certificates import LeafRole
from etcdpki.models.certificates import SigningAuthority

logger = logging.getLogger(__name__)


def authority_from_bytes(ca_cert: bytes, ca_key: bytes) -> SigningAuthority:
    certificate = decode_certificate(ca_cert)
    private_key = decode_private_key(ca_key)
    if certificate.public_key().public_numbers() != private_key.public_key().public_numbers():
        raise CertificateParseError("CA certificate does not match CA private key")
    return SigningAuthority(certificate=certificate, private_key=private_key)


def create_cert_key(
    ca_cert: bytes,
    ca_key: bytes,
    role: LeafRole,
    node_ips: Iterable[str],
    now: Optional[datetime] = None,
) -> Tuple[io.BytesIO, io.BytesIO]:
    if not role.is_serving:
        raise ValueError(f"combined client and serving certificates need a serving role, got {role.value}")
    authority = authority_from_bytes(ca_cert, ca_key)
    spec = build_leaf_spec(role, node_ips)
    certificate, private_key = issue_leaf(authority, spec, now or datetime.now(timezone.utc))
    logger.debug("Issued offline %s certificate for %s", role.value, ", ".join(spec.hostnames))
    return io.BytesIO(encode_certificate(certificate)), io.BytesIO(encode_private_key(private_key))


def create_peer_cert_key(ca_cert: bytes, ca_key: bytes, node_ips: Iterable[str]) -> Tuple[io.BytesIO, io.BytesIO]:
    return create_cert_key(ca_cert, ca_key, LeafRole.PEER, node_ips)


def create_server_cert_key(ca_cert: bytes, ca_key: bytes, node_ips: Iterable[str]) -> Tuple[io.BytesIO, io.BytesIO]:
    return create_cert_key(ca_cert, ca_key, LeafRole.SERVER, node_ips)


def create_metric_cert_key(ca_cert: bytes, ca_key: bytes, node_ips: Iterable[str]) -> Tuple[io.BytesIO, io.BytesIO]:
    return create_cert_key(ca_cert, ca_key, LeafRole.METRICS_SERVER, node_ips)
