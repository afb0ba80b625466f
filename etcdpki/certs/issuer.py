"""
Leaf certificate issuance.

Issuance is a pure function of the signing authority, a LeafCertificateSpec and the
clock: hostnames derived from live topology are computed by the caller and passed in
through the spec.
"""
import ipaddress
import logging
from datetime import datetime
from typing import FrozenSet
from typing import Iterable
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import NameOID

from etcdpki.certs.authority import generate_private_key
from etcdpki.constants import CERT_REFRESH
from etcdpki.constants import CERT_VALIDITY
from etcdpki.constants import CLIENT_GROUPS
from etcdpki.constants import CLIENT_USER
from etcdpki.constants import LOCALHOST
from etcdpki.constants import LOOPBACK_IPS
from etcdpki.constants import METRIC_ORG
from etcdpki.constants import METRICS_CLIENT_GROUPS
from etcdpki.constants import METRICS_CLIENT_USER
from etcdpki.constants import NOT_BEFORE_SKEW
from etcdpki.constants import PEER_ORG
from etcdpki.constants import PLACEHOLDER_IDENTITY
from etcdpki.constants import SERVER_ORG
from etcdpki.constants import SERVICE_HOSTNAMES
from etcdpki.exceptions import KeyGenerationError
from etcdpki.models.certificates import CLIENT_USAGES
from etcdpki.models.certificates import LeafCertificateSpec
from etcdpki.models.certificates import LeafRole
from etcdpki.models.certificates import SERVING_USAGES
from etcdpki.models.certificates import SigningAuthority

logger = logging.getLogger(__name__)

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

ROLE_ORGANIZATIONS = {
    LeafRole.PEER: PEER_ORG,
    LeafRole.SERVER: SERVER_ORG,
    LeafRole.METRICS_SERVER: METRIC_ORG,
}


def serving_hostnames(node_ips: Iterable[str]) -> List[str]:
    return [LOCALHOST, *SERVICE_HOSTNAMES, *LOOPBACK_IPS, *node_ips]


def serving_common_name(organization: str, identity: str) -> str:
    return f"{organization.removesuffix('s')}:{identity}"


def normalize_hostnames(hostnames: Iterable[str]) -> Tuple[List[str], List[IPAddress]]:
    """
    Split hostnames into DNS names and IP addresses, dropping duplicates but keeping
    first-seen order. IP literals are canonicalized, so "0:0:0:0:0:0:0:1" and "::1" collide.
    """
    dns_names: List[str] = []
    ips: List[IPAddress] = []
    for hostname in hostnames:
        try:
            ip = ipaddress.ip_address(hostname)
        except ValueError:
            if hostname not in dns_names:
                dns_names.append(hostname)
            continue
        if ip not in ips:
            ips.append(ip)
    return dns_names, ips


def san_set(hostnames: Iterable[str]) -> FrozenSet[str]:
    dns_names, ips = normalize_hostnames(hostnames)
    return frozenset(dns_names) | frozenset(str(ip) for ip in ips)


def certificate_san_set(certificate: x509.Certificate) -> FrozenSet[str]:
    try:
        san = certificate.extensions.get_extension_for_class(x509.SubjectAlternativeName).value
    except x509.ExtensionNotFound:
        return frozenset()
    return frozenset(san.get_values_for_type(x509.DNSName)) | frozenset(
        str(ip) for ip in san.get_values_for_type(x509.IPAddress)
    )


def build_leaf_spec(
    role: LeafRole,
    node_ips: Iterable[str] = (),
    identity: str = PLACEHOLDER_IDENTITY,
) -> LeafCertificateSpec:
    """
    Derive the certificate spec for `role`.

    Serving roles (peer, server, metrics-server) get the fixed local and service hostnames
    plus `node_ips`, and both client and server auth usages. Client roles carry no SANs.
    """
    if role is LeafRole.CLIENT:
        return LeafCertificateSpec(
            role=role,
            organizations=CLIENT_GROUPS,
            common_name=CLIENT_USER,
            hostnames=(),
            extended_key_usages=CLIENT_USAGES,
        )
    if role is LeafRole.METRICS_CLIENT:
        return LeafCertificateSpec(
            role=role,
            organizations=METRICS_CLIENT_GROUPS,
            common_name=METRICS_CLIENT_USER,
            hostnames=(),
            extended_key_usages=CLIENT_USAGES,
        )

    organization = ROLE_ORGANIZATIONS[role]
    return LeafCertificateSpec(
        role=role,
        organizations=(organization,),
        common_name=serving_common_name(organization, identity),
        hostnames=tuple(serving_hostnames(node_ips)),
        extended_key_usages=SERVING_USAGES,
    )


def leaf_refresh_threshold(certificate: x509.Certificate) -> datetime:
    return certificate.not_valid_before_utc + CERT_REFRESH


def issue_leaf(
    authority: SigningAuthority,
    spec: LeafCertificateSpec,
    now: datetime,
) -> Tuple[x509.Certificate, RSAPrivateKey]:
    private_key = generate_private_key()
    subject = x509.Name(
        [x509.NameAttribute(NameOID.ORGANIZATION_NAME, org) for org in spec.organizations]
        + [x509.NameAttribute(NameOID.COMMON_NAME, spec.common_name)],
    )
    not_before = now - NOT_BEFORE_SKEW
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(authority.certificate.subject)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + CERT_VALIDITY)
        .add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(x509.ExtendedKeyUsage(list(spec.extended_key_usages)), critical=False)
        .add_extension(
            x509.AuthorityKeyIdentifier.from_issuer_public_key(authority.private_key.public_key()),
            critical=False,
        )
    )
    dns_names, ips = normalize_hostnames(spec.hostnames)
    if dns_names or ips:
        builder = builder.add_extension(
            x509.SubjectAlternativeName(
                [x509.DNSName(name) for name in dns_names] + [x509.IPAddress(ip) for ip in ips],
            ),
            critical=False,
        )
    try:
        certificate = builder.sign(authority.private_key, hashes.SHA256())
    except (ValueError, TypeError) as e:
        raise KeyGenerationError(f"unable to sign {spec.common_name}: {e}") from e
    return certificate, private_key


def is_issued_by(certificate: x509.Certificate, authority: SigningAuthority) -> bool:
    if certificate.issuer != authority.certificate.subject:
        return False
    try:
        certificate.verify_directly_issued_by(authority.certificate)
    except (ValueError, TypeError, InvalidSignature):
        return False
    return True


def reissue_reason(
    authority: SigningAuthority,
    spec: LeafCertificateSpec,
    current: Optional[x509.Certificate],
    now: datetime,
) -> Optional[str]:
    if current is None:
        return "missing"
    if now >= leaf_refresh_threshold(current):
        return f"past its refresh threshold {leaf_refresh_threshold(current).isoformat()}"
    if certificate_san_set(current) != san_set(spec.hostnames):
        return "hostnames changed"
    if not is_issued_by(current, authority):
        return "issued by a different signer"
    return None


def ensure_leaf(
    authority: SigningAuthority,
    spec: LeafCertificateSpec,
    current: Optional[Tuple[x509.Certificate, RSAPrivateKey]],
    now: datetime,
) -> Tuple[x509.Certificate, RSAPrivateKey, bool]:
    """
    Return the leaf material to keep for `spec`, issuing a new pair when needed.

    :return: (certificate, private key, whether it was issued during this call)
    """
    reason = reissue_reason(authority, spec, current[0] if current else None, now)
    if reason is None:
        return current[0], current[1], False
    logger.info("Issuing %s certificate %r: %s", spec.role.value, spec.common_name, reason)
    certificate, private_key = issue_leaf(authority, spec, now)
    return certificate, private_key, True
