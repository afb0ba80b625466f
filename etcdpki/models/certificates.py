from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional
from typing import Tuple

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import ExtendedKeyUsageOID

from etcdpki.certs.pem import encode_certificates
from etcdpki.constants import CA_REFRESH


class LeafRole(str, Enum):
    PEER = "peer"
    SERVER = "server"
    METRICS_SERVER = "metrics-server"
    CLIENT = "client"
    METRICS_CLIENT = "metrics-client"

    @property
    def is_serving(self) -> bool:
        return self in (LeafRole.PEER, LeafRole.SERVER, LeafRole.METRICS_SERVER)


class RotationAction(str, Enum):
    UNCHANGED = "Unchanged"
    CREATED = "Created"
    ROTATED = "Rotated"


SERVING_USAGES = (ExtendedKeyUsageOID.CLIENT_AUTH, ExtendedKeyUsageOID.SERVER_AUTH)
CLIENT_USAGES = (ExtendedKeyUsageOID.CLIENT_AUTH,)


@dataclass(frozen=True)
class LeafCertificateSpec:
    role: LeafRole
    organizations: Tuple[str, ...]
    common_name: str
    hostnames: Tuple[str, ...]
    extended_key_usages: Tuple[x509.ObjectIdentifier, ...]


@dataclass(frozen=True)
class SigningAuthority:
    certificate: x509.Certificate
    private_key: RSAPrivateKey

    @property
    def not_before(self) -> datetime:
        return self.certificate.not_valid_before_utc

    @property
    def not_after(self) -> datetime:
        return self.certificate.not_valid_after_utc

    @property
    def refresh_threshold(self) -> datetime:
        return self.not_before + CA_REFRESH

    def is_due(self, now: datetime) -> bool:
        return now >= self.refresh_threshold


@dataclass(frozen=True)
class SignerSlots:
    """The active signer plus, during a rotation, the one it replaced."""
    current: SigningAuthority
    previous: Optional[SigningAuthority] = None

    def authorities(self) -> Tuple[SigningAuthority, ...]:
        if self.previous is None:
            return (self.current,)
        return (self.current, self.previous)


@dataclass(frozen=True)
class TrustBundle:
    certificates: Tuple[x509.Certificate, ...] = ()

    def __len__(self) -> int:
        return len(self.certificates)

    def to_pem(self) -> bytes:
        return encode_certificates(self.certificates)
