from typing import Dict
from typing import Tuple

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import NameOID

from etcdpki.certs.pem import decode_certificate
from etcdpki.certs.pem import decode_private_key
from etcdpki.certs.pem import encode_certificate
from etcdpki.certs.pem import encode_private_key
from etcdpki.constants import DESCRIPTION_ANNOTATION
from etcdpki.constants import ISSUER_ANNOTATION
from etcdpki.constants import NOT_AFTER_ANNOTATION
from etcdpki.constants import NOT_BEFORE_ANNOTATION
from etcdpki.constants import TLS_CERT_FIELD
from etcdpki.constants import TLS_KEY_FIELD
from etcdpki.models.resources import StoredObject


def encode_keypair(certificate: x509.Certificate, private_key: RSAPrivateKey) -> Dict[str, bytes]:
    return {
        TLS_CERT_FIELD: encode_certificate(certificate),
        TLS_KEY_FIELD: encode_private_key(private_key),
    }


def decode_keypair(stored: StoredObject) -> Tuple[x509.Certificate, RSAPrivateKey]:
    """:raises CertificateParseError: when either field is missing or malformed."""
    certificate = decode_certificate(stored.data.get(TLS_CERT_FIELD, b""))
    private_key = decode_private_key(stored.data.get(TLS_KEY_FIELD, b""))
    return certificate, private_key


def _common_name(name: x509.Name) -> str:
    attributes = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    return str(attributes[0].value) if attributes else ""


def keypair_annotations(certificate: x509.Certificate, description: str) -> Dict[str, str]:
    return {
        NOT_BEFORE_ANNOTATION: certificate.not_valid_before_utc.isoformat(),
        NOT_AFTER_ANNOTATION: certificate.not_valid_after_utc.isoformat(),
        ISSUER_ANNOTATION: _common_name(certificate.issuer),
        DESCRIPTION_ANNOTATION: description,
    }
