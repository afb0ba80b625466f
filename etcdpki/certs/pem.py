"""
PEM encoding and decoding of certificates and private keys.

Keys are written unencrypted in PKCS#8. Bundles are plain concatenations of
`CERTIFICATE` blocks with no separator beyond the PEM boundary markers.
"""
from typing import Iterable
from typing import List

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

from etcdpki.exceptions import CertificateParseError


def encode_certificate(certificate: x509.Certificate) -> bytes:
    return certificate.public_bytes(serialization.Encoding.PEM)


def encode_certificates(certificates: Iterable[x509.Certificate]) -> bytes:
    return b"".join(encode_certificate(cert) for cert in certificates)


def encode_private_key(private_key: RSAPrivateKey) -> bytes:
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def decode_certificates(data: bytes) -> List[x509.Certificate]:
    """
    Decode every certificate block in `data`. Empty input yields an empty list.

    :raises CertificateParseError: if `data` is not empty and holds no parsable certificate.
    """
    if not data or not data.strip():
        return []
    try:
        return x509.load_pem_x509_certificates(data)
    except ValueError as e:
        raise CertificateParseError(f"unable to parse certificate bundle: {e}") from e


def decode_certificate(data: bytes) -> x509.Certificate:
    """Decode the first certificate in `data`."""
    certificates = decode_certificates(data)
    if not certificates:
        raise CertificateParseError("no certificate found")
    return certificates[0]


def decode_private_key(data: bytes) -> RSAPrivateKey:
    if not data:
        raise CertificateParseError("no private key found")
    try:
        private_key = serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError) as e:
        raise CertificateParseError(f"unable to parse private key: {e}") from e
    if not isinstance(private_key, RSAPrivateKey):
        raise CertificateParseError(
            f"unsupported private key type {type(private_key).__name__}",
        )
    return private_key
