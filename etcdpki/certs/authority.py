"""
Lifecycle of a self-signed signing authority: create when absent, keep while fresh,
replace with new key material once the refresh threshold has passed.
"""
import logging
from datetime import datetime
from typing import Optional
from typing import Tuple

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey
from cryptography.x509.oid import NameOID

from etcdpki.constants import CA_VALIDITY
from etcdpki.constants import ETCD_SIGNER_SECRET
from etcdpki.constants import NOT_BEFORE_SKEW
from etcdpki.constants import RSA_KEY_SIZE
from etcdpki.constants import TARGET_NAMESPACE
from etcdpki.exceptions import KeyGenerationError
from etcdpki.models.certificates import RotationAction
from etcdpki.models.certificates import SigningAuthority

logger = logging.getLogger(__name__)


def generate_private_key() -> RSAPrivateKey:
    try:
        return rsa.generate_private_key(public_exponent=65537, key_size=RSA_KEY_SIZE)
    except (ValueError, UnsupportedAlgorithm) as e:
        raise KeyGenerationError(f"unable to generate RSA key: {e}") from e


def signer_common_name(namespace: str, name: str, now: datetime) -> str:
    return f"{namespace}_{name}@{int(now.timestamp())}"


def new_signing_authority(common_name: str, now: datetime) -> SigningAuthority:
    private_key = generate_private_key()
    subject = issuer = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    not_before = now - NOT_BEFORE_SKEW
    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(not_before)
        .not_valid_after(not_before + CA_VALIDITY)
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=True,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        )
        .add_extension(
            x509.SubjectKeyIdentifier.from_public_key(private_key.public_key()),
            critical=False,
        )
    )
    try:
        certificate = builder.sign(private_key, hashes.SHA256())
    except (ValueError, TypeError) as e:
        raise KeyGenerationError(f"unable to self-sign {common_name}: {e}") from e
    return SigningAuthority(certificate=certificate, private_key=private_key)


def ensure_authority(
    current: Optional[SigningAuthority],
    now: datetime,
    namespace: str = TARGET_NAMESPACE,
    name: str = ETCD_SIGNER_SECRET,
) -> Tuple[SigningAuthority, RotationAction]:
    """
    Decide what to do with the signing authority stored at namespace/name.

    The caller keeps the outgoing certificate in the trust bundle after a rotation; this
    function never looks at bundles.

    :param current: The stored authority, or None when nothing is stored yet.
    :param now: The reconcile timestamp, timezone aware.
    :return: The authority to persist and what happened to it.
    """
    if current is None:
        logger.info("Creating signing authority %s/%s", namespace, name)
        return new_signing_authority(signer_common_name(namespace, name, now), now), RotationAction.CREATED

    if not current.is_due(now):
        return current, RotationAction.UNCHANGED

    logger.info(
        "Rotating signing authority %s/%s, refresh threshold %s has passed",
        namespace,
        name,
        current.refresh_threshold.isoformat(),
    )
    return new_signing_authority(signer_common_name(namespace, name, now), now), RotationAction.ROTATED
