from datetime import timedelta
from unittest.mock import patch

import pytest
from cryptography import x509

from etcdpki.certs.authority import ensure_authority
from etcdpki.certs.pem import encode_certificate
from etcdpki.certs.pem import encode_private_key
from etcdpki.constants import CA_VALIDITY
from etcdpki.exceptions import KeyGenerationError
from etcdpki.models.certificates import RotationAction
from tests.data.etcdpki.certs import CA_ROTATION_DUE
from tests.data.etcdpki.certs import NOW


def test_ensure_authority_creates_when_absent():
    authority, action = ensure_authority(None, NOW)

    assert action is RotationAction.CREATED
    assert authority.not_after - authority.not_before == CA_VALIDITY
    assert authority.refresh_threshold == authority.not_before + timedelta(days=int(4.5 * 365))
    assert authority.refresh_threshold < authority.not_after
    constraints = authority.certificate.extensions.get_extension_for_class(x509.BasicConstraints).value
    assert constraints.ca is True
    assert authority.certificate.issuer == authority.certificate.subject
    cn = authority.certificate.subject.get_attributes_for_oid(x509.oid.NameOID.COMMON_NAME)[0].value
    assert cn == f"openshift-etcd_etcd-signer@{int(NOW.timestamp())}"


def test_ensure_authority_is_idempotent_before_refresh(authority):
    for now in (NOW, NOW + timedelta(days=365), CA_ROTATION_DUE - timedelta(seconds=2)):
        result, action = ensure_authority(authority, now)
        assert action is RotationAction.UNCHANGED
        assert encode_certificate(result.certificate) == encode_certificate(authority.certificate)
        assert encode_private_key(result.private_key) == encode_private_key(authority.private_key)


def test_ensure_authority_rotates_past_refresh(authority):
    rotated, action = ensure_authority(authority, CA_ROTATION_DUE)

    assert action is RotationAction.ROTATED
    assert rotated.not_after > authority.not_after
    assert rotated.certificate.subject != authority.certificate.subject
    assert (
        rotated.private_key.public_key().public_numbers()
        != authority.private_key.public_key().public_numbers()
    )
    again, action = ensure_authority(rotated, CA_ROTATION_DUE)
    assert action is RotationAction.UNCHANGED
    assert again is rotated


def test_ensure_authority_key_generation_failure():
    with patch("etcdpki.certs.authority.rsa.generate_private_key", side_effect=ValueError("boom")):
        with pytest.raises(KeyGenerationError):
            ensure_authority(None, NOW)
