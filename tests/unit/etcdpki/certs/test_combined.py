import io

import pytest
from cryptography import x509

from etcdpki.certs.combined import authority_from_bytes
from etcdpki.certs.combined import create_cert_key
from etcdpki.certs.combined import create_metric_cert_key
from etcdpki.certs.combined import create_peer_cert_key
from etcdpki.certs.combined import create_server_cert_key
from etcdpki.certs.issuer import build_leaf_spec
from etcdpki.certs.issuer import certificate_san_set
from etcdpki.certs.issuer import is_issued_by
from etcdpki.certs.issuer import issue_leaf
from etcdpki.certs.issuer import reissue_reason
from etcdpki.certs.pem import decode_certificate
from etcdpki.certs.pem import decode_private_key
from etcdpki.certs.pem import encode_certificate
from etcdpki.certs.pem import encode_private_key
from etcdpki.exceptions import CertificateParseError
from etcdpki.models.certificates import LeafRole
from tests.data.etcdpki.certs import NOW


@pytest.fixture(scope="module")
def ca_blobs(authority):
    return encode_certificate(authority.certificate), encode_private_key(authority.private_key)


def test_offline_certificates_match_online_structure(authority, ca_blobs):
    ca_cert, ca_key = ca_blobs
    for create, role in (
        (create_peer_cert_key, LeafRole.PEER),
        (create_server_cert_key, LeafRole.SERVER),
        (create_metric_cert_key, LeafRole.METRICS_SERVER),
    ):
        cert_buf, key_buf = create(ca_cert, ca_key, ["10.0.0.5"])
        assert isinstance(cert_buf, io.BytesIO)
        assert isinstance(key_buf, io.BytesIO)
        offline = decode_certificate(cert_buf.getvalue())
        decode_private_key(key_buf.getvalue())

        online, _ = issue_leaf(authority, build_leaf_spec(role, ["10.0.0.5"]), NOW)
        assert offline.subject == online.subject
        assert certificate_san_set(offline) == certificate_san_set(online)
        assert (
            offline.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
            == online.extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
        )
        assert is_issued_by(offline, authority)
        # the controller accepts offline material without churn
        assert reissue_reason(authority, build_leaf_spec(role, ["10.0.0.5"], identity="master-0"), offline, NOW) is None


def test_offline_rejects_mismatched_ca_key(authority, other_authority):
    with pytest.raises(CertificateParseError):
        authority_from_bytes(
            encode_certificate(authority.certificate),
            encode_private_key(other_authority.private_key),
        )


def test_offline_rejects_client_roles(ca_blobs):
    with pytest.raises(ValueError):
        create_cert_key(ca_blobs[0], ca_blobs[1], LeafRole.CLIENT, [])
