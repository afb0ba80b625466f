from datetime import timedelta

from etcdpki.certs.bundle import build_bundle
from etcdpki.certs.bundle import unexpired
from etcdpki.certs.pem import encode_certificate
from tests.data.etcdpki.certs import NOW


def test_build_bundle_deduplicates(authority):
    assert build_bundle(authority, authority) == build_bundle(authority)
    assert build_bundle(authority, authority.certificate).to_pem() == encode_certificate(authority.certificate)


def test_build_bundle_keeps_first_seen_order(authority, other_authority):
    bundle = build_bundle(other_authority, authority, other_authority)

    assert bundle.certificates == (other_authority.certificate, authority.certificate)
    assert bundle.to_pem() == encode_certificate(other_authority.certificate) + encode_certificate(
        authority.certificate,
    )


def test_build_bundle_empty():
    bundle = build_bundle()
    assert len(bundle) == 0
    assert bundle.to_pem() == b""


def test_unexpired_drops_expired_certificates(authority):
    assert unexpired([authority.certificate], NOW) == [authority.certificate]
    assert unexpired([authority.certificate], authority.not_after + timedelta(seconds=1)) == []
    assert unexpired([authority.certificate], None) == [authority.certificate]
