from datetime import timedelta

from etcdpki.certs.pem import decode_certificates
from etcdpki.certs.pem import encode_certificate
from etcdpki.constants import CA_BUNDLE_FIELD
from etcdpki.controllers.bundle import reconcile_bundle
from etcdpki.models.certificates import SignerSlots
from etcdpki.models.resources import ResourceLocation

BUNDLE = ResourceLocation("openshift-etcd", "etcd-ca-bundle")


def _stored_certs(config_maps):
    return decode_certificates(config_maps.get(BUNDLE.namespace, BUNDLE.name).data[CA_BUNDLE_FIELD])


def test_reconcile_bundle_creates_and_is_idempotent(config_maps, clock, recorder, authority):
    reconcile_bundle(config_maps, BUNDLE, SignerSlots(authority), clock, recorder)
    version = config_maps.get(BUNDLE.namespace, BUNDLE.name).version

    reconcile_bundle(config_maps, BUNDLE, SignerSlots(authority), clock, recorder)

    assert _stored_certs(config_maps) == [authority.certificate]
    assert config_maps.get(BUNDLE.namespace, BUNDLE.name).version == version
    assert recorder.record.call_count == 1


def test_reconcile_bundle_keeps_outgoing_signer(config_maps, clock, recorder, authority, other_authority):
    reconcile_bundle(config_maps, BUNDLE, SignerSlots(authority), clock, recorder)

    # after the rotation pass, the old signer only lives on in the stored bundle
    reconcile_bundle(config_maps, BUNDLE, SignerSlots(other_authority, previous=authority), clock, recorder)
    reconcile_bundle(config_maps, BUNDLE, SignerSlots(other_authority), clock, recorder)

    assert _stored_certs(config_maps) == [other_authority.certificate, authority.certificate]


def test_reconcile_bundle_drops_expired_signers(config_maps, clock, recorder, authority, other_authority):
    config_maps.create_or_update(
        BUNDLE.namespace,
        BUNDLE.name,
        {CA_BUNDLE_FIELD: encode_certificate(authority.certificate)},
        None,
    )
    clock.current = authority.not_after + timedelta(days=1)
    reconcile_bundle(config_maps, BUNDLE, SignerSlots(other_authority), clock, recorder)

    assert _stored_certs(config_maps) == [other_authority.certificate]


def test_reconcile_bundle_rebuilds_unparsable_bundle(config_maps, clock, recorder, authority):
    config_maps.create_or_update(BUNDLE.namespace, BUNDLE.name, {CA_BUNDLE_FIELD: b"-----BEGIN CERTIFICATE-----\nx"}, None)

    reconcile_bundle(config_maps, BUNDLE, SignerSlots(authority), clock, recorder)

    assert _stored_certs(config_maps) == [authority.certificate]
