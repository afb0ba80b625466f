import logging

from etcdpki.certs.bundle import build_bundle
from etcdpki.certs.bundle import unexpired
from etcdpki.certs.pem import decode_certificates
from etcdpki.constants import CA_BUNDLE_FIELD
from etcdpki.constants import DESCRIPTION_ANNOTATION
from etcdpki.exceptions import CertificateParseError
from etcdpki.exceptions import ObjectNotFoundError
from etcdpki.models.certificates import SignerSlots
from etcdpki.models.certificates import TrustBundle
from etcdpki.models.resources import ResourceLocation
from etcdpki.store import Clock
from etcdpki.store import EventRecorder
from etcdpki.store import ObjectStore
from etcdpki.util import timeit

logger = logging.getLogger(__name__)


@timeit
def reconcile_bundle(
    store: ObjectStore,
    location: ResourceLocation,
    slots: SignerSlots,
    clock: Clock,
    recorder: EventRecorder,
    description: str = "",
) -> TrustBundle:
    """
    Make the bundle at `location` trust the current signer, any signer it just replaced,
    and every still-valid signer already listed. The current signer comes first.
    """
    try:
        stored = store.get(location.namespace, location.name)
    except ObjectNotFoundError:
        stored = None

    existing_pem = stored.data.get(CA_BUNDLE_FIELD, b"") if stored else b""
    try:
        existing = decode_certificates(existing_pem)
    except CertificateParseError:
        logger.warning("Discarding unparsable CA bundle %s, rebuilding it from the known signers", location)
        existing = []

    bundle = build_bundle(*slots.authorities(), *unexpired(existing, clock.now()))
    pem = bundle.to_pem()
    if stored is not None and pem == existing_pem:
        return bundle

    store.create_or_update(
        location.namespace,
        location.name,
        {CA_BUNDLE_FIELD: pem},
        expected_version=stored.version if stored else None,
        annotations={DESCRIPTION_ANNOTATION: description} if description else None,
    )
    logger.info("Updated CA bundle %s, it now holds %d certificates", location, len(bundle))
    recorder.record("CABundleUpdated", f"updated CA bundle {location} with {len(bundle)} certificates")
    return bundle
