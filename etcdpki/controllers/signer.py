import logging
from typing import Optional
from typing import Tuple

from etcdpki.certs.authority import ensure_authority
from etcdpki.constants import CONFIG_NAMESPACE
from etcdpki.constants import ETCD_SIGNER_SECRET
from etcdpki.controllers.keypair import decode_keypair
from etcdpki.controllers.keypair import encode_keypair
from etcdpki.controllers.keypair import keypair_annotations
from etcdpki.exceptions import MissingDependencyError
from etcdpki.exceptions import ObjectNotFoundError
from etcdpki.models.certificates import RotationAction
from etcdpki.models.certificates import SignerSlots
from etcdpki.models.certificates import SigningAuthority
from etcdpki.models.resources import ResourceLocation
from etcdpki.stats import get_stats_client
from etcdpki.store import Clock
from etcdpki.store import EventRecorder
from etcdpki.store import ObjectStore
from etcdpki.util import timeit

logger = logging.getLogger(__name__)
stat_handler = get_stats_client(__name__)


def read_authority(store: ObjectStore, location: ResourceLocation) -> Tuple[Optional[SigningAuthority], Optional[str]]:
    """
    Load the signer stored at `location`.

    :return: (authority or None when absent, version token or None when absent)
    :raises CertificateParseError: when a stored signer cannot be parsed. A broken signer is
        never silently replaced: leaves it signed may still be in use.
    """
    try:
        stored = store.get(location.namespace, location.name)
    except ObjectNotFoundError:
        return None, None
    certificate, private_key = decode_keypair(stored)
    return SigningAuthority(certificate=certificate, private_key=private_key), stored.version


def read_config_signer(
    store: ObjectStore,
    namespace: str = CONFIG_NAMESPACE,
    name: str = ETCD_SIGNER_SECRET,
) -> SigningAuthority:
    location = ResourceLocation(namespace, name)
    authority, _ = read_authority(store, location)
    if authority is None:
        raise MissingDependencyError(location, f"signer {location} has not been provided")
    return authority


@timeit
def reconcile_signer(
    store: ObjectStore,
    location: ResourceLocation,
    clock: Clock,
    recorder: EventRecorder,
    description: str = "",
) -> SignerSlots:
    """
    Create or rotate the signer stored at `location`.

    The write is conditioned on the version read, so two concurrent passes cannot both
    install a new signer: the loser gets an ObjectConflictError and retries from a fresh read.
    """
    current, version = read_authority(store, location)
    authority, action = ensure_authority(current, clock.now(), location.namespace, location.name)
    if action is RotationAction.UNCHANGED:
        return SignerSlots(current=authority)

    store.create_or_update(
        location.namespace,
        location.name,
        encode_keypair(authority.certificate, authority.private_key),
        expected_version=version,
        annotations=keypair_annotations(authority.certificate, description),
    )
    stat_handler.incr(f"authority.{action.value.lower()}")
    recorder.record(
        f"Signer{action.value}",
        f"{action.value.lower()} signer {location}, valid until {authority.not_after.isoformat()}",
    )
    if action is RotationAction.ROTATED:
        return SignerSlots(current=authority, previous=current)
    return SignerSlots(current=authority)
