import logging
from dataclasses import dataclass
from typing import Iterable
from typing import List

from etcdpki.certs.issuer import build_leaf_spec
from etcdpki.certs.issuer import ensure_leaf
from etcdpki.constants import ETCD_CLIENT_SECRET
from etcdpki.constants import ETCD_METRICS_CLIENT_SECRET
from etcdpki.constants import ETCD_METRICS_SIGNER_SECRET
from etcdpki.constants import ETCD_SIGNER_SECRET
from etcdpki.constants import peer_secret_name
from etcdpki.constants import PLACEHOLDER_IDENTITY
from etcdpki.constants import serving_metrics_secret_name
from etcdpki.constants import serving_secret_name
from etcdpki.controllers.keypair import decode_keypair
from etcdpki.controllers.keypair import encode_keypair
from etcdpki.controllers.keypair import keypair_annotations
from etcdpki.exceptions import CertificateParseError
from etcdpki.exceptions import ObjectNotFoundError
from etcdpki.models.certificates import LeafRole
from etcdpki.models.certificates import SigningAuthority
from etcdpki.models.resources import ResourceLocation
from etcdpki.stats import get_stats_client
from etcdpki.store import Clock
from etcdpki.store import EventRecorder
from etcdpki.store import ObjectStore
from etcdpki.util import timeit

logger = logging.getLogger(__name__)
stat_handler = get_stats_client(__name__)


@dataclass(frozen=True)
class LeafTarget:
    location: ResourceLocation
    role: LeafRole
    signer: str
    description: str
    identity: str = PLACEHOLDER_IDENTITY
    node_name: str = ""


def node_leaf_targets(node_name: str, namespace: str) -> List[LeafTarget]:
    return [
        LeafTarget(
            location=ResourceLocation(namespace, peer_secret_name(node_name)),
            role=LeafRole.PEER,
            signer=ETCD_SIGNER_SECRET,
            description=f"Peer Cert for node {node_name}",
            identity=node_name,
            node_name=node_name,
        ),
        LeafTarget(
            location=ResourceLocation(namespace, serving_secret_name(node_name)),
            role=LeafRole.SERVER,
            signer=ETCD_SIGNER_SECRET,
            description=f"Serving Cert for node {node_name}",
            identity=node_name,
            node_name=node_name,
        ),
        LeafTarget(
            location=ResourceLocation(namespace, serving_metrics_secret_name(node_name)),
            role=LeafRole.METRICS_SERVER,
            signer=ETCD_METRICS_SIGNER_SECRET,
            description=f"Metric Serving Cert for node {node_name}",
            identity=node_name,
            node_name=node_name,
        ),
    ]


def client_leaf_targets(namespace: str) -> List[LeafTarget]:
    return [
        LeafTarget(
            location=ResourceLocation(namespace, ETCD_CLIENT_SECRET),
            role=LeafRole.CLIENT,
            signer=ETCD_SIGNER_SECRET,
            description="etcd client certificate",
        ),
        LeafTarget(
            location=ResourceLocation(namespace, ETCD_METRICS_CLIENT_SECRET),
            role=LeafRole.METRICS_CLIENT,
            signer=ETCD_METRICS_SIGNER_SECRET,
            description="etcd metrics client certificate",
        ),
    ]


@timeit
def reconcile_leaf(
    store: ObjectStore,
    target: LeafTarget,
    authority: SigningAuthority,
    node_ips: Iterable[str],
    clock: Clock,
    recorder: EventRecorder,
) -> bool:
    """
    Issue or re-issue the leaf stored at `target.location` when it is missing, unparsable,
    due for refresh, lists stale hostnames or was signed by another signer.

    :return: True when new material was written.
    """
    location = target.location
    try:
        stored = store.get(location.namespace, location.name)
    except ObjectNotFoundError:
        stored = None

    current = None
    if stored is not None:
        try:
            current = decode_keypair(stored)
        except CertificateParseError as e:
            logger.warning("Replacing unparsable certificate %s: %s", location, e)

    spec = build_leaf_spec(target.role, node_ips, target.identity)
    certificate, private_key, issued = ensure_leaf(authority, spec, current, clock.now())
    if not issued:
        return False

    store.create_or_update(
        location.namespace,
        location.name,
        encode_keypair(certificate, private_key),
        expected_version=stored.version if stored else None,
        annotations=keypair_annotations(certificate, target.description),
    )
    stat_handler.incr("leaf.issued")
    recorder.record(
        "CertificateUpdated",
        f"issued {target.role.value} certificate {location}, valid until {certificate.not_valid_after_utc.isoformat()}",
    )
    return True
