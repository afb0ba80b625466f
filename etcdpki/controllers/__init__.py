"""
Reconcile stages. Each `start_*` function runs one stage of a pass against a
ReconcileContext.

Errors local to one object (an unparsable signer, a failed key generation, a missing
signer) are logged, recorded and appended to `context.failures`; the stage moves on to
the next object. Transient and store errors propagate so the whole pass is retried.
"""
import logging
from typing import Optional

from etcdpki.constants import ETCD_METRICS_SIGNER_BUNDLE
from etcdpki.constants import ETCD_METRICS_SIGNER_SECRET
from etcdpki.constants import ETCD_SIGNER_BUNDLE
from etcdpki.constants import ETCD_SIGNER_SECRET
from etcdpki.context import ReconcileContext
from etcdpki.controllers.bundle import reconcile_bundle
from etcdpki.controllers.leaf import client_leaf_targets
from etcdpki.controllers.leaf import LeafTarget
from etcdpki.controllers.leaf import node_leaf_targets
from etcdpki.controllers.leaf import reconcile_leaf
from etcdpki.controllers.resourcesync import default_sync_rules
from etcdpki.controllers.resourcesync import ResourceSyncReconciler
from etcdpki.controllers.signer import read_authority
from etcdpki.controllers.signer import reconcile_signer
from etcdpki.exceptions import CertificateParseError
from etcdpki.exceptions import KeyGenerationError
from etcdpki.exceptions import MissingDependencyError
from etcdpki.models.certificates import SignerSlots
from etcdpki.models.resources import ResourceLocation
from etcdpki.util import timeit

logger = logging.getLogger(__name__)

# signer secret name -> (bundle configmap name, description)
SIGNERS = {
    ETCD_SIGNER_SECRET: (ETCD_SIGNER_BUNDLE, "etcd signer certificate authorities"),
    ETCD_METRICS_SIGNER_SECRET: (ETCD_METRICS_SIGNER_BUNDLE, "etcd metrics signer certificate authorities"),
}

OBJECT_ERRORS = (CertificateParseError, KeyGenerationError, MissingDependencyError)


def _report(context: ReconcileContext, location: ResourceLocation, e: Exception) -> None:
    logger.error("Unable to reconcile %s: %s", location, e)
    context.recorder.record("ReconcileFailed", f"unable to reconcile {location}: {e}")
    context.failures.append(str(location))


def _signer_slots(context: ReconcileContext, name: str) -> Optional[SignerSlots]:
    """
    Signers reconciled earlier in this pass, or the stored signer loaded read-only when the
    signers stage was not selected.

    :raises CertificateParseError: when the stored signer cannot be parsed.
    """
    if name not in context.signers:
        authority, _ = read_authority(context.secrets, ResourceLocation(context.target_namespace, name))
        if authority is None:
            return None
        context.signers[name] = SignerSlots(current=authority)
    return context.signers[name]


@timeit
def start_signer_rotation(context: ReconcileContext) -> None:
    for name, (_, description) in SIGNERS.items():
        location = ResourceLocation(context.target_namespace, name)
        try:
            context.signers[name] = reconcile_signer(
                context.secrets,
                location,
                context.clock,
                context.recorder,
                description=description,
            )
        except OBJECT_ERRORS as e:
            _report(context, location, e)


@timeit
def start_bundle_sync(context: ReconcileContext) -> None:
    for name, (bundle_name, description) in SIGNERS.items():
        location = ResourceLocation(context.target_namespace, bundle_name)
        try:
            slots = _signer_slots(context, name)
        except CertificateParseError as e:
            _report(context, location, e)
            continue
        if slots is None:
            _report(context, location, MissingDependencyError(ResourceLocation(context.target_namespace, name)))
            continue
        reconcile_bundle(
            context.config_maps,
            location,
            slots,
            context.clock,
            context.recorder,
            description=f"bundle for {description}",
        )


def _reconcile_target(context: ReconcileContext, target: LeafTarget, node_ips) -> None:
    try:
        slots = _signer_slots(context, target.signer)
        if slots is None:
            raise MissingDependencyError(ResourceLocation(context.target_namespace, target.signer))
        reconcile_leaf(context.secrets, target, slots.current, node_ips, context.clock, context.recorder)
    except OBJECT_ERRORS as e:
        _report(context, target.location, e)


@timeit
def start_leaf_certificates(context: ReconcileContext) -> None:
    for node_name in context.topology.node_names():
        if context.stop_event.is_set():
            return
        node_ips = context.topology.internal_ips(node_name)
        for target in node_leaf_targets(node_name, context.target_namespace):
            _reconcile_target(context, target, node_ips)
    for target in client_leaf_targets(context.target_namespace):
        _reconcile_target(context, target, ())


@timeit
def start_resource_sync(context: ReconcileContext) -> None:
    reconciler = ResourceSyncReconciler(
        context.stores,
        default_sync_rules(
            target_namespace=context.target_namespace,
            operator_namespace=context.operator_namespace,
            config_namespace=context.config_namespace,
            kube_system_namespace=context.kube_system_namespace,
        ),
        recorder=context.recorder,
    )
    report = reconciler.reconcile(context.stop_event)
    for source in report.missing_sources:
        logger.info("Resource sync is waiting for %s", source)
