"""
Mirrors keypair secrets and CA bundle configmaps between namespaces.

A rule never deletes its destination. When the source is missing the destination is left
as it is and the miss is reported; a conditional rule whose precondition does not hold
does nothing at all, which keeps a destination intact while the source of truth is being
moved to a new location.
"""
import logging
import threading
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Dict
from typing import Iterable
from typing import List
from typing import Mapping
from typing import Optional

from etcdpki.constants import CLUSTER_CONFIG
from etcdpki.constants import CONFIG_NAMESPACE
from etcdpki.constants import ETCD_CLIENT_SECRET
from etcdpki.constants import ETCD_METRICS_CLIENT_SECRET
from etcdpki.constants import ETCD_METRICS_SIGNER_BUNDLE
from etcdpki.constants import ETCD_SIGNER_BUNDLE
from etcdpki.constants import KUBE_SYSTEM_NAMESPACE
from etcdpki.constants import OPERATOR_NAMESPACE
from etcdpki.constants import TARGET_NAMESPACE
from etcdpki.exceptions import ObjectNotFoundError
from etcdpki.models.resources import ConditionalSyncRule
from etcdpki.models.resources import ExistsPrecondition
from etcdpki.models.resources import ResourceKind
from etcdpki.models.resources import ResourceLocation
from etcdpki.models.resources import SyncRule
from etcdpki.models.resources import UnconditionalSyncRule
from etcdpki.stats import get_stats_client
from etcdpki.store import EventRecorder
from etcdpki.store import LoggingEventRecorder
from etcdpki.store import ObjectStore
from etcdpki.util import timeit

logger = logging.getLogger(__name__)
stat_handler = get_stats_client(__name__)


class SyncOutcome(str, Enum):
    COPIED = "copied"
    UNCHANGED = "unchanged"
    PRECONDITION_UNMET = "skipped"
    SOURCE_MISSING = "source_missing"


@dataclass
class SyncReport:
    outcomes: Dict[SyncRule, SyncOutcome] = field(default_factory=dict)
    aborted: bool = False

    @property
    def missing_sources(self) -> List[ResourceLocation]:
        return [rule.source for rule, outcome in self.outcomes.items() if outcome is SyncOutcome.SOURCE_MISSING]


class ResourceSyncReconciler:
    def __init__(
        self,
        stores: Mapping[ResourceKind, ObjectStore],
        rules: Iterable[SyncRule],
        recorder: Optional[EventRecorder] = None,
    ) -> None:
        self.stores = dict(stores)
        self.rules = list(rules)
        self.recorder = recorder or LoggingEventRecorder()
        destinations = set()
        for rule in self.rules:
            key = (rule.kind, rule.destination)
            if key in destinations:
                raise ValueError(f"more than one sync rule writes {rule.kind.value} {rule.destination}")
            if rule.source == rule.destination:
                raise ValueError(f"sync rule for {rule.kind.value} {rule.source} copies onto itself")
            destinations.add(key)
            if rule.kind not in self.stores:
                raise ValueError(f"no object store configured for {rule.kind.value}")

    def precondition_holds(self, precondition: ExistsPrecondition) -> bool:
        store = self.stores[precondition.kind]
        try:
            store.get(precondition.anchor.namespace, precondition.anchor.name)
        except ObjectNotFoundError:
            return False
        return True

    def sync_rule(self, rule: SyncRule) -> SyncOutcome:
        if isinstance(rule, ConditionalSyncRule) and not self.precondition_holds(rule.precondition):
            logger.debug(
                "Skipping sync of %s %s to %s, %s does not exist",
                rule.kind.value,
                rule.source,
                rule.destination,
                rule.precondition.anchor,
            )
            return SyncOutcome.PRECONDITION_UNMET
        return self._copy(rule)

    def _copy(self, rule: SyncRule) -> SyncOutcome:
        store = self.stores[rule.kind]
        try:
            source = store.get(rule.source.namespace, rule.source.name)
        except ObjectNotFoundError:
            logger.warning(
                "Source %s %s for %s does not exist yet, leaving destination untouched",
                rule.kind.value,
                rule.source,
                rule.destination,
            )
            self.recorder.record("SourceMissing", f"{rule.kind.value} {rule.source} does not exist yet")
            return SyncOutcome.SOURCE_MISSING

        try:
            destination = store.get(rule.destination.namespace, rule.destination.name)
        except ObjectNotFoundError:
            destination = None

        if destination is not None and destination.content_hash() == source.content_hash():
            return SyncOutcome.UNCHANGED

        store.create_or_update(
            rule.destination.namespace,
            rule.destination.name,
            source.data,
            expected_version=destination.version if destination else None,
        )
        logger.info("Synced %s %s to %s", rule.kind.value, rule.source, rule.destination)
        self.recorder.record(
            f"{rule.kind.value}Synced",
            f"copied {rule.kind.value} {rule.source} to {rule.destination}",
        )
        return SyncOutcome.COPIED

    @timeit
    def reconcile(self, stop_event: Optional[threading.Event] = None) -> SyncReport:
        """
        Run every rule once. Rules are independent, so a missing source only affects its own
        rule; any other store error propagates and the caller retries the whole pass.
        Cancellation is honoured between rules, never inside one.
        """
        report = SyncReport()
        for rule in self.rules:
            if stop_event is not None and stop_event.is_set():
                logger.info("Resource sync interrupted, %d rules left", len(self.rules) - len(report.outcomes))
                report.aborted = True
                break
            outcome = self.sync_rule(rule)
            report.outcomes[rule] = outcome
            stat_handler.incr(outcome.value)
        return report


def default_sync_rules(
    target_namespace: str = TARGET_NAMESPACE,
    operator_namespace: str = OPERATOR_NAMESPACE,
    config_namespace: str = CONFIG_NAMESPACE,
    kube_system_namespace: str = KUBE_SYSTEM_NAMESPACE,
) -> List[SyncRule]:
    ca_bundle = ResourceLocation(target_namespace, ETCD_SIGNER_BUNDLE)
    metrics_bundle = ResourceLocation(target_namespace, ETCD_METRICS_SIGNER_BUNDLE)
    ca_bundle_exists = ExistsPrecondition(ca_bundle)
    metrics_bundle_exists = ExistsPrecondition(metrics_bundle)

    rules: List[SyncRule] = [
        UnconditionalSyncRule(
            kind=ResourceKind.CONFIG_MAP,
            source=ResourceLocation(kube_system_namespace, CLUSTER_CONFIG),
            destination=ResourceLocation(target_namespace, CLUSTER_CONFIG),
        ),
    ]
    for destination in (
        ResourceLocation(operator_namespace, ETCD_SIGNER_BUNDLE),
        ResourceLocation(target_namespace, "etcd-peer-client-ca"),
        # etcd-serving-ca has been replaced by etcd-ca-bundle; kept for existing consumers.
        ResourceLocation(target_namespace, "etcd-serving-ca"),
        ResourceLocation(config_namespace, "etcd-serving-ca"),
    ):
        rules.append(ConditionalSyncRule(ResourceKind.CONFIG_MAP, ca_bundle, destination, ca_bundle_exists))
    for destination in (
        ResourceLocation(config_namespace, "etcd-metric-serving-ca"),
        ResourceLocation(target_namespace, "etcd-metrics-proxy-client-ca"),
        ResourceLocation(operator_namespace, "etcd-metric-serving-ca"),
        ResourceLocation(target_namespace, "etcd-metrics-proxy-serving-ca"),
    ):
        rules.append(ConditionalSyncRule(ResourceKind.CONFIG_MAP, metrics_bundle, destination, metrics_bundle_exists))

    metrics_client = ResourceLocation(target_namespace, ETCD_METRICS_CLIENT_SECRET)
    client = ResourceLocation(target_namespace, ETCD_CLIENT_SECRET)
    rules.extend(
        [
            UnconditionalSyncRule(
                ResourceKind.SECRET,
                metrics_client,
                ResourceLocation(operator_namespace, ETCD_METRICS_CLIENT_SECRET),
            ),
            UnconditionalSyncRule(ResourceKind.SECRET, client, ResourceLocation(operator_namespace, ETCD_CLIENT_SECRET)),
            UnconditionalSyncRule(ResourceKind.SECRET, client, ResourceLocation(config_namespace, ETCD_CLIENT_SECRET)),
        ],
    )
    return rules
