import logging
import threading
from typing import Optional

from etcdpki.context import ReconcileContext
from etcdpki.kubernetes.events import KubernetesEventRecorder
from etcdpki.kubernetes.nodes import KubernetesNodeTopology
from etcdpki.kubernetes.store import KubernetesConfigMapStore
from etcdpki.kubernetes.store import KubernetesSecretStore
from etcdpki.kubernetes.util import get_k8s_client
from etcdpki.settings import get_setting

logger = logging.getLogger(__name__)


def build_reconcile_context(stop_event: Optional[threading.Event] = None) -> ReconcileContext:
    client = get_k8s_client(get_setting("k8s", "kubeconfig"), get_setting("k8s", "context"))
    logger.info("Reconciling against Kubernetes context %s", client.name)
    operator_namespace = get_setting("common", "operator_namespace")
    return ReconcileContext(
        secrets=KubernetesSecretStore(client),
        config_maps=KubernetesConfigMapStore(client),
        topology=KubernetesNodeTopology(client, get_setting("common", "node_selector")),
        recorder=KubernetesEventRecorder(client, operator_namespace),
        target_namespace=get_setting("common", "target_namespace"),
        operator_namespace=operator_namespace,
        config_namespace=get_setting("common", "config_namespace"),
        kube_system_namespace=get_setting("common", "kube_system_namespace"),
        stop_event=stop_event or threading.Event(),
    )
