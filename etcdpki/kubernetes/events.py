import logging
from datetime import datetime
from datetime import timezone

from kubernetes.client import CoreV1Event
from kubernetes.client import V1EventSource
from kubernetes.client import V1ObjectMeta
from kubernetes.client import V1ObjectReference
from kubernetes.client.exceptions import ApiException

from etcdpki.kubernetes.util import K8sClient

logger = logging.getLogger(__name__)

COMPONENT = "etcdpki"
WARNING_REASONS = frozenset({"SourceMissing", "ReconcileFailed", "TopologyLookupFailed"})


class KubernetesEventRecorder:
    """
    Records events against the operator deployment. Recording is fire-and-forget: a
    failure to post an event is logged and never reaches the reconcile pass.
    """

    def __init__(self, client: K8sClient, namespace: str, involved_name: str = "etcd-operator") -> None:
        self.client = client
        self.namespace = namespace
        self.involved_object = V1ObjectReference(
            api_version="apps/v1",
            kind="Deployment",
            name=involved_name,
            namespace=namespace,
        )

    def record(self, reason: str, message: str) -> None:
        now = datetime.now(timezone.utc)
        event = CoreV1Event(
            metadata=V1ObjectMeta(generate_name=f"{self.involved_object.name}.", namespace=self.namespace),
            involved_object=self.involved_object,
            reason=reason,
            message=message,
            type="Warning" if reason in WARNING_REASONS else "Normal",
            source=V1EventSource(component=COMPONENT),
            first_timestamp=now,
            last_timestamp=now,
            count=1,
        )
        try:
            self.client.core.create_namespaced_event(self.namespace, event)
        except ApiException as e:
            logger.warning("Unable to record event %s (%s): %s", reason, message, e.reason)
