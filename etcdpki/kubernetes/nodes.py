import logging
from typing import List

from kubernetes.client.exceptions import ApiException
from kubernetes.client.models import V1Node

from etcdpki.constants import CONTROL_PLANE_NODE_SELECTOR
from etcdpki.exceptions import TopologyLookupError
from etcdpki.kubernetes.util import K8sClient
from etcdpki.kubernetes.util import retry_transient
from etcdpki.util import timeit

logger = logging.getLogger(__name__)


def get_internal_ips(node: V1Node) -> List[str]:
    if not node.status or not node.status.addresses:
        return []
    return [address.address for address in node.status.addresses if address.type == "InternalIP"]


class KubernetesNodeTopology:
    def __init__(self, client: K8sClient, label_selector: str = CONTROL_PLANE_NODE_SELECTOR) -> None:
        self.client = client
        self.label_selector = label_selector

    @timeit
    def node_names(self) -> List[str]:
        try:
            nodes = retry_transient(self.client.core.list_node)(label_selector=self.label_selector)
        except ApiException as e:
            raise TopologyLookupError(f"unable to list nodes matching {self.label_selector}: {e.reason}") from e
        return sorted(node.metadata.name for node in nodes.items)

    def internal_ips(self, node_name: str) -> List[str]:
        try:
            node = retry_transient(self.client.core.read_node)(node_name)
        except ApiException as e:
            raise TopologyLookupError(f"unable to read node {node_name}: {e.reason}") from e
        ips = get_internal_ips(node)
        if not ips:
            raise TopologyLookupError(f"node {node_name} has no internal IP addresses")
        return ips
