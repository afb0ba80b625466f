from kubernetes.client.models import V1Node
from kubernetes.client.models import V1NodeAddress
from kubernetes.client.models import V1NodeList
from kubernetes.client.models import V1NodeStatus
from kubernetes.client.models import V1ObjectMeta

MASTER_0_IPS = ["10.0.0.5"]
MASTER_1_IPS = ["10.0.0.6", "fd00::6"]

NODE_TOPOLOGY = {
    "master-0": MASTER_0_IPS,
    "master-1": MASTER_1_IPS,
}


def _node(name, addresses):
    return V1Node(
        metadata=V1ObjectMeta(name=name, labels={"node-role.kubernetes.io/master": ""}),
        status=V1NodeStatus(
            addresses=[V1NodeAddress(type=address_type, address=address) for address_type, address in addresses],
        ),
    )


MASTER_0 = _node(
    "master-0",
    [("Hostname", "master-0"), ("InternalIP", "10.0.0.5"), ("ExternalIP", "203.0.113.5")],
)
MASTER_1 = _node(
    "master-1",
    [("InternalIP", "10.0.0.6"), ("InternalIP", "fd00::6")],
)
NODE_WITHOUT_ADDRESSES = V1Node(metadata=V1ObjectMeta(name="master-2"), status=V1NodeStatus(addresses=None))

NODE_LIST = V1NodeList(items=[MASTER_1, MASTER_0])
