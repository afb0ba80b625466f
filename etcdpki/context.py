import threading
from dataclasses import dataclass
from dataclasses import field
from typing import Dict
from typing import List

from etcdpki.constants import CONFIG_NAMESPACE
from etcdpki.constants import KUBE_SYSTEM_NAMESPACE
from etcdpki.constants import OPERATOR_NAMESPACE
from etcdpki.constants import TARGET_NAMESPACE
from etcdpki.models.certificates import SignerSlots
from etcdpki.models.resources import ResourceKind
from etcdpki.store import Clock
from etcdpki.store import EventRecorder
from etcdpki.store import NodeTopology
from etcdpki.store import ObjectStore
from etcdpki.store import SystemClock


@dataclass
class ReconcileContext:
    """
    Everything a reconcile pass needs. Stages share it: the signer stage fills `signers`,
    which later stages read; per-object failures that did not abort the pass are appended
    to `failures`.
    """
    secrets: ObjectStore
    config_maps: ObjectStore
    topology: NodeTopology
    recorder: EventRecorder
    clock: Clock = field(default_factory=SystemClock)
    target_namespace: str = TARGET_NAMESPACE
    operator_namespace: str = OPERATOR_NAMESPACE
    config_namespace: str = CONFIG_NAMESPACE
    kube_system_namespace: str = KUBE_SYSTEM_NAMESPACE
    stop_event: threading.Event = field(default_factory=threading.Event)
    signers: Dict[str, SignerSlots] = field(default_factory=dict)
    failures: List[str] = field(default_factory=list)

    @property
    def stores(self) -> Dict[ResourceKind, ObjectStore]:
        return {ResourceKind.SECRET: self.secrets, ResourceKind.CONFIG_MAP: self.config_maps}

    def reset(self) -> None:
        self.signers.clear()
        self.failures.clear()
