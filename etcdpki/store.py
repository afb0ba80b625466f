"""
Collaborators the reconcilers depend on, and in-memory implementations of them.

The Kubernetes-backed implementations live in etcdpki.kubernetes.
"""
import itertools
import logging
import threading
from datetime import datetime
from datetime import timezone
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional
from typing import Protocol
from typing import Tuple

from etcdpki.exceptions import ObjectConflictError
from etcdpki.exceptions import ObjectNotFoundError
from etcdpki.exceptions import TopologyLookupError
from etcdpki.models.resources import ResourceKind
from etcdpki.models.resources import ResourceLocation
from etcdpki.models.resources import StoredObject

logger = logging.getLogger(__name__)


class ObjectStore(Protocol):
    kind: ResourceKind

    def get(self, namespace: str, name: str) -> StoredObject:
        """:raises ObjectNotFoundError: when nothing is stored at namespace/name."""
        ...

    def create_or_update(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, bytes],
        expected_version: Optional[str],
        annotations: Optional[Mapping[str, str]] = None,
    ) -> StoredObject:
        """
        Create (expected_version None) or replace (expected_version set) the object.

        :raises ObjectConflictError: when the stored version differs from expected_version.
        """
        ...


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class EventRecorder(Protocol):
    def record(self, reason: str, message: str) -> None:
        ...


class NodeTopology(Protocol):
    def node_names(self) -> List[str]:
        ...

    def internal_ips(self, node_name: str) -> List[str]:
        """:raises TopologyLookupError: when the node or its addresses cannot be found."""
        ...


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class LoggingEventRecorder:
    def record(self, reason: str, message: str) -> None:
        logger.info("event %s: %s", reason, message)


class MemoryObjectStore:
    def __init__(self, kind: ResourceKind) -> None:
        self.kind = kind
        self._objects: Dict[Tuple[str, str], StoredObject] = {}
        self._versions = itertools.count(1)
        self._lock = threading.Lock()

    def get(self, namespace: str, name: str) -> StoredObject:
        with self._lock:
            try:
                return self._objects[(namespace, name)]
            except KeyError:
                raise ObjectNotFoundError(ResourceLocation(namespace, name)) from None

    def create_or_update(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, bytes],
        expected_version: Optional[str],
        annotations: Optional[Mapping[str, str]] = None,
    ) -> StoredObject:
        key = (namespace, name)
        with self._lock:
            existing = self._objects.get(key)
            stored_version = existing.version if existing else None
            if stored_version != expected_version:
                raise ObjectConflictError(ResourceLocation(namespace, name))
            merged = dict(existing.annotations) if existing else {}
            merged.update(annotations or {})
            stored = StoredObject(
                data=dict(data),
                version=str(next(self._versions)),
                annotations=merged,
            )
            self._objects[key] = stored
            return stored

    def delete(self, namespace: str, name: str) -> None:
        with self._lock:
            self._objects.pop((namespace, name), None)

    def __contains__(self, location: ResourceLocation) -> bool:
        return (location.namespace, location.name) in self._objects


class StaticNodeTopology:
    def __init__(self, nodes: Mapping[str, List[str]]) -> None:
        self._nodes = dict(nodes)

    def node_names(self) -> List[str]:
        return sorted(self._nodes)

    def internal_ips(self, node_name: str) -> List[str]:
        if not self._nodes.get(node_name):
            raise TopologyLookupError(f"no internal IP addresses known for node {node_name}")
        return list(self._nodes[node_name])
