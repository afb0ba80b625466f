import hashlib
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Dict
from typing import Optional
from typing import Union


class ResourceKind(str, Enum):
    SECRET = "Secret"
    CONFIG_MAP = "ConfigMap"


@dataclass(frozen=True)
class ResourceLocation:
    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class StoredObject:
    """
    An opaque keypair or bundle object as read from the object store.

    `version` is the store's optimistic concurrency token; it is None for an object that
    has not been persisted yet.
    """
    data: Dict[str, bytes]
    version: Optional[str] = None
    annotations: Dict[str, str] = field(default_factory=dict)

    def content_hash(self) -> str:
        digest = hashlib.sha256()
        for key in sorted(self.data):
            digest.update(key.encode("utf-8"))
            digest.update(b"\x00")
            digest.update(self.data[key])
            digest.update(b"\x00")
        return digest.hexdigest()


@dataclass(frozen=True)
class ExistsPrecondition:
    """Holds when an object of `kind` exists at `anchor`. Never mutates anything."""
    anchor: ResourceLocation
    kind: ResourceKind = ResourceKind.CONFIG_MAP


@dataclass(frozen=True)
class UnconditionalSyncRule:
    kind: ResourceKind
    source: ResourceLocation
    destination: ResourceLocation


@dataclass(frozen=True)
class ConditionalSyncRule:
    kind: ResourceKind
    source: ResourceLocation
    destination: ResourceLocation
    precondition: ExistsPrecondition


SyncRule = Union[UnconditionalSyncRule, ConditionalSyncRule]
