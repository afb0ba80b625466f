import base64
import logging
from typing import Callable
from typing import Dict
from typing import Mapping
from typing import Optional

from kubernetes.client import V1ConfigMap
from kubernetes.client import V1ObjectMeta
from kubernetes.client import V1Secret
from kubernetes.client.exceptions import ApiException

from etcdpki.constants import TLS_CERT_FIELD
from etcdpki.constants import TLS_KEY_FIELD
from etcdpki.exceptions import ObjectConflictError
from etcdpki.exceptions import ObjectNotFoundError
from etcdpki.exceptions import ObjectStoreError
from etcdpki.exceptions import TransientError
from etcdpki.kubernetes.util import is_transient
from etcdpki.kubernetes.util import K8sClient
from etcdpki.kubernetes.util import retry_transient
from etcdpki.models.resources import ResourceKind
from etcdpki.models.resources import ResourceLocation
from etcdpki.models.resources import StoredObject

logger = logging.getLogger(__name__)

TLS_SECRET_TYPE = "kubernetes.io/tls"
OPAQUE_SECRET_TYPE = "Opaque"


def _translate(e: ApiException, location: ResourceLocation) -> Exception:
    if e.status == 404:
        return ObjectNotFoundError(location)
    if e.status == 409:
        return ObjectConflictError(location)
    if is_transient(e):
        return TransientError(f"{location}: {e.status} {e.reason}")
    return ObjectStoreError(f"{location}: {e.status} {e.reason}")


def _existing_metadata(read: Callable, location: ResourceLocation) -> V1ObjectMeta:
    """
    Metadata of the object about to be replaced. An object that vanished since it was read
    is a conflict for the caller holding its version.
    """
    try:
        return retry_transient(read)(location.name, location.namespace).metadata
    except ApiException as e:
        if e.status == 404:
            raise ObjectConflictError(location) from e
        raise _translate(e, location) from e


def _metadata(
    namespace: str,
    name: str,
    expected_version: Optional[str],
    annotations: Optional[Mapping[str, str]],
    existing: Optional[V1ObjectMeta] = None,
) -> V1ObjectMeta:
    # labels and annotations written by others survive a replace
    merged = dict(existing.annotations or {}) if existing else {}
    merged.update(annotations or {})
    labels = dict(existing.labels or {}) if existing else {}
    return V1ObjectMeta(
        name=name,
        namespace=namespace,
        resource_version=expected_version,
        annotations=merged or None,
        labels=labels or None,
    )


def secret_type_for(data: Mapping[str, bytes]) -> str:
    if set(data) == {TLS_CERT_FIELD, TLS_KEY_FIELD}:
        return TLS_SECRET_TYPE
    return OPAQUE_SECRET_TYPE


class KubernetesSecretStore:
    kind = ResourceKind.SECRET

    def __init__(self, client: K8sClient) -> None:
        self.client = client

    def get(self, namespace: str, name: str) -> StoredObject:
        try:
            secret = retry_transient(self.client.core.read_namespaced_secret)(name, namespace)
        except ApiException as e:
            raise _translate(e, ResourceLocation(namespace, name)) from e
        return transform_secret(secret)

    def create_or_update(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, bytes],
        expected_version: Optional[str],
        annotations: Optional[Mapping[str, str]] = None,
    ) -> StoredObject:
        existing = None
        if expected_version is not None:
            existing = _existing_metadata(self.client.core.read_namespaced_secret, ResourceLocation(namespace, name))
        body = V1Secret(
            metadata=_metadata(namespace, name, expected_version, annotations, existing),
            type=secret_type_for(data),
            data={k: base64.b64encode(v).decode("ascii") for k, v in data.items()},
        )
        try:
            if expected_version is None:
                secret = self.client.core.create_namespaced_secret(namespace, body)
            else:
                secret = self.client.core.replace_namespaced_secret(name, namespace, body)
        except ApiException as e:
            raise _translate(e, ResourceLocation(namespace, name)) from e
        logger.debug("Wrote secret %s/%s at version %s", namespace, name, secret.metadata.resource_version)
        return transform_secret(secret)


class KubernetesConfigMapStore:
    kind = ResourceKind.CONFIG_MAP

    def __init__(self, client: K8sClient) -> None:
        self.client = client

    def get(self, namespace: str, name: str) -> StoredObject:
        try:
            config_map = retry_transient(self.client.core.read_namespaced_config_map)(name, namespace)
        except ApiException as e:
            raise _translate(e, ResourceLocation(namespace, name)) from e
        return transform_config_map(config_map)

    def create_or_update(
        self,
        namespace: str,
        name: str,
        data: Mapping[str, bytes],
        expected_version: Optional[str],
        annotations: Optional[Mapping[str, str]] = None,
    ) -> StoredObject:
        text: Dict[str, str] = {}
        binary: Dict[str, str] = {}
        for key, value in data.items():
            try:
                text[key] = value.decode("utf-8")
            except UnicodeDecodeError:
                binary[key] = base64.b64encode(value).decode("ascii")
        existing = None
        if expected_version is not None:
            existing = _existing_metadata(
                self.client.core.read_namespaced_config_map,
                ResourceLocation(namespace, name),
            )
        body = V1ConfigMap(
            metadata=_metadata(namespace, name, expected_version, annotations, existing),
            data=text or None,
            binary_data=binary or None,
        )
        try:
            if expected_version is None:
                config_map = self.client.core.create_namespaced_config_map(namespace, body)
            else:
                config_map = self.client.core.replace_namespaced_config_map(name, namespace, body)
        except ApiException as e:
            raise _translate(e, ResourceLocation(namespace, name)) from e
        logger.debug("Wrote configmap %s/%s at version %s", namespace, name, config_map.metadata.resource_version)
        return transform_config_map(config_map)


def transform_secret(secret: V1Secret) -> StoredObject:
    return StoredObject(
        data={k: base64.b64decode(v) for k, v in (secret.data or {}).items()},
        version=secret.metadata.resource_version,
        annotations=dict(secret.metadata.annotations or {}),
    )


def transform_config_map(config_map: V1ConfigMap) -> StoredObject:
    data = {k: v.encode("utf-8") for k, v in (config_map.data or {}).items()}
    data.update({k: base64.b64decode(v) for k, v in (config_map.binary_data or {}).items()})
    return StoredObject(
        data=data,
        version=config_map.metadata.resource_version,
        annotations=dict(config_map.metadata.annotations or {}),
    )
