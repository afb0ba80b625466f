import logging
from typing import Optional

import backoff
from kubernetes import config
from kubernetes.client import ApiClient
from kubernetes.client import CoreV1Api
from kubernetes.client.exceptions import ApiException

from etcdpki.util import backoff_handler

logger = logging.getLogger(__name__)

MAX_TRIES = 5


class KubernetesContextNotFound(Exception):
    pass


class K8CoreApiClient(CoreV1Api):
    def __init__(self, name: str, config_file: Optional[str], api_client: Optional[ApiClient] = None) -> None:
        self.name = name
        if not api_client:
            api_client = _new_api_client(name, config_file)
        super().__init__(api_client=api_client)


class K8sClient:
    def __init__(self, name: str, config_file: Optional[str], api_client: Optional[ApiClient] = None) -> None:
        self.name = name
        self.config_file = config_file
        self.core = K8CoreApiClient(self.name, self.config_file, api_client=api_client)


def _new_api_client(context: str, config_file: Optional[str]) -> ApiClient:
    if config_file is None:
        config.load_incluster_config()
        return ApiClient()
    return config.new_client_from_config(context=context or None, config_file=config_file)


def get_k8s_client(kubeconfig: Optional[str], context: Optional[str] = None) -> K8sClient:
    """
    Build a client for `context` of `kubeconfig`, its current context when `context` is
    empty, or the in-cluster service account when no kubeconfig is given.
    """
    if kubeconfig is None:
        logger.info("No kubeconfig given, using in-cluster configuration")
        return K8sClient("in-cluster", None)
    contexts, current = config.list_kube_config_contexts(kubeconfig)
    if not contexts:
        raise KubernetesContextNotFound("No context found in kubeconfig.")
    name = context or current["name"]
    if name not in {c["name"] for c in contexts}:
        raise KubernetesContextNotFound(f"Context {name} not found in kubeconfig.")
    return K8sClient(name, kubeconfig)


def is_transient(e: ApiException) -> bool:
    return e.status == 429 or (e.status is not None and e.status >= 500)


retry_transient = backoff.on_exception(
    backoff.expo,
    ApiException,
    max_tries=MAX_TRIES,
    giveup=lambda e: not is_transient(e),
    on_backoff=backoff_handler,
)
