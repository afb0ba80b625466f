import argparse
import logging
from typing import Any
from typing import List

from dynaconf import Dynaconf

from etcdpki.constants import CONFIG_NAMESPACE
from etcdpki.constants import CONTROL_PLANE_NODE_SELECTOR
from etcdpki.constants import KUBE_SYSTEM_NAMESPACE
from etcdpki.constants import OPERATOR_NAMESPACE
from etcdpki.constants import TARGET_NAMESPACE

logger = logging.getLogger(__name__)


settings = Dynaconf(
    includes=["settings.toml"],
    load_dotenv=True,
    merge_enabled=True,
    envvar_prefix="ETCDPKI",
)

DEFAULTS = {
    "common": {
        "operator_namespace": OPERATOR_NAMESPACE,
        "target_namespace": TARGET_NAMESPACE,
        "config_namespace": CONFIG_NAMESPACE,
        "kube_system_namespace": KUBE_SYSTEM_NAMESPACE,
        "node_selector": CONTROL_PLANE_NODE_SELECTOR,
        "resync_interval": 60,
    },
    "k8s": {
        "kubeconfig": None,
        "context": None,
    },
    "statsd": {
        "enabled": False,
        "host": "127.0.0.1",
        "port": 8125,
        "prefix": "",
    },
}


def get_setting(section: str, key: str) -> Any:
    """Read section.key, falling back to the built-in default."""
    value = settings.get(section, {}).get(key)
    if value is None:
        return DEFAULTS.get(section, {}).get(key)
    return value


def check_module_settings(module_name: str, required_settings: List[str]) -> bool:
    """
    Check if the required settings for a module are set in the configuration.

    Args:
        module_name (str): The name of the settings section.
        required_settings (List[str]): Keys that must be present and non-empty.

    Returns:
        bool: True if all required settings are present, False otherwise.
    """
    missing_settings = [
        setting for setting in required_settings if get_setting(module_name, setting) in (None, "")
    ]
    if missing_settings:
        logger.warning(
            "%s is not configured. Missing settings: %s",
            module_name,
            ", ".join(missing_settings),
        )
        return False
    return True


def populate_settings_from_config(config: argparse.Namespace) -> None:
    """
    Let command line flags override settings.toml and ETCDPKI_* environment variables.
    Flags left at None keep whatever the other layers provide.
    """
    if getattr(config, "kubeconfig", None):
        settings.update({"k8s": {"kubeconfig": config.kubeconfig}})
    if getattr(config, "context", None):
        settings.update({"k8s": {"context": config.context}})
    if getattr(config, "resync_interval", None):
        settings.update({"common": {"resync_interval": config.resync_interval}})
    if getattr(config, "statsd_enabled", False):
        settings.update(
            {
                "statsd": {
                    "enabled": True,
                    "host": config.statsd_host,
                    "port": config.statsd_port,
                    "prefix": config.statsd_prefix,
                },
            },
        )
