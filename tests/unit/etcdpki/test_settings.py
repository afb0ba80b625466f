import argparse
from unittest.mock import patch

from dynaconf import Dynaconf

from etcdpki.settings import check_module_settings
from etcdpki.settings import get_setting
from etcdpki.settings import populate_settings_from_config


def _config(**kwargs):
    values = {
        "kubeconfig": None,
        "context": None,
        "resync_interval": None,
        "statsd_enabled": False,
    }
    values.update(kwargs)
    return argparse.Namespace(**values)


@patch("etcdpki.settings.settings", Dynaconf(merge_enabled=True))
def test_get_setting_falls_back_to_defaults():
    assert get_setting("common", "target_namespace") == "openshift-etcd"
    assert get_setting("common", "resync_interval") == 60
    assert get_setting("k8s", "kubeconfig") is None
    assert get_setting("nope", "nothing") is None


@patch("etcdpki.settings.settings", Dynaconf(merge_enabled=True))
def test_flags_override_settings():
    populate_settings_from_config(_config(kubeconfig="/tmp/kubeconfig", resync_interval=15))

    assert get_setting("k8s", "kubeconfig") == "/tmp/kubeconfig"
    assert get_setting("common", "resync_interval") == 15
    assert get_setting("common", "operator_namespace") == "openshift-etcd-operator"


@patch("etcdpki.settings.settings", Dynaconf(merge_enabled=True))
def test_check_module_settings():
    assert check_module_settings("statsd", ["host", "port"]) is True
    assert check_module_settings("k8s", ["kubeconfig"]) is False
