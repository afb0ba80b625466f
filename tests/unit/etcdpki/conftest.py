from unittest.mock import MagicMock

import pytest

from etcdpki.certs.authority import new_signing_authority
from etcdpki.models.resources import ResourceKind
from etcdpki.store import MemoryObjectStore
from tests.data.etcdpki.certs import NOW
from tests.utils import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return MagicMock()


@pytest.fixture
def secrets():
    return MemoryObjectStore(ResourceKind.SECRET)


@pytest.fixture
def config_maps():
    return MemoryObjectStore(ResourceKind.CONFIG_MAP)


@pytest.fixture(scope="session")
def authority():
    return new_signing_authority("openshift-etcd_etcd-signer@1767268800", NOW)


@pytest.fixture(scope="session")
def other_authority():
    return new_signing_authority("openshift-etcd_etcd-signer@1767268801", NOW)
