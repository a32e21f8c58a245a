from typing import Any, Generator

import pytest
from etcdkeys.client import EtcdClient
from etcdkeys.singletons import CONFIG
from etcdkeys.testing import FakeExecutor, InMemoryEtcd


@pytest.fixture(autouse=True)
def config_setup() -> Generator[Any, None, None]:
    CONFIG.instance().configure({'ETCD_ENDPOINT': 'http://etcd.test:2379'})
    yield
    CONFIG.instance().unconfigure_for_tests()


@pytest.fixture(scope='function')
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture(scope='function')
def recording_client(fake_executor) -> EtcdClient:
    """A client whose requests are recorded by `fake_executor` and answered with its queued responses."""
    return EtcdClient('http://etcd.test:2379', read_timeout=30, executor=fake_executor)


@pytest.fixture(scope='function')
def memory_store() -> InMemoryEtcd:
    return InMemoryEtcd()


@pytest.fixture(scope='function')
def etcd_client(memory_store) -> EtcdClient:
    """A client talking to a fresh in-memory etcd."""
    return EtcdClient('http://etcd.test:2379', read_timeout=30, executor=memory_store)


@pytest.fixture(scope='function')
def etcd_key(request) -> str:
    return '/etcd_key_test/%s' % request.node.name.replace('[', '_').replace(']', '')


@pytest.fixture(scope='function')
def etcd_directory(request) -> str:
    return '/etcd_dir_test/%s/' % request.node.name.replace('[', '_').replace(']', '')
