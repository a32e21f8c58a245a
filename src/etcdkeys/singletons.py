from typing import TYPE_CHECKING

from etcdkeys.config import Config
from etcdkeys.singleton import Singleton

if TYPE_CHECKING:
    from etcdkeys.client import EtcdClient

CONFIG: Singleton[Config] = Singleton(Config)


def _init_etcd_client() -> 'EtcdClient':
    from etcdkeys.client import EtcdClient

    config = CONFIG.instance()
    if not config.is_configured:
        config.configure_from_env()
    return EtcdClient.from_config(config)


ETCD_CLIENT: Singleton['EtcdClient'] = Singleton(_init_etcd_client)
"""
The process-wide `EtcdClient`, built from `CONFIG` the first time it is used. If `CONFIG` has not been bound yet, it
is bound to the process environment.
"""
