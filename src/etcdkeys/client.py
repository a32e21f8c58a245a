import logging
import os
from typing import Any, Dict, Optional

from etcdkeys.config import Config
from etcdkeys.keys import Keys
from etcdkeys.response import RawResponse
from etcdkeys.transport import HttpExecutor

log = logging.getLogger('etcdkeys')

DEFAULT_ENDPOINT = 'http://127.0.0.1:2379'
DEFAULT_VERSION_PREFIX = '/v2'
DEFAULT_READ_TIMEOUT = 60.0


class EtcdClient(Keys):
    """A client for a single etcd endpoint's v2 keys API.

    The endpoint defaults to `$ETCD_ENDPOINT`, which may carry credentials as `username;password;endpoint`.
    `read_timeout` bounds every request and is the default timeout of `watch`. An `executor` (anything with
    `HttpExecutor.execute`'s signature) replaces the HTTP layer.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        version_prefix: str = DEFAULT_VERSION_PREFIX,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
        username: Optional[str] = None,
        password: Optional[str] = None,
        executor=None,
    ):
        endpoint = endpoint or os.environ.get('ETCD_ENDPOINT', DEFAULT_ENDPOINT)
        if endpoint.count(';') == 2:
            env_username, env_password, endpoint = endpoint.split(';', 2)
            username = username if username is not None else env_username
            password = password if password is not None else env_password

        self.endpoint = endpoint
        self.version_prefix = version_prefix
        self.read_timeout = read_timeout
        self.executor = executor or HttpExecutor(
            endpoint, http_timeout=read_timeout, username=username, password=password
        )

    @classmethod
    def from_config(cls, config: Config, executor=None) -> 'EtcdClient':
        """Builds a client from the `ETCD_*` keys of `config`."""
        return cls(
            endpoint=config.get_str('ETCD_ENDPOINT', DEFAULT_ENDPOINT),
            version_prefix=config.get_str('ETCD_VERSION_PREFIX', DEFAULT_VERSION_PREFIX),
            read_timeout=config.get_float('ETCD_READ_TIMEOUT', DEFAULT_READ_TIMEOUT),
            username=config.get_optional_str('ETCD_USERNAME'),
            password=config.get_optional_str('ETCD_PASSWORD'),
            executor=executor,
        )

    def __repr__(self):
        return '<%s: %s%s>' % (self.__class__.__name__, self.endpoint, self.version_prefix)

    def api_execute(
        self, path: str, method: str, params: Dict[str, Any], timeout: Optional[float] = None
    ) -> RawResponse:
        log.debug('%r: sending %r', self, params, extra={'etcd.method': method, 'etcd.path': path})
        return self.executor.execute(path, method, params, timeout=timeout)
