import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Dict, Optional

from .errors import InvalidArgumentError, KeyNotFoundError
from .options import (
    CreateInOrderOptions,
    CreateOptions,
    Fields,
    SetOptions,
    WatchOptions,
    resolve_options,
    resolve_ttl_option,
)
from .response import EtcdEvent, RawResponse, from_raw
from .watch import EternalWatch

log = logging.getLogger('etcdkeys')

SCALAR_VALUE_TYPES = (str, bytes, int, float)


def _copy_params(opts: Optional[Mapping], operation: str) -> Dict[str, Any]:
    if opts is None:
        return {}
    if not isinstance(opts, Mapping):
        raise InvalidArgumentError(f'{operation}() options must be a mapping, got {opts!r}')
    return dict(opts)


class Keys(ABC):
    """The basic key value operations against the etcd `/keys` namespace.

    Classes mixing this in provide `version_prefix`, `read_timeout` and `api_execute`. Every operation sends exactly
    one request and returns the `EtcdEvent` it produced, or raises the `EtcdError` etcd answered with.
    """

    version_prefix: str
    read_timeout: float

    @abstractmethod
    def api_execute(
        self, path: str, method: str, params: Dict[str, Any], timeout: Optional[float] = None
    ) -> RawResponse:
        """Sends one request to `path` and returns the undecoded response."""

    @property
    def key_endpoint(self) -> str:
        """The endpoint reserved for the key/value store."""
        return self.version_prefix + '/keys'

    def key_path(self, key: str) -> str:
        """The resource path of a key or directory. The key is used verbatim."""
        return self.key_endpoint + key

    def _request(self, key, method, params, timeout=None) -> EtcdEvent:
        return from_raw(self.api_execute(self.key_path(key), method, params, timeout=timeout))

    def get(self, key: str, opts: Optional[Mapping] = None) -> EtcdEvent:
        """Retrieves a key with its associated data. Raises `KeyNotFoundError` if it is not present.

        `opts` (e.g. `{'recursive': True}`) is sent as-is.
        """
        return self._request(key, 'GET', _copy_params(opts, 'get'))

    def set(
        self,
        key: str,
        value,
        opts=None,
        ttl: Optional[int] = None,
        dir: Optional[bool] = None,
        prev_exist: Optional[bool] = None,
        prev_value: Optional[str] = None,
        prev_index: Optional[int] = None,
    ) -> EtcdEvent:
        """Creates or updates a key.

        >>> client.set('/message', 'hello')
        >>> client.set('/message', 'hello', ttl=5, prev_value='hi')
        >>> client.set('/message', 'hello', {'ttl': 5, 'prevValue': 'hi'})
        >>> client.set('/dir', {'dir': True})

        A mapping `value` creates a directory using the mapping as options. Any preconditions given are sent
        untouched, none are added.

        :type key: str
        :type value: str|bytes|int|float|Mapping
        :type opts: Mapping|SetOptions|int|None
        :rtype: EtcdEvent
        """
        fields = dict(ttl=ttl, dir=dir, prev_exist=prev_exist, prev_value=prev_value, prev_index=prev_index)
        has_fields = any(v is not None for v in fields.values())

        if isinstance(value, Mapping):
            if opts is not None or has_fields:
                raise InvalidArgumentError('set() takes options from a directory mapping value, not from opts')
            params = SetOptions.from_mapping(value).to_params()

        elif isinstance(value, SCALAR_VALUE_TYPES):
            if has_fields:
                option = Fields(resolve_options(SetOptions, opts, fields, 'set'))
            else:
                option = resolve_ttl_option(opts)
            params = {'value': value}
            params.update(option.to_params())

        else:
            raise InvalidArgumentError(f'set() value must be a scalar or a mapping, got {value!r}')

        return self._request(key, 'PUT', params)

    def delete(self, key: str, opts: Optional[Mapping] = None) -> EtcdEvent:
        """Deletes a key (and its content). `opts` (e.g. `{'recursive': True, 'prevValue': 'x'}`) is sent as-is."""
        return self._request(key, 'DELETE', _copy_params(opts, 'delete'))

    def compare_and_swap(self, key: str, value, prev_value: str, ttl: Optional[int] = None) -> EtcdEvent:
        """Sets a new value for key if its current value is `prev_value`. Raises `CompareFailedError` otherwise.

        :type key: str
        :type value: str
        :type prev_value: str
        :type ttl: int|None
        :rtype: EtcdEvent
        """
        params: Dict[str, Any] = {'value': value, 'prevValue': prev_value}
        if ttl is not None:
            params['ttl'] = ttl
        return self._request(key, 'PUT', params)

    test_and_set = compare_and_swap

    def watch(
        self,
        key: str,
        opts=None,
        index: Optional[int] = None,
        consistent: Optional[bool] = None,
        timeout: Optional[float] = None,
    ) -> EtcdEvent:
        """Blocks until `key` changes and returns the change.

        With an index (`index=` or `{'waitIndex': ...}`), returns the first change at or after that index. Without
        one, waits for the next change. The request is bounded by `timeout`, or the client's read timeout.
        Timeouts are raised, never retried.
        """
        fields = dict(wait_index=index, consistent=consistent, timeout=timeout)
        options = resolve_options(WatchOptions, opts, fields, 'watch')
        timeout = options.timeout if options.timeout is not None else self.read_timeout
        return self._request(key, 'GET', options.to_params(), timeout=timeout)

    def eternal_watch(self, key: str, index: Optional[int] = None, timeout: Optional[float] = None) -> EternalWatch:
        """Returns an endless, lazily produced sequence of the changes to `key`.

        >>> with client.eternal_watch('/config') as changes:
        ...     for event in changes:
        ...         handle(event)
        """
        return EternalWatch(self, key, index=index, timeout=timeout)

    def create_in_order(self, dir: str, value, opts=None, ttl: Optional[int] = None) -> EtcdEvent:
        """Creates a key with an automatically increasing name under `dir`."""
        options = resolve_options(CreateInOrderOptions, opts, dict(ttl=ttl), 'create_in_order')
        params: Dict[str, Any] = {'value': value}
        params.update(options.to_params())
        return self._request(dir, 'POST', params)

    def exists(self, key: str) -> bool:
        """Checks whether a key is present. Only a missing key makes this False, every other error is raised."""
        log.debug('Checking if key %r exists', key)
        try:
            self.get(key)
        except KeyNotFoundError as e:
            log.debug('Key does not exist: %s', e)
            return False
        return True

    __contains__ = exists

    def create(
        self,
        key: str,
        opts=None,
        value=None,
        ttl: Optional[int] = None,
        dir: Optional[bool] = None,
    ) -> EtcdEvent:
        """Creates a new key. Raises `NodeExistsError` if it already exists. `opts` of None means no options.

        >>> client.create('/message', {'value': 'hello', 'ttl': 5})
        >>> client.create('/message', value='hello', ttl=5)
        """
        options = resolve_options(CreateOptions, opts, dict(value=value, ttl=ttl, dir=dir), 'create')
        params: Dict[str, Any] = {'prevExist': False}
        params.update(options.to_params())
        return self._request(key, 'PUT', params)

    def update(self, key: str, value, ttl: Optional[int] = None) -> EtcdEvent:
        """Updates an existing key. Raises `KeyNotFoundError` if it does not exist."""
        params: Dict[str, Any] = {'value': value, 'prevExist': True}
        if ttl is not None:
            params['ttl'] = ttl
        return self._request(key, 'PUT', params)
