import json
from email.message import Message
from typing import Mapping, NamedTuple, Optional, Union

from .errors import EtcdError, RequestError

ACTION_GET = 'get'
ACTION_SET = 'set'
ACTION_CREATE = 'create'
ACTION_UPDATE = 'update'
ACTION_DELETE = 'delete'
ACTION_COMPARE_AND_SWAP = 'compareAndSwap'
ACTION_COMPARE_AND_DELETE = 'compareAndDelete'
ACTION_EXPIRE = 'expire'

SET_ACTIONS = {ACTION_SET, ACTION_CREATE, ACTION_COMPARE_AND_SWAP, ACTION_UPDATE}
DELETE_ACTIONS = {ACTION_DELETE, ACTION_EXPIRE, ACTION_COMPARE_AND_DELETE}


class RawResponse(NamedTuple):
    """An undecoded HTTP response, as returned by the executor for both success and error statuses."""

    status: int
    headers: Union[Message, Mapping[str, str]]
    body: bytes


class EtcdNode(object):
    def __init__(self, key, value, directory, created_index, modified_index, ttl, expiration, nodes):
        """Encapsulated instance of a node.

        :type key: str
        :type value: str|None
        :type directory: bool
        :type created_index: int
        :type modified_index: int
        :type ttl: int|None
        :type expiration: str|None
        :type nodes: list[EtcdNode]
        """
        self.key = key
        self.value = value
        self.directory = directory
        self.created_index = created_index
        self.modified_index = modified_index
        self.ttl = ttl
        self.expiration = expiration
        self.nodes = nodes

    def __repr__(self):
        return '<%s: %s>' % (self.__class__.__name__, self.key)

    @classmethod
    def from_raw(cls, raw_node):
        """Convert raw dictionary node to EtcdNode.

        :type raw_node: dict|None
        :rtype: EtcdNode|None
        """
        if not raw_node:
            return None

        return cls(
            key=raw_node.get('key'),
            value=raw_node.get('value'),
            directory=raw_node.get('dir', False),
            created_index=raw_node.get('createdIndex', 0),
            modified_index=raw_node.get('modifiedIndex', 0),
            ttl=raw_node.get('ttl'),
            expiration=raw_node.get('expiration'),
            nodes=[cls.from_raw(n) for n in raw_node.get('nodes', [])],
        )


class EtcdEvent(object):
    def __init__(self, action, node, prev_node=None, etcd_index=None, raft_index=None, raft_term=None):
        """Event from the Etcd storage log.

        :type action: str
        :type node: EtcdNode
        :type prev_node: EtcdNode|None
        :type etcd_index: int|None
        :type raft_index: int|None
        :type raft_term: int|None
        """
        self.action = action
        self.node = node
        self.prev_node = prev_node
        self.etcd_index = etcd_index
        self.raft_index = raft_index
        self.raft_term = raft_term

    @property
    def key(self) -> Optional[str]:
        return self.node.key if self.node else None

    @property
    def value(self) -> Optional[str]:
        return self.node.value if self.node else None

    @property
    def is_set(self) -> bool:
        """Whether the event wrote a value to the key."""
        return self.action in SET_ACTIONS

    @property
    def is_delete(self) -> bool:
        """Whether the event removed the key, including by expiry."""
        return self.action in DELETE_ACTIONS

    def __repr__(self):
        return '<%s: %s@%s>' % (self.__class__.__name__, self.action, self.key)


def _int_header(headers, name):
    value = headers.get(name)
    return int(value) if value is not None else None


def from_raw(raw: RawResponse) -> EtcdEvent:
    """Translate a raw response into an EtcdEvent, or raise the EtcdError the store reported."""
    try:
        decoded = json.loads(raw.body)
    except ValueError:
        raise RequestError('etcd returned a non-JSON body with status %s: %r' % (raw.status, raw.body[:200]))

    if not isinstance(decoded, dict):
        raise RequestError('etcd returned an unexpected body with status %s: %r' % (raw.status, decoded))

    action = decoded.get('action')
    if not action:
        raise EtcdError.from_raw(decoded)

    # Header lookups on an email.message.Message are case-insensitive, plain dicts are expected lower-cased.
    headers = raw.headers
    return EtcdEvent(
        action,
        EtcdNode.from_raw(decoded.get('node')),
        EtcdNode.from_raw(decoded.get('prevNode')),
        etcd_index=_int_header(headers, 'x-etcd-index'),
        raft_index=_int_header(headers, 'x-raft-index'),
        raft_term=_int_header(headers, 'x-raft-term'),
    )
