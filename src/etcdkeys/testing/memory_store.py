import json
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from etcdkeys.errors import Timeout
from etcdkeys.response import RawResponse
from etcdkeys.testing.fake_executor import RecordedRequest

ETCD_HISTORY_BUFFER_SIZE = 1000


class _Rejected(Exception):
    def __init__(self, code, message, cause, status):
        self.code = code
        self.message = message
        self.cause = cause
        self.status = status


def _clean_key(path_key: str) -> str:
    return '/' + path_key.strip('/')


def _parent(key: str) -> str:
    return key.rsplit('/', 1)[0] or '/'


class InMemoryEtcd(object):
    """A single node, in-memory stand-in for the etcd v2 keys API. Pass it as a client's `executor`.

    It implements the preconditions (prevExist, prevValue, prevIndex), directories, in-order keys and index based
    watches over the last `ETCD_HISTORY_BUFFER_SIZE` changes; watching from an older index is answered with error
    401. TTLs are recorded but never expire. A watch with nothing to return runs the next callback registered
    with `when_waiting` (standing in for a concurrent writer) and raises `Timeout` when there are none left.
    """

    def __init__(self, version_prefix: str = '/v2'):
        self._key_endpoint = version_prefix + '/keys'
        self._nodes: Dict[str, Dict[str, Any]] = {'/': {'dir': True, 'createdIndex': 0, 'modifiedIndex': 0}}
        self._history: Deque[Tuple[int, str, Dict[str, Any]]] = deque(maxlen=ETCD_HISTORY_BUFFER_SIZE)
        self._on_wait: deque = deque()
        self.index = 0
        self.requests: List[RecordedRequest] = []

    def when_waiting(self, *callbacks: Callable[[], Any]) -> 'InMemoryEtcd':
        self._on_wait.extend(callbacks)
        return self

    def value_of(self, key: str) -> Optional[str]:
        node = self._nodes.get(_clean_key(key))
        return node.get('value') if node else None

    def execute(self, path, method, params, timeout=None) -> RawResponse:
        self.requests.append(RecordedRequest(path, method, dict(params), timeout))
        if not path.startswith(self._key_endpoint):
            return self._respond(404, {'errorCode': 0, 'message': 'Not Found'})

        key = _clean_key(path[len(self._key_endpoint) :])
        handler = {'GET': self._get, 'PUT': self._put, 'POST': self._post, 'DELETE': self._delete}[method]
        try:
            status, body = handler(key, params)
        except _Rejected as e:
            return self._respond(
                e.status, {'errorCode': e.code, 'message': e.message, 'cause': e.cause, 'index': self.index}
            )
        return self._respond(status, body)

    def _respond(self, status, body) -> RawResponse:
        headers = {'x-etcd-index': str(self.index), 'x-raft-index': str(self.index), 'x-raft-term': '1'}
        return RawResponse(status, headers, json.dumps(body).encode())

    def _node_body(self, key, recursive=False, depth=0) -> Dict[str, Any]:
        node = self._nodes[key]
        body = {'key': key, 'createdIndex': node['createdIndex'], 'modifiedIndex': node['modifiedIndex']}
        if node.get('dir'):
            body['dir'] = True
            if depth == 0 or recursive:
                body['nodes'] = [self._node_body(k, recursive, depth + 1) for k in self._children(key)]
        else:
            body['value'] = node['value']
        if node.get('ttl') is not None:
            body['ttl'] = node['ttl']
        return body

    def _children(self, key) -> List[str]:
        return sorted(k for k in self._nodes if k != '/' and _parent(k) == key)

    def _require(self, key) -> Dict[str, Any]:
        node = self._nodes.get(key)
        if node is None:
            raise _Rejected(100, 'Key not found', key, 404)
        return node

    def _check_preconditions(self, key, existing, params) -> Optional[str]:
        """Returns the action name a satisfied compare implies, raising if a precondition fails."""
        prev_value = params.get('prevValue')
        prev_index = params.get('prevIndex')
        if prev_value is None and prev_index is None:
            return None

        existing = existing or self._require(key)
        if prev_value is not None and existing.get('value') != prev_value:
            raise _Rejected(101, 'Compare failed', '[%s != %s]' % (prev_value, existing.get('value')), 412)
        if prev_index is not None and existing['modifiedIndex'] != prev_index:
            raise _Rejected(101, 'Compare failed', '[%s != %s]' % (prev_index, existing['modifiedIndex']), 412)
        return 'compare'

    def _record(self, action, key, prev_node=None) -> Dict[str, Any]:
        body: Dict[str, Any] = {'action': action, 'node': self._node_body(key) if key in self._nodes else prev_node}
        if prev_node is not None:
            body['prevNode'] = prev_node
        self._history.append((self.index, key, body))
        return body

    def _write(self, key, node_fields) -> None:
        self.index += 1
        parent = _parent(key)
        while parent not in self._nodes:
            self._nodes[parent] = {'dir': True, 'createdIndex': self.index, 'modifiedIndex': self.index}
            parent = _parent(parent)
        existing = self._nodes.get(key)
        created_index = existing['createdIndex'] if existing else self.index
        self._nodes[key] = dict(node_fields, createdIndex=created_index, modifiedIndex=self.index)

    def _get(self, key, params):
        if params.get('wait'):
            return self._watch(key, params)

        self._require(key)
        return 200, {'action': 'get', 'node': self._node_body(key, recursive=bool(params.get('recursive')))}

    def _watch(self, key, params):
        wait_index = params.get('waitIndex')
        if wait_index is None:
            wait_index = self.index + 1
        if len(self._history) == self._history.maxlen and wait_index < self._history[0][0]:
            raise _Rejected(401, 'The event in requested index is outdated and cleared', None, 400)

        while True:
            for index, changed_key, body in self._history:
                if index >= wait_index and (
                    changed_key == key or (params.get('recursive') and changed_key.startswith(key.rstrip('/') + '/'))
                ):
                    return 200, body

            if not self._on_wait:
                raise Timeout('no change to %s at or after index %s' % (key, wait_index))
            self._on_wait.popleft()()

    def _put(self, key, params):
        existing = self._nodes.get(key)
        prev_exist = params.get('prevExist')
        if prev_exist is False and existing is not None:
            raise _Rejected(105, 'Key already exists', key, 412)
        if prev_exist is True and existing is None:
            raise _Rejected(100, 'Key not found', key, 404)
        compared = self._check_preconditions(key, existing, params)
        if existing is not None and existing.get('dir'):
            raise _Rejected(102, 'Not a file', key, 403)

        if compared:
            action = 'compareAndSwap'
        elif prev_exist is False:
            action = 'create'
        elif prev_exist is True:
            action = 'update'
        else:
            action = 'set'

        prev_node = self._node_body(key) if existing is not None else None
        if params.get('dir'):
            self._write(key, {'dir': True, 'ttl': params.get('ttl')})
        else:
            self._write(key, {'value': str(params.get('value', '')), 'ttl': params.get('ttl')})
        return (201 if existing is None else 200), self._record(action, key, prev_node)

    def _post(self, key, params):
        existing = self._nodes.get(key)
        if existing is not None and not existing.get('dir'):
            raise _Rejected(104, 'Not a directory', key, 403)

        child = '%s/%020d' % (key.rstrip('/'), self.index + 1)
        self._write(child, {'value': str(params.get('value', '')), 'ttl': params.get('ttl')})
        return 201, self._record('create', child)

    def _delete(self, key, params):
        existing = self._require(key)
        compared = self._check_preconditions(key, existing, params)
        if existing.get('dir'):
            if not (params.get('dir') or params.get('recursive')):
                raise _Rejected(102, 'Not a file', key, 403)
            if self._children(key) and not params.get('recursive'):
                raise _Rejected(108, 'Directory not empty', key, 403)

        prev_node = self._node_body(key)
        self.index += 1
        for k in [k for k in self._nodes if k == key or k.startswith(key.rstrip('/') + '/')]:
            del self._nodes[k]
        node = {'key': key, 'createdIndex': existing['createdIndex'], 'modifiedIndex': self.index}
        if existing.get('dir'):
            node['dir'] = True
        body = self._record('compareAndDelete' if compared else 'delete', key, prev_node)
        body['node'] = node
        return 200, body
