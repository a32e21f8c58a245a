import base64
import errno
import http.client
import logging
import socket
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Mapping, Optional

import gevent

from .errors import RequestError, Timeout
from .response import RawResponse

log = logging.getLogger('etcdkeys.transport')

QUERY_STRING_METHODS = ('GET', 'DELETE')
BODY_METHODS = ('PUT', 'POST')


def encode_params(params: Mapping[str, Any]) -> str:
    """Url-encodes request parameters the way etcd expects them. Booleans go over the wire as `true`/`false`."""
    encoded = []
    for k, v in params.items():
        if isinstance(v, bool):
            v = 'true' if v else 'false'
        encoded.append((k, v))
    return urllib.parse.urlencode(encoded)


class HttpExecutor(object):
    """Sends a single request to one etcd endpoint and hands back the undecoded response.

    Non-2xx responses are returned, not raised: turning the body into an event or an error is the job of
    `etcdkeys.response.from_raw`. Network failures are raised as `RequestError`, timeouts as `Timeout`.
    """

    def __init__(
        self,
        endpoint: str,
        http_timeout: float = 60,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.endpoint = endpoint.rstrip('/')
        self.http_timeout = http_timeout
        self.auth_token = None

        if username or password:
            if not username or not password:
                raise ValueError('Both username and password must be specified to authenticate against etcd')
            concatted = ':'.join([username, password])
            self.auth_token = base64.b64encode(concatted.encode('utf-8')).decode('utf-8')

    def __repr__(self):
        return '<%s: %s>' % (self.__class__.__name__, self.endpoint)

    def build_request(self, path: str, method: str, params: Mapping[str, Any]) -> urllib.request.Request:
        method = method.upper()
        if method not in QUERY_STRING_METHODS + BODY_METHODS:
            raise ValueError('Unsupported HTTP method %r' % method)

        url = self.endpoint + path
        data = None
        if method in QUERY_STRING_METHODS:
            if params:
                url = '%s?%s' % (url, encode_params(params))
        else:
            data = encode_params(params).encode()

        request = urllib.request.Request(url, data=data, method=method)
        if data is not None:
            request.add_header('Content-Type', 'application/x-www-form-urlencoded')
        if self.auth_token:
            request.add_header('Authorization', 'Basic ' + self.auth_token)
        return request

    def execute(
        self, path: str, method: str, params: Mapping[str, Any], timeout: Optional[float] = None
    ) -> RawResponse:
        request = self.build_request(path, method, params)
        timeout = self.http_timeout if timeout is None else timeout
        log.debug('%s %s (timeout=%s)', request.get_method(), request.full_url, timeout)

        try:
            opener = urllib.request.build_opener()
            # The gevent timeout is a guard in case the socket timeout does not fire, so give the
            # socket a second head start.
            with gevent.Timeout(seconds=timeout + 1, exception=Timeout):
                r = opener.open(request, timeout=timeout)
                try:
                    return RawResponse(r.status, r.headers, r.read())
                finally:
                    r.close()
        except socket.timeout:
            raise Timeout('%s %s timed out after %ss' % (request.get_method(), request.full_url, timeout))
        except urllib.error.HTTPError as e:
            try:
                return RawResponse(e.code, e.headers, e.read())
            finally:
                e.close()
        except urllib.error.URLError as e:
            if isinstance(e.reason, socket.timeout) or getattr(e.reason, 'errno', None) == errno.ETIMEDOUT:
                raise Timeout(str(e))
            raise RequestError(str(e))
        except http.client.HTTPException as e:
            raise RequestError(str(e))
