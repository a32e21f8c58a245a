import logging
from typing import TYPE_CHECKING, Callable, Iterator, Optional

from .options import WatchOptions
from .response import EtcdEvent

if TYPE_CHECKING:
    from .keys import Keys

log = logging.getLogger('etcdkeys.watch')


class EternalWatch(object):
    """An endless sequence of changes to a key, produced lazily, one watch request per change.

    Nothing is requested until the sequence is iterated, and the next request is only sent once the consumer asks for
    the next change, so there is never more than one request outstanding and events arrive strictly in order. After
    each change the watch resumes at the index following it, so no change between two requests is lost (as long as
    etcd still has it in its history, otherwise `EventIndexClearedError` is raised).

    The sequence ends when `stop()` is called (taking effect before the next request is sent), when the consumer
    stops iterating, or when an error is raised. A request that is already in flight can be cancelled by killing the
    greenlet that is consuming the sequence.

    Example:
    ```
    changes = client.eternal_watch('/config')
    greenlet = gevent.spawn(changes.run, apply_config)
    ...
    changes.stop()
    ```
    """

    def __init__(self, keys: 'Keys', key: str, index: Optional[int] = None, timeout: Optional[float] = None):
        self._keys = keys
        self._key = key
        self._index = index
        self._timeout = timeout
        self._started = False
        self._stopped = False

    def __repr__(self):
        return 'EternalWatch(key=%r, index=%r, stopped=%r)' % (self._key, self._index, self._stopped)

    @property
    def index(self) -> Optional[int]:
        """The index the next watch request resumes from, None to wait for the next change."""
        return self._index

    @property
    def stopped(self) -> bool:
        return self._stopped

    def stop(self) -> None:
        """Ends the sequence before another request is sent."""
        if not self._stopped:
            log.debug('%r stopping', self)
        self._stopped = True

    def __iter__(self) -> Iterator[EtcdEvent]:
        if self._started:
            raise RuntimeError('%r has already been iterated, start a new eternal_watch instead.' % self)
        self._started = True
        return self._watch_forever()

    def _watch_forever(self) -> Iterator[EtcdEvent]:
        while not self._stopped:
            event = self._keys.watch(self._key, WatchOptions(wait_index=self._index, timeout=self._timeout))
            if event.node is not None:
                self._index = event.node.modified_index + 1
            log.debug('%r received %r', self, event)
            yield event

    def run(self, handler: Callable[[EtcdEvent], None]) -> None:
        """Calls `handler` with every change, in order, until stopped. Errors raised by the handler end the watch."""
        for event in self:
            handler(event)

    def __enter__(self) -> 'EternalWatch':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
