"""A client for the etcd v2 keys API.

```
from etcdkeys import EtcdClient, NodeExistsError

client = EtcdClient('http://127.0.0.1:2379')
client.set('/message', 'hello', ttl=30)
client.get('/message').value
try:
    client.create('/lock', value='me')
except NodeExistsError:
    ...
for change in client.eternal_watch('/config'):
    ...
```
"""

from etcdkeys.client import EtcdClient  # noqa F401
from etcdkeys.errors import (  # noqa F401
    CompareFailedError,
    DirNotEmptyError,
    EtcdError,
    EventIndexClearedError,
    InvalidArgumentError,
    InvalidFieldError,
    KeyNotFoundError,
    NodeExistsError,
    NotDirError,
    NotFileError,
    PreconditionFailedError,
    RequestError,
    RootReadOnlyError,
    TestFailedError,
    Timeout,
)
from etcdkeys.keys import Keys  # noqa F401
from etcdkeys.options import (  # noqa F401
    NO_OPTIONS,
    CreateInOrderOptions,
    CreateOptions,
    Fields,
    NoOptions,
    SetOptions,
    Ttl,
    TtlOption,
    WatchOptions,
)
from etcdkeys.response import (  # noqa F401
    ACTION_COMPARE_AND_DELETE,
    ACTION_COMPARE_AND_SWAP,
    ACTION_CREATE,
    ACTION_DELETE,
    ACTION_EXPIRE,
    ACTION_GET,
    ACTION_SET,
    ACTION_UPDATE,
    DELETE_ACTIONS,
    SET_ACTIONS,
    EtcdEvent,
    EtcdNode,
    RawResponse,
    from_raw,
)
from etcdkeys.transport import HttpExecutor  # noqa F401
from etcdkeys.watch import EternalWatch  # noqa F401

