from etcdkeys.testing.fake_executor import FakeExecutor, RecordedRequest, error_response, event_response  # noqa F401
from etcdkeys.testing.memory_store import ETCD_HISTORY_BUFFER_SIZE, InMemoryEtcd  # noqa F401
