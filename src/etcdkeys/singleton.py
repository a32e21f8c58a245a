from contextlib import contextmanager
from typing import Callable, Generic, Iterator, Optional, TypeVar

T = TypeVar('T')


class Singleton(Generic[T]):
    """A lazily created, process-wide instance.

    Example usage:
    ```
        client_singleton = Singleton(EtcdClient)
        client_singleton.instance().get('/message')
        assert client_singleton.instance() is client_singleton.instance()
    ```
    """

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._instance: Optional[T] = None

    def instance(self) -> T:
        """Gets or lazily creates the singleton object by invoking the factory function."""
        if self._instance is None:
            self._instance = self._factory()

        return self._instance

    @contextmanager
    def override_instance_for_test(self, instance: T) -> Iterator[None]:
        """Temporarily replaces the singleton's value. Don't use this outside of tests!"""
        prev_instance = self._instance
        self._instance = instance
        try:
            yield

        finally:
            self._instance = prev_instance
