import json
import os
from typing import Any, Callable, Optional, Tuple

from etcdkeys.config.callbacks import logging_callback

ConfigT = dict[str, Any]
ConfigurationCallback = Callable[['Config'], None]


DEFAULT_CONFIGURATION_CALLBACKS: Tuple[ConfigurationCallback, ...] = (logging_callback,)


class Config:
    """The `ETCD_*` settings of the process, read through typed accessors.

    A `Config` is bound once to a dict (usually the environment, see `configure_from_env`). The configuration
    callbacks run at that moment, so that e.g. logging is set up before the first client is built.
    """

    def __init__(self, underlying_config_dict: Optional[ConfigT] = None):
        self._pending_configuration_callbacks: list[ConfigurationCallback] = list(DEFAULT_CONFIGURATION_CALLBACKS)
        self._underlying_config_dict: Optional[ConfigT] = None

        if underlying_config_dict is not None:
            self.configure(underlying_config_dict)

    def configure(self, underlying_config_dict: ConfigT) -> None:
        """Binds the settings and runs the pending configuration callbacks. Binding twice is an error."""
        if self._underlying_config_dict is not None:
            raise RuntimeError('Config has already been bound to an underlying config dict.')

        self._underlying_config_dict = underlying_config_dict

        callbacks, self._pending_configuration_callbacks = self._pending_configuration_callbacks, []
        for callback in callbacks:
            callback(self)

    def configure_from_env(self) -> None:
        self.configure(config_from_env())

    def unconfigure_for_tests(self) -> None:
        self._underlying_config_dict = None

    @property
    def is_configured(self) -> bool:
        return self._underlying_config_dict is not None

    def _lookup(self, key: str) -> Any:
        if self._underlying_config_dict is None:
            raise RuntimeError('Config has not yet been initialized.')

        return self._underlying_config_dict[key]

    def expect_str(self, key: str) -> str:
        """Returns the string under `key`. Raises `KeyError` when it is missing and `TypeError` when it is not a str."""
        value = self._lookup(key)
        if not isinstance(value, str):
            raise TypeError(f'config[{key!r}] should be a str, got a {type(value)}')

        return value

    def get_str(self, key: str, default: str) -> str:
        try:
            return self.expect_str(key)
        except KeyError:
            return default

    def get_optional_str(self, key: str) -> Optional[str]:
        try:
            return self.expect_str(key)
        except KeyError:
            return None

    def expect_float(self, key: str) -> float:
        """Returns the number of seconds (or any other float) under `key`.

        Environment values arrive as strings and are parsed. Integers are widened, bools are refused.
        """
        value = self._lookup(key)
        if isinstance(value, str):
            try:
                value = float(value)
            except ValueError:
                raise TypeError(f'config[{key!r}] is a str that is not a number: {value!r}')

        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f'config[{key!r}] should be a number, got a {type(value)}')

        return float(value)

    def get_float(self, key: str, default: float) -> float:
        try:
            return self.expect_float(key)
        except KeyError:
            return default

    def expect_bool(self, key: str) -> bool:
        """Returns the flag under `key`. The strings "true" and "false" are accepted in any case."""
        value = self._lookup(key)
        if isinstance(value, str) and value.lower() in ('true', 'false'):
            value = value.lower() == 'true'

        if not isinstance(value, bool):
            raise TypeError(f'config[{key!r}] should be a bool (or "true"/"false"), got {value!r}')

        return value

    def get_bool(self, key: str, default: bool) -> bool:
        try:
            return self.expect_bool(key)
        except KeyError:
            return default


def config_from_env(env: Optional[dict[str, str]] = None) -> dict[str, Any]:
    """Builds a config dict from `env` (the process environment by default).

    Values starting with `{`, `[` or `"` are decoded as JSON, and a value that does not decode is an error.
    """
    source = env if env is not None else os.environ.copy()

    config = {}
    for k, v in source.items():
        if v.startswith(('{', '[', '"')):
            try:
                v = json.loads(v)
            except json.JSONDecodeError as e:
                raise ValueError(f'Could not parse key={k} as JSON (error: {e!r})')

        config[k] = v

    return config
