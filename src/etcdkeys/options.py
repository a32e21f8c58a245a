"""Structured options for the key operations.

Each operation only understands a fixed set of fields. Generic mappings are narrowed into one of the records below
before anything reaches the wire, so a field an operation does not define can never be forwarded by accident.
Unrecognized mapping keys are dropped and logged at debug level.

Only flags (`dir`, `prevExist`, `consistent`) and the watch timeout are type checked. Values, ttls and preconditions
are sent exactly as given, the same way `update` and `compare_and_swap` send theirs, and etcd rejects bad ones.
"""

import logging
from dataclasses import dataclass
from dataclasses import fields as dataclass_fields
from numbers import Real
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple, Union

from .errors import InvalidArgumentError

log = logging.getLogger('etcdkeys')


def _check_type(owner: str, name: str, value: Any, expected: Tuple[type, ...]) -> None:
    if value is None or not expected:
        return

    # bool is a Real subclass, but a flag is never a valid timeout.
    is_stray_bool = isinstance(value, bool) and bool not in expected
    if is_stray_bool or not isinstance(value, expected):
        raise InvalidArgumentError(f'{owner}.{name} must be {_type_names(expected)}, got {value!r}')


def _type_names(types: Tuple[type, ...]) -> str:
    return ' or '.join(t.__name__ for t in types)


class _Options(object):
    # (attribute name, wire name, accepted types). Values of fields without accepted types are sent as given.
    _FIELDS: ClassVar[Tuple[Tuple[str, str, Tuple[type, ...]], ...]] = ()

    def __post_init__(self):
        for name, _, expected in self._FIELDS:
            _check_type(self.__class__.__name__, name, getattr(self, name), expected)

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]):
        """Builds the options from a generic mapping. A field may be spelled by its wire name (`prevExist`) or by
        its attribute name (`prev_exist`). Keys that are neither are dropped."""
        kwargs: Dict[str, Any] = {}
        known = set()
        for name, wire_name, _ in cls._FIELDS:
            known.update((name, wire_name))
            if wire_name in mapping:
                kwargs[name] = mapping[wire_name]
            elif name in mapping:
                kwargs[name] = mapping[name]

        dropped = sorted(str(k) for k in mapping if k not in known)
        if dropped:
            log.debug('%s ignoring unrecognized option(s): %s', cls.__name__, ', '.join(dropped))

        return cls(**kwargs)

    def to_params(self) -> Dict[str, Any]:
        """Returns the present fields keyed by their wire names."""
        params = {}
        for name, wire_name, _ in self._FIELDS:
            value = getattr(self, name)
            if value is not None:
                params[wire_name] = value
        return params


@dataclass(frozen=True)
class SetOptions(_Options):
    ttl: Optional[int] = None
    dir: Optional[bool] = None
    prev_exist: Optional[bool] = None
    prev_value: Optional[str] = None
    prev_index: Optional[int] = None

    _FIELDS: ClassVar = (
        ('ttl', 'ttl', ()),
        ('dir', 'dir', (bool,)),
        ('prev_exist', 'prevExist', (bool,)),
        ('prev_value', 'prevValue', ()),
        ('prev_index', 'prevIndex', ()),
    )


@dataclass(frozen=True)
class CreateOptions(_Options):
    value: Optional[Union[str, bytes, int, float]] = None
    ttl: Optional[int] = None
    dir: Optional[bool] = None

    _FIELDS: ClassVar = (
        ('value', 'value', ()),
        ('ttl', 'ttl', ()),
        ('dir', 'dir', (bool,)),
    )


@dataclass(frozen=True)
class CreateInOrderOptions(_Options):
    ttl: Optional[int] = None

    _FIELDS: ClassVar = (('ttl', 'ttl', ()),)


@dataclass(frozen=True)
class WatchOptions(_Options):
    wait_index: Optional[int] = None
    consistent: Optional[bool] = None
    timeout: Optional[float] = None

    _FIELDS: ClassVar = (
        ('wait_index', 'waitIndex', ()),
        ('consistent', 'consistent', (bool,)),
        ('timeout', 'timeout', (Real,)),
    )

    @classmethod
    def from_mapping(cls, mapping: Mapping[str, Any]) -> 'WatchOptions':
        """Like `_Options.from_mapping`, additionally accepting `index` as a synonym of `waitIndex`. When both are
        given, `waitIndex` wins."""
        options = super(WatchOptions, cls).from_mapping({k: v for k, v in mapping.items() if k != 'index'})
        if options.wait_index is None and mapping.get('index') is not None:
            return cls(wait_index=mapping['index'], consistent=options.consistent, timeout=options.timeout)
        return options

    def to_params(self) -> Dict[str, Any]:
        # timeout bounds the HTTP request, it is not a query parameter.
        params: Dict[str, Any] = {'wait': True}
        if self.wait_index is not None:
            params['waitIndex'] = self.wait_index
        if self.consistent is not None:
            params['consistent'] = self.consistent
        return params


class NoOptions(object):
    """`set` was called without options."""

    def to_params(self) -> Dict[str, Any]:
        return {}

    def __eq__(self, other):
        return isinstance(other, NoOptions)

    def __hash__(self):
        return hash(NoOptions)

    def __repr__(self):
        return 'NoOptions()'


NO_OPTIONS = NoOptions()


@dataclass(frozen=True)
class Ttl(object):
    """`set` was called with a bare ttl in seconds."""

    seconds: int

    @classmethod
    def legacy(cls, seconds: int) -> 'Ttl':
        """The deprecated `set(key, value, 42)` spelling."""
        log.warning(
            '[DEPRECATION] Passing ttl as a raw argument is deprecated, please use {"ttl": %d} or ttl=%d instead.',
            seconds,
            seconds,
        )
        return cls(seconds)

    def to_params(self) -> Dict[str, Any]:
        return {'ttl': self.seconds}


@dataclass(frozen=True)
class Fields(object):
    """`set` was called with a full set of options."""

    options: SetOptions

    def to_params(self) -> Dict[str, Any]:
        return self.options.to_params()


TtlOption = Union[NoOptions, Ttl, Fields]


def resolve_ttl_option(opts: Any) -> TtlOption:
    """Narrows the `opts` argument of `set` into a `TtlOption`."""
    if opts is None:
        return NO_OPTIONS

    if isinstance(opts, (NoOptions, Ttl, Fields)):
        return opts

    if isinstance(opts, SetOptions):
        return Fields(opts)

    if isinstance(opts, Mapping):
        return Fields(SetOptions.from_mapping(opts))

    if isinstance(opts, int) and not isinstance(opts, bool):
        return Ttl.legacy(opts)

    raise InvalidArgumentError(f"Don't know how to parse set options {opts!r}")


def resolve_options(options_cls, opts: Any, kwargs: Mapping[str, Any], operation: str):
    """Narrows the `opts` argument (or the keyword fields) of `operation` into an instance of `options_cls`.

    `opts` may be None, an `options_cls` instance or a mapping. Keyword fields are an alternative spelling and may not
    be combined with `opts`.
    """
    present = {k: v for k, v in kwargs.items() if v is not None}
    if present:
        if opts is not None:
            raise InvalidArgumentError(f'{operation}() takes either an options argument or keyword fields, not both')

        valid_names = {f.name for f in dataclass_fields(options_cls)}
        unknown = sorted(set(present) - valid_names)
        if unknown:
            raise InvalidArgumentError(f'{operation}() got unexpected option(s): {", ".join(unknown)}')

        return options_cls(**present)

    if opts is None:
        return options_cls()

    if isinstance(opts, options_cls):
        return opts

    if isinstance(opts, Mapping):
        return options_cls.from_mapping(opts)

    raise InvalidArgumentError(f'{operation}() options must be a mapping or {options_cls.__name__}, got {opts!r}')
