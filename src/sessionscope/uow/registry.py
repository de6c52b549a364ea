"""Backend registry: backend name -> handle able to open sessions.

Built once at startup and never mutated afterwards, so it can be shared by
every concurrent unit of work without locking.
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Protocol, runtime_checkable

from sessionscope.domain.exceptions import UnknownBackendError
from sessionscope.uow.descriptor import CacheMode, FlushMode


@runtime_checkable
class Session(Protocol):
    """What the unit-of-work aspect needs from a live persistence session."""

    def begin_transaction(self) -> None: ...
    def commit(self) -> None: ...
    def rollback(self) -> None: ...
    def close(self) -> None: ...
    def set_cache_mode(self, mode: CacheMode) -> None: ...
    def set_flush_mode(self, mode: FlushMode) -> None: ...


@runtime_checkable
class Backend(Protocol):
    def open_session(self) -> Session: ...


class Bundle(Protocol):
    """Anything contributing one named backend (see ``DatabaseBundle``)."""

    @property
    def name(self) -> str: ...

    @property
    def backend(self) -> Backend: ...


class BackendRegistry:
    def __init__(self, backends: Mapping[str, Backend]) -> None:
        self._backends: Mapping[str, Backend] = MappingProxyType(dict(backends))

    @classmethod
    def single(cls, name: str, backend: Backend) -> BackendRegistry:
        return cls({name: backend})

    @classmethod
    def from_bundles(cls, *bundles: Bundle) -> BackendRegistry:
        # Duplicate names are not rejected: the last bundle registered wins.
        backends: dict[str, Backend] = {}
        for bundle in bundles:
            backends[bundle.name] = bundle.backend
        return cls(backends)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[str, Backend]]) -> BackendRegistry:
        return cls(dict(pairs))

    def resolve(self, name: str) -> Backend:
        try:
            return self._backends[name]
        except KeyError:
            raise UnknownBackendError(name) from None

    def as_mapping(self) -> Mapping[str, Backend]:
        return self._backends

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(self._backends)

    def __contains__(self, name: object) -> bool:
        return name in self._backends

    def __iter__(self) -> Iterator[str]:
        return iter(self._backends)

    def __len__(self) -> int:
        return len(self._backends)

    def __repr__(self) -> str:
        return f"BackendRegistry({list(self._backends)!r})"
