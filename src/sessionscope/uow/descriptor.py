"""Unit-of-work descriptors and the ``@unit_of_work`` decorator.

A descriptor is an immutable value saying which backend an operation needs a
session for and how that session should behave. Descriptors are attached to
functions when the class body is executed; the proxy layer turns them into a
``DescriptorTable`` once per proxied class.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from enum import Enum
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict

DEFAULT_BACKEND = "default"

_DESCRIPTORS_ATTR = "__unit_of_work__"

F = TypeVar("F")


class CacheMode(str, Enum):
    NORMAL = "NORMAL"
    IGNORE = "IGNORE"
    GET = "GET"
    PUT = "PUT"
    REFRESH = "REFRESH"


class FlushMode(str, Enum):
    ALWAYS = "ALWAYS"
    AUTO = "AUTO"
    COMMIT = "COMMIT"
    MANUAL = "MANUAL"


class UnitOfWorkDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    backend: str = DEFAULT_BACKEND
    read_only: bool = False
    transactional: bool = True
    cache_mode: CacheMode = CacheMode.NORMAL
    flush_mode: FlushMode = FlushMode.AUTO

    @property
    def begins_transaction(self) -> bool:
        return self.transactional and not self.read_only

    @property
    def effective_flush_mode(self) -> FlushMode:
        """Read-only sessions never flush on their own."""
        return FlushMode.MANUAL if self.read_only else self.flush_mode


def _unwrap(func: Any) -> Any:
    if isinstance(func, (staticmethod, classmethod)):
        return func.__func__
    return func


def unit_of_work(
    backend: str = DEFAULT_BACKEND,
    *,
    read_only: bool = False,
    transactional: bool = True,
    cache_mode: CacheMode = CacheMode.NORMAL,
    flush_mode: FlushMode = FlushMode.AUTO,
) -> Callable[[F], F]:
    """Declare that calls to the decorated method run inside a unit of work.

    Stack the decorator to span several backends. Descriptors are kept in the
    order they appear in the source, top to bottom.
    """
    descriptor = UnitOfWorkDescriptor(
        backend=backend,
        read_only=read_only,
        transactional=transactional,
        cache_mode=cache_mode,
        flush_mode=flush_mode,
    )

    def decorate(func: F) -> F:
        target = _unwrap(func)
        existing = getattr(target, _DESCRIPTORS_ATTR, ())
        # Decorators apply bottom-up; prepend to preserve source order.
        setattr(target, _DESCRIPTORS_ATTR, (descriptor, *existing))
        return func

    return decorate


def descriptors_of(func: Any) -> tuple[UnitOfWorkDescriptor, ...]:
    return tuple(getattr(_unwrap(func), _DESCRIPTORS_ATTR, ()))


def collapse(descriptors: Iterable[UnitOfWorkDescriptor]) -> tuple[UnitOfWorkDescriptor, ...]:
    """One descriptor per backend; the last declared wins, first position kept."""
    by_backend: dict[str, UnitOfWorkDescriptor] = {}
    for descriptor in descriptors:
        by_backend[descriptor.backend] = descriptor
    return tuple(by_backend.values())


class DescriptorTable(Mapping[str, tuple[UnitOfWorkDescriptor, ...]]):
    """Operation name -> collapsed descriptors. Built once, read many times."""

    def __init__(self, entries: Mapping[str, Sequence[UnitOfWorkDescriptor]]) -> None:
        self._entries = {
            name: collapse(descriptors)
            for name, descriptors in entries.items()
            if descriptors
        }

    @classmethod
    def from_class(cls, target: type) -> DescriptorTable:
        entries: dict[str, tuple[UnitOfWorkDescriptor, ...]] = {}
        # Walk base classes first so overrides in subclasses replace them.
        for klass in reversed(target.__mro__):
            for name, value in vars(klass).items():
                if not callable(_unwrap(value)):
                    continue
                found = descriptors_of(value)
                if found:
                    entries[name] = found
                else:
                    entries.pop(name, None)
        return cls(entries)

    def __getitem__(self, name: str) -> tuple[UnitOfWorkDescriptor, ...]:
        return self._entries[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"DescriptorTable({self._entries!r})"
