"""Factory for unit-of-work aware substitutes of plain service classes.

``create(cls, ...)`` builds a subclass of ``cls`` in which every method
carrying ``@unit_of_work`` descriptors is replaced by ``wrap(method, ...)``;
methods without descriptors are inherited as-is. Generated classes are cached
per factory, so the descriptor table for a class is built once.
"""
from __future__ import annotations

import functools
import inspect
import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from typing import Any, TypeVar

from sessionscope.domain.exceptions import ProxyCreationError
from sessionscope.uow.aspect import UnitOfWorkAspect
from sessionscope.uow.context import SessionContext
from sessionscope.uow.descriptor import DescriptorTable, UnitOfWorkDescriptor, collapse
from sessionscope.uow.registry import Backend, BackendRegistry, Bundle
from sessionscope.uow.scope import UnitOfWork

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UnitOfWorkAwareProxyFactory:
    def __init__(self, registry: BackendRegistry) -> None:
        self._registry = registry
        self._tables: dict[type, DescriptorTable] = {}
        self._proxy_classes: dict[type, type] = {}
        self._lock = threading.Lock()

    @classmethod
    def for_backend(cls, name: str, backend: Backend) -> UnitOfWorkAwareProxyFactory:
        return cls(BackendRegistry.single(name, backend))

    @classmethod
    def for_bundles(cls, *bundles: Bundle) -> UnitOfWorkAwareProxyFactory:
        return cls(BackendRegistry.from_bundles(*bundles))

    @property
    def registry(self) -> BackendRegistry:
        return self._registry

    def register(
        self, target: type, descriptors: Mapping[str, Sequence[UnitOfWorkDescriptor]]
    ) -> None:
        """Use an explicit operation -> descriptors table for *target*.

        Takes precedence over ``@unit_of_work`` metadata on the class. Must be
        called before the first ``create`` for that class.
        """
        with self._lock:
            if target in self._proxy_classes:
                raise ProxyCreationError(
                    f"A proxy for {target.__qualname__!r} was already created"
                )
            self._tables[target] = DescriptorTable(descriptors)

    def create(self, target: type[T], *args: Any, **kwargs: Any) -> T:
        """Instantiate a unit-of-work aware substitute of *target*."""
        proxy_class = self._proxy_class(target)
        try:
            return proxy_class(*args, **kwargs)
        except Exception as exc:
            raise ProxyCreationError(
                f"Unable to create a proxy for the class {target.__qualname__!r}: {exc}"
            ) from exc

    def wrap(
        self, func: Callable[..., Any], descriptors: Sequence[UnitOfWorkDescriptor]
    ) -> Callable[..., Any]:
        """Return *func* wrapped so each call runs inside one ``UnitOfWork``.

        Plain and ``async def`` functions are supported. Generator functions
        are rejected: their body runs after the call returns, outside the unit
        of work.
        """
        descriptors = collapse(descriptors)
        if not descriptors:
            return func
        if inspect.isgeneratorfunction(func) or inspect.isasyncgenfunction(func):
            raise ProxyCreationError(
                f"{func.__qualname__!r} is a generator function and cannot carry a unit of work"
            )
        registry = self._registry

        if inspect.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with UnitOfWork(registry, descriptors):
                    return await func(*args, **kwargs)

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with UnitOfWork(registry, descriptors):
                return func(*args, **kwargs)

        return wrapper

    def new_aspect(
        self, descriptor: UnitOfWorkDescriptor, context: SessionContext | None = None
    ) -> UnitOfWorkAspect:
        """A standalone aspect bound to *context*, the active one, or a fresh one."""
        if context is None:
            context = SessionContext.current()
        if context is None:
            context = SessionContext()
        return UnitOfWorkAspect(self._registry, descriptor, context)

    def _proxy_class(self, target: type) -> type:
        if not isinstance(target, type):
            raise ProxyCreationError(f"Expected a class, got {target!r}")
        with self._lock:
            proxy_class = self._proxy_classes.get(target)
            if proxy_class is None:
                table = self._tables.get(target)
                if table is None:
                    table = DescriptorTable.from_class(target)
                proxy_class = self._build(target, table)
                self._proxy_classes[target] = proxy_class
            return proxy_class

    def _build(self, target: type, table: DescriptorTable) -> type:
        namespace: dict[str, Any] = {
            "__module__": target.__module__,
            "__qualname__": target.__qualname__,
            "__doc__": target.__doc__,
        }
        for name, descriptors in table.items():
            try:
                attr = inspect.getattr_static(target, name)
            except AttributeError:
                raise ProxyCreationError(
                    f"{target.__qualname__!r} has no operation named {name!r}"
                ) from None
            if isinstance(attr, staticmethod):
                namespace[name] = staticmethod(self.wrap(attr.__func__, descriptors))
            elif isinstance(attr, classmethod):
                namespace[name] = classmethod(self.wrap(attr.__func__, descriptors))
            elif callable(attr):
                namespace[name] = self.wrap(attr, descriptors)
            else:
                raise ProxyCreationError(
                    f"{target.__qualname__}.{name} is not a method and cannot carry a unit of work"
                )
        try:
            proxy_class = type(target)(target.__name__, (target,), namespace)
        except TypeError as exc:
            raise ProxyCreationError(
                f"Unable to create a proxy for the class {target.__qualname__!r}: {exc}"
            ) from exc
        logger.debug(
            "Built unit-of-work proxy for %s (%d intercepted operations)",
            target.__qualname__,
            len(table),
        )
        return proxy_class
