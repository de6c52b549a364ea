"""Transactional unit-of-work core: registry, descriptors, aspects, proxies."""

from sessionscope.uow.aspect import AspectState, UnitOfWorkAspect
from sessionscope.uow.context import SessionContext, current_session
from sessionscope.uow.descriptor import (
    DEFAULT_BACKEND,
    CacheMode,
    DescriptorTable,
    FlushMode,
    UnitOfWorkDescriptor,
    descriptors_of,
    unit_of_work,
)
from sessionscope.uow.proxy import UnitOfWorkAwareProxyFactory
from sessionscope.uow.registry import Backend, BackendRegistry, Bundle, Session
from sessionscope.uow.scope import UnitOfWork

__all__ = [
    "AspectState",
    "Backend",
    "BackendRegistry",
    "Bundle",
    "CacheMode",
    "DEFAULT_BACKEND",
    "DescriptorTable",
    "FlushMode",
    "Session",
    "SessionContext",
    "UnitOfWork",
    "UnitOfWorkAspect",
    "UnitOfWorkAwareProxyFactory",
    "UnitOfWorkDescriptor",
    "current_session",
    "descriptors_of",
    "unit_of_work",
]
