"""FastAPI dependencies."""
from __future__ import annotations
from typing import Generator
from fastapi import Request
from sessionscope.services.people_service import PeopleService
from sessionscope.uow import BackendRegistry, SessionContext, UnitOfWork, UnitOfWorkDescriptor


def get_registry(request: Request) -> BackendRegistry:
    return request.app.state.registry


def get_people_service(request: Request) -> PeopleService:
    """The unit-of-work aware PeopleService built at startup."""
    return request.app.state.people_service


def get_read_only_uow(request: Request) -> Generator[UnitOfWork, None, None]:
    """Yield one read-only UnitOfWork per request spanning every backend.

    Setup and teardown of sync dependencies may run on different worker
    threads, so the session context is passed explicitly instead of being
    activated in a ContextVar.
    """
    registry = get_registry(request)
    descriptors = [UnitOfWorkDescriptor(backend=name, read_only=True) for name in registry.names]
    with UnitOfWork(registry, descriptors, context=SessionContext()) as uow:
        yield uow
