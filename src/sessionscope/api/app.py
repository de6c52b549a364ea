"""FastAPI application factory."""
from __future__ import annotations
from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sessionscope.config import settings
from sessionscope.domain.exceptions import (
    ConflictError,
    NotFoundError,
    TransactionFailure,
    UnknownBackendError,
)
from sessionscope.logging import configure_logging, logger
from sessionscope.uow import BackendRegistry, UnitOfWork, UnitOfWorkAwareProxyFactory


def create_app(registry: BackendRegistry | None = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        from sessionscope.infra.db.backend import build_registry, dispose_all, init_db
        from sessionscope.services.people_service import PeopleService

        configure_logging()
        active = registry if registry is not None else build_registry()
        init_db(active)
        app.state.registry = active
        app.state.people_service = UnitOfWorkAwareProxyFactory(active).create(PeopleService)
        logger.info("API ready with backends %s", ", ".join(active.names))
        yield
        if registry is None:
            dispose_all(active)

    app = FastAPI(
        title=settings.API_TITLE,
        version="0.1.0",
        lifespan=lifespan,
    )

    # Import routers inside create_app() to avoid circular imports at module load time
    from sessionscope.api.deps import get_read_only_uow
    from sessionscope.api.routers.people import router as people_router

    app.include_router(people_router)

    @app.exception_handler(NotFoundError)
    def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": exc.message})

    @app.exception_handler(ConflictError)
    def _conflict(request: Request, exc: ConflictError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": exc.message})

    @app.exception_handler(UnknownBackendError)
    def _unknown_backend(request: Request, exc: UnknownBackendError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"detail": exc.message})

    @app.exception_handler(TransactionFailure)
    def _transaction_failure(request: Request, exc: TransactionFailure) -> JSONResponse:
        logger.error("Transaction failure: %s", exc.message)
        return JSONResponse(status_code=503, content={"detail": exc.message})

    @app.get("/health", tags=["ops"])
    def health() -> dict:
        return {"status": "ok"}

    @app.get("/health/db", tags=["ops"])
    def health_db(uow: UnitOfWork = Depends(get_read_only_uow)) -> dict:
        backends = {}
        for aspect in uow.aspects:
            uow.session_for(aspect.backend).exec(text("SELECT 1"))
            backends[aspect.backend] = "ok"
        return {"status": "ok", "backends": backends}

    return app
