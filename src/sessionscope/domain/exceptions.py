class SessionScopeError(Exception):
    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(SessionScopeError):
    """Requested resource does not exist."""


class ConflictError(SessionScopeError):
    """Operation conflicts with existing state (e.g. duplicate person id)."""


class UnitOfWorkError(SessionScopeError):
    """Base class for failures raised by the unit-of-work machinery itself."""


class UnknownBackendError(UnitOfWorkError):
    """A descriptor names a backend that was never registered."""

    def __init__(self, backend: str) -> None:
        self.backend = backend
        super().__init__(f"No backend registered under {backend!r}")


class SessionAlreadyBoundError(UnitOfWorkError):
    """A session is already bound for this backend in the current unit of work."""

    def __init__(self, backend: str) -> None:
        self.backend = backend
        super().__init__(f"A session is already bound for backend {backend!r}")


class SessionNotBoundError(UnitOfWorkError):
    def __init__(self, backend: str) -> None:
        self.backend = backend
        super().__init__(f"No session bound for backend {backend!r}")


class TransactionFailure(UnitOfWorkError):
    """begin/commit/rollback failed at the backend; ``cause`` is the backend error."""

    def __init__(self, backend: str, phase: str, cause: BaseException) -> None:
        self.backend = backend
        self.phase = phase
        self.cause = cause
        super().__init__(f"Transaction {phase} failed on backend {backend!r}: {cause}")


class ProxyCreationError(UnitOfWorkError):
    """Could not build a unit-of-work aware substitute for a class."""


class UnitOfWorkStateError(UnitOfWorkError):
    """A lifecycle hook was driven out of order."""
