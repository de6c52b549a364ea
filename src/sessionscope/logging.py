"""Process-wide logging setup.

Modules log through ``logging.getLogger(__name__)``; entry points (CLI, API)
call ``configure_logging()`` once. Every record carries the process run id.
"""
from __future__ import annotations

import logging
import uuid

from sessionscope.config import settings

_RUN_ID = uuid.uuid4().hex[:12]
_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] run=%(run_id)s %(message)s"


def get_run_id() -> str:
    return _RUN_ID


class _RunIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.run_id = _RUN_ID
        return True


def configure_logging(level: str | None = None) -> None:
    root = logging.getLogger()
    root.setLevel((level or settings.LOG_LEVEL).upper())
    if any(isinstance(f, _RunIdFilter) for h in root.handlers for f in h.filters):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    handler.addFilter(_RunIdFilter())
    root.addHandler(handler)


logger = logging.getLogger("sessionscope")
