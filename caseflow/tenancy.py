"""Tenant scope for log correlation inside background workers.

The scope is only read by :class:`TenantLogFilter`. Data access always takes
the tenant id as an explicit argument.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional

_current_tenant: ContextVar[Optional[str]] = ContextVar("caseflow_tenant", default=None)


def current_tenant() -> Optional[str]:
    return _current_tenant.get()


@contextmanager
def tenant_scope(tenant_id: str) -> Iterator[None]:
    """Install ``tenant_id`` for the duration of the block, restoring on every exit path."""
    token = _current_tenant.set(tenant_id)
    try:
        yield
    finally:
        _current_tenant.reset(token)


class TenantLogFilter(logging.Filter):
    """Stamp ``record.tenant_id`` so formatters can include it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.tenant_id = _current_tenant.get() or "-"
        return True
