"""Persistence layer for caseflow executions."""

from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

from ..config import CaseflowConfig, load_config
from .inmemory import InMemoryWorkflowRepository
from .repository import WorkflowRepository
from .sqlite import SQLiteWorkflowRepository

# Process-wide repository reused by argument-less calls (the CLI).
_repository_instance: WorkflowRepository | None = None


def _open(database_url: str) -> WorkflowRepository:
    scheme = urlsplit(database_url).scheme
    if scheme == "sqlite":
        return SQLiteWorkflowRepository(database_url.split("://", 1)[1])
    if scheme in ("postgres", "postgresql"):
        from .postgres import PostgresWorkflowRepository

        return PostgresWorkflowRepository(database_url)
    raise ValueError(f"Unsupported database backend: {scheme or database_url}")


def get_repository(
    database_url: Optional[str] = None, config: Optional[CaseflowConfig] = None
) -> WorkflowRepository:
    """Return the workflow repository for ``database_url``.

    Without an explicit URL the configured one is used (``load_config``
    honours ``CASEFLOW_DATABASE_URL`` and ``DATABASE_URL``). No URL at all
    means an in-memory repository. URLs look like ``sqlite:///path/to.db`` or
    ``postgresql://user@host/db``.
    """
    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    url = database_url or (config or load_config()).database_url
    _repository_instance = _open(url) if url else InMemoryWorkflowRepository()
    return _repository_instance


__all__ = [
    "WorkflowRepository",
    "SQLiteWorkflowRepository",
    "InMemoryWorkflowRepository",
    "get_repository",
]
