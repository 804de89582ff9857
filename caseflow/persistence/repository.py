"""Repository abstraction for workflow state persistence."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from ..models import StepExecution, WorkflowExecution


class WorkflowRepository(Protocol):
    """Protocol for workflow state persistence backends.

    Every read is scoped by ``tenant_id``: a record owned by another tenant
    is reported as missing. ``save_*`` calls are compare-and-set on the
    record's ``version`` and raise
    :class:`~caseflow.exceptions.ConcurrentModificationError` when the stored
    version no longer matches, and
    :class:`~caseflow.exceptions.NotFoundOrAccessDenied` when the record's
    tenant cannot see the row. A save never changes which tenant (or, for a
    step, which execution) owns the row. On success they return the record
    with its version bumped.
    """

    async def create_execution(
        self, execution: WorkflowExecution, steps: Sequence[StepExecution]
    ) -> None:
        """Persist a new execution together with all of its step records."""

    async def get_execution(
        self, execution_id: str, tenant_id: str
    ) -> Optional[WorkflowExecution]:
        """Retrieve an execution by id."""

    async def list_executions(
        self, tenant_id: str, created_by: Optional[str] = None
    ) -> list[WorkflowExecution]:
        """Return the tenant's executions, newest first."""

    async def list_steps(self, execution_id: str, tenant_id: str) -> list[StepExecution]:
        """Return an execution's steps ordered by step number."""

    async def get_step(self, step_id: str, tenant_id: str) -> Optional[StepExecution]:
        """Retrieve a single step record by id."""

    async def save_execution(self, execution: WorkflowExecution) -> WorkflowExecution:
        """Persist changes to an execution."""

    async def save_step(self, step: StepExecution) -> StepExecution:
        """Persist changes to a step."""
