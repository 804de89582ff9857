"""In-memory implementation of the workflow repository."""

from __future__ import annotations

import asyncio
from typing import Dict, Optional, Sequence

from ..exceptions import ConcurrentModificationError, NotFoundOrAccessDenied
from ..models import StepExecution, WorkflowExecution
from .repository import WorkflowRepository


class InMemoryWorkflowRepository(WorkflowRepository):
    """Store workflow state in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Records are copied on the way in and
    out so callers never share mutable state with the store.
    """

    def __init__(self) -> None:
        self._executions: Dict[str, WorkflowExecution] = {}
        self._steps: Dict[str, StepExecution] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    async def create_execution(
        self, execution: WorkflowExecution, steps: Sequence[StepExecution]
    ) -> None:
        async with self._lock:
            self._executions[execution.id] = execution.model_copy(deep=True)
            for step in steps:
                self._steps[step.id] = step.model_copy(deep=True)

    async def get_execution(
        self, execution_id: str, tenant_id: str
    ) -> Optional[WorkflowExecution]:
        execution = self._executions.get(execution_id)
        if execution is None or execution.tenant_id != tenant_id:
            return None
        return execution.model_copy(deep=True)

    async def list_executions(
        self, tenant_id: str, created_by: Optional[str] = None
    ) -> list[WorkflowExecution]:
        matches = [
            e.model_copy(deep=True)
            for e in self._executions.values()
            if e.tenant_id == tenant_id and (created_by is None or e.created_by == created_by)
        ]
        return sorted(matches, key=lambda e: e.created_at, reverse=True)

    async def list_steps(self, execution_id: str, tenant_id: str) -> list[StepExecution]:
        steps = [
            s.model_copy(deep=True)
            for s in self._steps.values()
            if s.execution_id == execution_id and s.tenant_id == tenant_id
        ]
        return sorted(steps, key=lambda s: s.step_number)

    async def get_step(self, step_id: str, tenant_id: str) -> Optional[StepExecution]:
        step = self._steps.get(step_id)
        if step is None or step.tenant_id != tenant_id:
            return None
        return step.model_copy(deep=True)

    async def save_execution(self, execution: WorkflowExecution) -> WorkflowExecution:
        async with self._lock:
            stored = self._executions.get(execution.id)
            _check_writable("execution", stored, execution)
            saved = execution.model_copy(deep=True, update={"version": execution.version + 1})
            self._executions[execution.id] = saved
        return saved.model_copy(deep=True)

    async def save_step(self, step: StepExecution) -> StepExecution:
        async with self._lock:
            stored = self._steps.get(step.id)
            _check_writable("step", stored, step)
            saved = step.model_copy(
                deep=True,
                update={"version": step.version + 1, "execution_id": stored.execution_id},
            )
            self._steps[step.id] = saved
        return saved.model_copy(deep=True)


def _check_writable(
    kind: str,
    stored: Optional[WorkflowExecution | StepExecution],
    record: WorkflowExecution | StepExecution,
) -> None:
    if stored is None or stored.tenant_id != record.tenant_id:
        raise NotFoundOrAccessDenied(f"{kind.capitalize()} {record.id} not found")
    if stored.version != record.version:
        raise ConcurrentModificationError(kind, record.id, record.version)
