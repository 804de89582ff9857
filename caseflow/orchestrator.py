"""Control loop that walks an execution's steps in order."""

from __future__ import annotations

import logging
from typing import Callable, Mapping

from .contracts import TenantContext
from .exceptions import ConcurrentModificationError, NotFoundOrAccessDenied
from .models import (
    ExecutionContext,
    ExecutionStatus,
    StepExecution,
    StepStatus,
    WorkflowExecution,
    utcnow,
)
from .persistence import WorkflowRepository
from .steps.base import StepHandler
from .steps.configs import StepType
from .steps.registry import ensure_exhaustive
from .steps.results import WaitForUser

logger = logging.getLogger(__name__)

SAVE_ATTEMPTS = 5


class Orchestrator:
    """Drives one execution forward until it completes, pauses or fails.

    Every transition is saved as soon as it happens so pollers see live
    progress. A run only writes the execution after it has claimed a step
    with a compare-and-set save; losing that race means another run owns the
    execution, and this one stops. Execution updates are re-applied to a
    fresh copy when another writer got in first.
    """

    def __init__(
        self, repository: WorkflowRepository, handlers: Mapping[StepType, StepHandler]
    ) -> None:
        ensure_exhaustive(handlers)
        self._repository = repository
        self._handlers = dict(handlers)

    async def run(self, execution_id: str, tenant: TenantContext) -> None:
        execution = await self._repository.get_execution(execution_id, tenant.tenant_id)
        if execution is None:
            raise NotFoundOrAccessDenied(f"Execution {execution_id} not found")
        if execution.status.is_terminal:
            logger.info(f"Execution {execution_id} is {execution.status.value}, nothing to run")
            return

        steps = await self._repository.list_steps(execution_id, tenant.tenant_id)
        waiting = [s for s in steps if s.status == StepStatus.WAITING_USER]
        if waiting:
            logger.info(
                f"Execution {execution_id} still waiting on step {waiting[0].step_number}"
            )
            return

        context = ExecutionContext.from_execution(execution)
        completed = 0
        for step in sorted(steps, key=lambda s: s.step_number):
            if step.status == StepStatus.COMPLETED:
                logger.debug(f"Skipping completed step {step.step_number} ({step.step_name})")
                completed = step.step_number
                continue
            if step.status != StepStatus.PENDING:
                logger.warning(
                    f"Step {step.step_number} of execution {execution_id} is "
                    f"{step.status.value}, stopping"
                )
                return

            step.status = StepStatus.RUNNING
            step.started_at = utcnow()
            try:
                step = await self._repository.save_step(step)
            except ConcurrentModificationError:
                logger.warning(
                    f"Step {step.step_number} of execution {execution_id} was claimed "
                    "by another run, stopping"
                )
                return

            # The step is ours from here on; the execution row is shared.
            await self._update_execution(execution_id, tenant, _mark_running(completed))

            logger.info(
                f"Executing step {step.step_number} ({step.step_name}) - type: {step.step_type.value}"
            )
            handler = self._handlers[step.step_type]
            try:
                outcome = await handler.execute(step.step_name, step.input_data, context)
            except Exception as e:
                await self._fail(tenant, step, e)
                return

            if isinstance(outcome, WaitForUser):
                step.status = StepStatus.WAITING_USER
                step.output_data = outcome.result
                await self._repository.save_step(step)
                await self._update_execution(execution_id, tenant, _mark_waiting)
                logger.info(
                    f"Execution {execution_id} paused at step {step.step_number} waiting for user"
                )
                return

            step.status = StepStatus.COMPLETED
            step.output_data = outcome
            step.completed_at = utcnow()
            await self._repository.save_step(step)
            completed = step.step_number
            await self._update_execution(execution_id, tenant, _mark_running(completed))

        await self._update_execution(execution_id, tenant, _mark_completed)
        logger.info(f"Execution {execution_id} completed")

    async def _update_execution(
        self,
        execution_id: str,
        tenant: TenantContext,
        change: Callable[[WorkflowExecution], None],
    ) -> WorkflowExecution:
        """Apply ``change`` to the latest stored execution, retrying on version conflicts."""
        attempt = 1
        while True:
            execution = await self._repository.get_execution(execution_id, tenant.tenant_id)
            if execution is None:
                raise NotFoundOrAccessDenied(f"Execution {execution_id} not found")
            change(execution)
            try:
                return await self._repository.save_execution(execution)
            except ConcurrentModificationError:
                if attempt >= SAVE_ATTEMPTS:
                    raise
                logger.debug(
                    f"Execution {execution_id} changed while saving, retrying ({attempt})"
                )
                attempt += 1

    async def _fail(self, tenant: TenantContext, step: StepExecution, error: Exception) -> None:
        message = str(error) or type(error).__name__
        logger.error(
            f"Step {step.step_number} of execution {step.execution_id} failed: {message}"
        )
        step.status = StepStatus.FAILED
        step.error_message = message
        step.completed_at = utcnow()
        await self._repository.save_step(step)

        def mark_failed(execution: WorkflowExecution) -> None:
            execution.status = ExecutionStatus.FAILED
            execution.failure_reason = f"Step {step.step_number} ({step.step_name}) failed"
            execution.completed_at = utcnow()

        await self._update_execution(step.execution_id, tenant, mark_failed)


def _mark_running(completed: int) -> Callable[[WorkflowExecution], None]:
    def change(execution: WorkflowExecution) -> None:
        execution.status = ExecutionStatus.RUNNING
        if execution.started_at is None:
            execution.started_at = utcnow()
        # Never move progress backwards when another run got further.
        if completed > execution.current_step:
            execution.record_progress(completed)

    return change


def _mark_waiting(execution: WorkflowExecution) -> None:
    execution.status = ExecutionStatus.WAITING_USER


def _mark_completed(execution: WorkflowExecution) -> None:
    execution.status = ExecutionStatus.COMPLETED
    execution.record_progress(execution.total_steps)
    execution.completed_at = utcnow()
