"""Public entry points: start, resume and inspect workflow executions."""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from .contracts import TenantContext
from .dispatch import WorkflowDispatcher
from .exceptions import (
    ConcurrentModificationError,
    InvalidTemplateError,
    NotFoundOrAccessDenied,
    StepNotWaitingError,
)
from .models import (
    ExecutionSnapshot,
    StepExecution,
    StepStatus,
    WorkflowExecution,
    utcnow,
)
from .persistence import WorkflowRepository
from .steps.configs import StepInput
from .steps.results import ActionResult, ResumedActionResult
from .templates import TemplateRepository, WorkflowTemplate

logger = logging.getLogger(__name__)


class WorkflowService:
    """Creates executions and hands them to the dispatcher.

    Every call takes the caller's :class:`TenantContext` explicitly, and
    nothing here runs a step: runs happen on a worker once the dispatcher's
    message is consumed.
    """

    def __init__(
        self,
        repository: WorkflowRepository,
        templates: TemplateRepository,
        dispatcher: WorkflowDispatcher,
    ) -> None:
        self._repository = repository
        self._templates = templates
        self._dispatcher = dispatcher

    async def start_workflow(
        self,
        template_id: str,
        tenant: TenantContext,
        creator_id: str,
        document_ids: Sequence[str] = (),
        case_id: Optional[str] = None,
        collection_id: Optional[str] = None,
        name: Optional[str] = None,
    ) -> WorkflowExecution:
        """Materialize an execution and its steps, then schedule the first run.

        Returns the execution as created (status PENDING).
        """
        template = await self.get_template(template_id, tenant)
        if not template.steps:
            raise InvalidTemplateError(f"Template {template_id} has no steps")

        logger.info(
            f"Starting workflow from template {template_id} "
            f"(case={case_id}, collection={collection_id}, docs={len(document_ids)})"
        )
        execution = WorkflowExecution(
            tenant_id=tenant.tenant_id,
            template_id=template.id,
            template_name=template.name,
            name=name or template.name,
            created_by=creator_id,
            case_id=case_id,
            collection_id=collection_id,
            document_ids=list(document_ids),
            total_steps=len(template.steps),
        )
        steps = [
            StepExecution(
                execution_id=execution.id,
                tenant_id=tenant.tenant_id,
                step_number=number,
                step_name=definition.name,
                step_type=definition.step_type,
                input_data=StepInput(document_ids=list(document_ids), config=definition.config),
            )
            for number, definition in enumerate(template.steps, start=1)
        ]
        await self._repository.create_execution(execution, steps)
        await self._dispatcher.schedule(execution.id, tenant, reason="start")
        return execution

    async def resume_workflow(
        self,
        execution_id: str,
        step_id: str,
        tenant: TenantContext,
        user_input: Optional[dict[str, Any]] = None,
    ) -> StepExecution:
        """Complete a step that is waiting for the user and schedule the rest of the run.

        Resuming a step that is already completed changes nothing and
        schedules nothing.
        """
        execution = await self._repository.get_execution(execution_id, tenant.tenant_id)
        if execution is None:
            raise NotFoundOrAccessDenied(f"Execution {execution_id} not found")
        step = await self._repository.get_step(step_id, tenant.tenant_id)
        if step is None or step.execution_id != execution_id:
            raise NotFoundOrAccessDenied(
                f"Step {step_id} not found in execution {execution_id}"
            )

        if step.status == StepStatus.COMPLETED:
            logger.info(f"Step {step_id} of execution {execution_id} already completed")
            return step
        if step.status != StepStatus.WAITING_USER:
            raise StepNotWaitingError(
                f"Step {step_id} is {step.status.value}, not waiting for user input"
            )

        waiting = step.output_data
        if isinstance(waiting, ActionResult):
            output = ResumedActionResult(
                action_type=waiting.action_type,
                message=waiting.message,
                notifications_sent=waiting.notifications_sent,
                user_input=user_input or {},
            )
        else:
            output = ResumedActionResult(
                action_type="default", message="Completed by user", user_input=user_input or {}
            )
        step.status = StepStatus.COMPLETED
        step.output_data = output
        step.completed_at = utcnow()
        try:
            step = await self._repository.save_step(step)
        except ConcurrentModificationError:
            logger.info(f"Step {step_id} was resumed concurrently, not rescheduling")
            current = await self._repository.get_step(step_id, tenant.tenant_id)
            return current or step

        logger.info(f"Resumed execution {execution_id} from step {step.step_number}")
        await self._dispatcher.schedule(execution_id, tenant, reason="resume")
        return step

    async def get_execution_with_steps(
        self, execution_id: str, tenant: TenantContext
    ) -> ExecutionSnapshot:
        execution = await self._repository.get_execution(execution_id, tenant.tenant_id)
        if execution is None:
            raise NotFoundOrAccessDenied(f"Execution {execution_id} not found")
        steps = await self._repository.list_steps(execution_id, tenant.tenant_id)
        return ExecutionSnapshot(execution=execution, steps=steps)

    async def list_executions(
        self, tenant: TenantContext, created_by: Optional[str] = None
    ) -> list[WorkflowExecution]:
        return await self._repository.list_executions(tenant.tenant_id, created_by=created_by)

    async def list_templates(self, tenant: TenantContext) -> list[WorkflowTemplate]:
        return await self._templates.list_templates(tenant.tenant_id)

    async def get_template(self, template_id: str, tenant: TenantContext) -> WorkflowTemplate:
        template = await self._templates.get_template(template_id, tenant.tenant_id)
        if template is None:
            raise NotFoundOrAccessDenied(f"Template {template_id} not found")
        return template
