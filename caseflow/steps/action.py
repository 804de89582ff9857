from __future__ import annotations

import logging

from ..models import ExecutionContext
from .base import StepHandler
from .configs import ActionConfig, StepInput, StepType
from .results import ActionResult, WaitForUser

logger = logging.getLogger(__name__)

NOTIFICATION_KIND = "WORKFLOW_REVIEW"

WAITING_MESSAGES = {
    "approval": "Waiting for client/partner approval",
    "document_collection": "Waiting for document collection",
    "export": "Ready for export - select your format",
}
DEFAULT_WAITING_MESSAGE = "This step requires user action to continue"


class ActionHandler(StepHandler):
    """Park the execution until a user resumes it."""

    step_type = StepType.ACTION
    config_type = ActionConfig

    async def execute(
        self, step_name: str, step_input: StepInput, context: ExecutionContext
    ) -> WaitForUser:
        config: ActionConfig = self.config_of(step_input)
        logger.info(f"Action step '{step_name}' ({config.action_type}) waiting for user")

        if config.action_type == "notify_team":
            sent = await self.notify_team(step_name, context)
            message = (
                f"Team members have been notified ({sent} notifications sent)"
                if sent
                else "No team members to notify"
            )
            return WaitForUser(
                result=ActionResult(
                    action_type=config.action_type, message=message, notifications_sent=sent
                )
            )

        message = WAITING_MESSAGES.get(config.action_type, DEFAULT_WAITING_MESSAGE)
        return WaitForUser(result=ActionResult(action_type=config.action_type, message=message))

    async def notify_team(self, step_name: str, context: ExecutionContext) -> int:
        """Notify everyone assigned to the case except the creator.

        Returns the number of notifications delivered. A failed delivery is
        logged and does not stop the remaining ones.
        """
        if context.case_id is None:
            logger.warning(
                f"Execution {context.execution_id} has no case, skipping team notification"
            )
            return 0

        assignees = await self.collaborators.cases.get_case_assignees(
            context.case_id, context.tenant_id
        )
        if not assignees:
            logger.info(f"No team members assigned to case {context.case_id}")
            return 0

        title = f"Workflow Review Required: {context.execution_name}"
        body = (
            f"The workflow '{context.execution_name}' requires your review. "
            f"Current step: {step_name}"
        )
        data = {
            "workflow_id": context.execution_id,
            "case_id": context.case_id,
            "step_name": step_name,
            "workflow_name": context.execution_name,
        }

        sent = 0
        for user_id in assignees:
            if user_id == context.creator_id:
                logger.info(f"Skipping notification to workflow creator {user_id}")
                continue
            try:
                await self.collaborators.notifier.notify(
                    title, body, user_id, NOTIFICATION_KIND, dict(data)
                )
            except Exception as e:
                logger.error(f"Failed to send notification to user {user_id}: {e}")
                continue
            sent += 1

        logger.info(
            f"Sent {sent} team notifications for execution {context.execution_id} "
            f"on case {context.case_id}"
        )
        return sent
