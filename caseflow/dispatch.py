"""Scheduling of orchestrator runs through the transport."""

from __future__ import annotations

import logging
from typing import Literal

from .contracts import RUN_TOPIC, RunRequest, TenantContext
from .transports import BaseTransport

logger = logging.getLogger(__name__)


class WorkflowDispatcher:
    """Publishes run requests for workers to pick up.

    This is the only way an execution gets run: the service never calls the
    orchestrator itself, so a run always happens on a worker, after the
    caller has returned.
    """

    def __init__(self, transport: BaseTransport, topic: str = RUN_TOPIC) -> None:
        self._transport = transport
        self._topic = topic

    async def schedule(
        self,
        execution_id: str,
        tenant: TenantContext,
        reason: Literal["start", "resume"] = "start",
    ) -> str:
        """Queue a run of ``execution_id`` for ``tenant`` and return the message id."""
        request = RunRequest(execution_id=execution_id, tenant=tenant, reason=reason)
        await self._transport.publish(self._topic, request)
        logger.info(
            f"Scheduled {reason} of execution {execution_id} "
            f"(message_id={request.message_id})"
        )
        return request.message_id
