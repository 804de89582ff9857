"""Background worker that consumes run requests and drives the orchestrator."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .contracts import RUN_TOPIC, RunRequest
from .exceptions import ConcurrentModificationError
from .models import ExecutionStatus, utcnow
from .orchestrator import Orchestrator
from .persistence import WorkflowRepository
from .tenancy import tenant_scope
from .transports import BaseTransport, Delivery

logger = logging.getLogger(__name__)

INTERRUPTED_REASON = "dispatch interrupted"


class WorkflowWorker:
    """Runs executions named by messages on the run topic.

    Each delivery gets its own task, so independent executions progress
    concurrently; ``max_concurrency`` caps how many run at once.
    """

    def __init__(
        self,
        transport: BaseTransport,
        orchestrator: Orchestrator,
        repository: WorkflowRepository,
        topic: str = RUN_TOPIC,
        dispatch_delay: float = 0.5,
        max_concurrency: int = 8,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._transport = transport
        self._orchestrator = orchestrator
        self._repository = repository
        self._topic = topic
        self._dispatch_delay = dispatch_delay
        self._slots = asyncio.Semaphore(max_concurrency)
        self._in_flight: set[asyncio.Task] = set()
        self.processed = 0

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    async def start(
        self, lifespan: Optional[float] = None, recover_unacked: bool = False
    ) -> None:
        """Listen for run requests until ``lifespan`` seconds have passed (forever if None).

        Runs still in flight when the subscription ends are awaited; if the
        worker itself is cancelled they are cancelled too. With
        ``recover_unacked`` the transport first requeues requests a previous
        worker took but never acknowledged.
        """
        if recover_unacked:
            await self._transport.requeue_unacked(self._topic)
        logger.info(f"Worker listening on {self._topic}")
        try:
            async for delivery in self._transport.subscribe(self._topic, lifespan=lifespan):
                await self._slots.acquire()
                task = asyncio.create_task(self._process(delivery))
                self._in_flight.add(task)
                task.add_done_callback(self._in_flight.discard)
        except asyncio.CancelledError:
            for task in list(self._in_flight):
                task.cancel()
            await asyncio.gather(*self._in_flight, return_exceptions=True)
            raise
        await self.drain()

    async def drain(self) -> None:
        """Wait for every run started by this worker to finish."""
        while self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    async def _process(self, delivery: Delivery) -> None:
        try:
            await self.handle(delivery.request)
        finally:
            self._slots.release()
            await self._transport.ack(delivery)

    async def handle(self, request: RunRequest) -> None:
        """Run one request with the tenant installed for log correlation.

        Errors raised by the run are logged and do not reach the caller.
        Cancellation during the pre-run delay fails the execution and is
        re-raised.
        """
        with tenant_scope(request.tenant.tenant_id):
            try:
                await asyncio.sleep(self._dispatch_delay)
            except asyncio.CancelledError:
                await self._mark_interrupted(request)
                raise

            logger.info(f"Running execution {request.execution_id} ({request.reason})")
            try:
                await self._orchestrator.run(request.execution_id, request.tenant)
            except Exception:
                logger.exception(f"Run of execution {request.execution_id} failed")
            finally:
                self.processed += 1

    async def _mark_interrupted(self, request: RunRequest) -> None:
        execution = await self._repository.get_execution(
            request.execution_id, request.tenant.tenant_id
        )
        if execution is None:
            return
        if execution.status.is_terminal or execution.status == ExecutionStatus.WAITING_USER:
            logger.info(
                f"Dispatch of execution {execution.id} interrupted, "
                f"leaving it {execution.status.value}"
            )
            return
        execution.status = ExecutionStatus.FAILED
        execution.failure_reason = INTERRUPTED_REASON
        execution.completed_at = utcnow()
        try:
            await self._repository.save_execution(execution)
        except ConcurrentModificationError as e:
            logger.warning(f"Could not mark execution {execution.id} interrupted: {e}")
            return
        logger.error(f"Dispatch of execution {execution.id} interrupted, marked FAILED")
