"""Queue of run requests between the dispatcher and workflow workers."""

from __future__ import annotations

import abc
import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Optional

from ..contracts import RunRequest


@dataclass(frozen=True)
class Delivery:
    """A run request taken off a queue.

    ``receipt`` is whatever the backend needs to acknowledge the delivery
    later; callers treat it as opaque.
    """

    topic: str
    request: RunRequest
    receipt: Any = None


class BaseTransport(abc.ABC):
    """Carries :class:`RunRequest` messages from publishers to one consumer each.

    Subclasses implement :meth:`publish` and :meth:`_receive`; the
    subscription loop, including the optional ``lifespan`` cut-off, is shared.
    """

    #: Longest single wait inside :meth:`_receive`, so a lifespan is honoured promptly.
    receive_timeout: float = 1.0

    async def connect(self) -> None:
        pass

    async def disconnect(self) -> None:
        pass

    @abc.abstractmethod
    async def publish(self, topic: str, request: RunRequest) -> None:
        """Queue ``request`` on ``topic``."""

    @abc.abstractmethod
    async def _receive(self, topic: str, timeout: float) -> Optional[Delivery]:
        """Take the next delivery, or return None after ``timeout`` seconds."""

    async def subscribe(
        self, topic: str, lifespan: Optional[float] = None
    ) -> AsyncIterator[Delivery]:
        """Yield deliveries from ``topic``.

        Args:
            topic: The topic to consume.
            lifespan: Seconds after which the subscription ends. Runs
                indefinitely when None.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + lifespan if lifespan is not None else None

        while True:
            timeout = self.receive_timeout
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return
                timeout = min(timeout, remaining)

            delivery = await self._receive(topic, timeout)
            if delivery is not None:
                yield delivery

    async def ack(self, delivery: Delivery) -> None:
        """Mark ``delivery`` as handled. Backends without redelivery need nothing."""

    async def nack(self, delivery: Delivery) -> None:
        """Give ``delivery`` back to the queue for another attempt."""
        await self.publish(delivery.topic, delivery.request)

    async def requeue_unacked(self, topic: str) -> int:
        """Requeue deliveries taken but never acknowledged; returns how many.

        Only backends that keep taken deliveries until ``ack`` have any.
        """
        return 0
