"""In-memory transport for tests and single-process deployments."""

from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import Deque, Dict, Optional

from ..contracts import RunRequest
from .base import BaseTransport, Delivery


class InMemoryTransport(BaseTransport):
    """Per-topic FIFO of serialized run requests."""

    def __init__(self, poll_interval: float = 0.05) -> None:
        self._queues: Dict[str, Deque[str]] = defaultdict(deque)
        self._poll_interval = poll_interval

    async def publish(self, topic: str, request: RunRequest) -> None:
        # Stored as JSON so consumers never share objects with the publisher.
        self._queues[topic].append(request.to_json())

    def pending(self, topic: str) -> int:
        """Number of requests waiting on ``topic``."""
        return len(self._queues[topic])

    async def _receive(self, topic: str, timeout: float) -> Optional[Delivery]:
        loop = asyncio.get_running_loop()
        give_up_at = loop.time() + timeout
        queue = self._queues[topic]
        while not queue:
            remaining = give_up_at - loop.time()
            if remaining <= 0:
                return None
            await asyncio.sleep(min(self._poll_interval, remaining))
        return Delivery(topic=topic, request=RunRequest.from_json(queue.popleft()))
