"""Redis transport for cross-process dispatch.

Each topic is a Redis list. A worker moves a request atomically onto a
per-topic processing list when it takes it, and removes it from there on
``ack``; anything still on the processing list after a crash can be put back
with :meth:`RedisTransport.requeue_unacked`, which
``WorkflowWorker.start(recover_unacked=True)`` calls before consuming.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import redis.asyncio as redis
from pydantic import ValidationError

from ..contracts import RunRequest
from .base import BaseTransport, Delivery

logger = logging.getLogger(__name__)


class RedisTransport(BaseTransport):
    def __init__(
        self,
        host: str = "localhost",
        port: int = 6379,
        db: int = 0,
        password: Optional[str] = None,
    ) -> None:
        self.host = host
        self.port = port
        self.db = db
        self.password = password
        self._redis: Optional[Any] = None

    @staticmethod
    def queue_name(topic: str) -> str:
        return f"caseflow:{topic}"

    @classmethod
    def processing_name(cls, topic: str) -> str:
        return f"{cls.queue_name(topic)}:processing"

    async def connect(self) -> None:
        self._redis = redis.Redis(
            host=self.host,
            port=self.port,
            db=self.db,
            password=self.password,
            decode_responses=True,
        )
        await self._redis.ping()

    async def disconnect(self) -> None:
        if self._redis:
            await self._redis.aclose()
            self._redis = None

    async def _client(self) -> Any:
        if not self._redis:
            await self.connect()
        return self._redis

    async def publish(self, topic: str, request: RunRequest) -> None:
        client = await self._client()
        await client.lpush(self.queue_name(topic), request.to_json())

    async def _receive(self, topic: str, timeout: float) -> Optional[Delivery]:
        client = await self._client()
        # A zero timeout would block forever.
        payload = await client.blmove(
            self.queue_name(topic),
            self.processing_name(topic),
            max(timeout, 0.01),
            src="RIGHT",
            dest="LEFT",
        )
        if payload is None:
            return None
        try:
            request = RunRequest.from_json(payload)
        except ValidationError as e:
            logger.error(f"Dropping malformed run request on {topic}: {e}")
            await client.lrem(self.processing_name(topic), 1, payload)
            return None
        return Delivery(topic=topic, request=request, receipt=payload)

    async def ack(self, delivery: Delivery) -> None:
        client = await self._client()
        await client.lrem(self.processing_name(delivery.topic), 1, delivery.receipt)

    async def nack(self, delivery: Delivery) -> None:
        client = await self._client()
        async with client.pipeline(transaction=True) as pipe:
            pipe.lrem(self.processing_name(delivery.topic), 1, delivery.receipt)
            pipe.rpush(self.queue_name(delivery.topic), delivery.receipt)
            await pipe.execute()

    async def requeue_unacked(self, topic: str) -> int:
        """Return requests taken but never acknowledged to the front of the queue."""
        client = await self._client()
        moved = 0
        while await client.lmove(
            self.processing_name(topic), self.queue_name(topic), "LEFT", "RIGHT"
        ):
            moved += 1
        if moved:
            logger.warning(f"Requeued {moved} unacknowledged run request(s) on {topic}")
        return moved
