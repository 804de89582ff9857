"""Transport tests."""

import asyncio
import logging
from collections import defaultdict

import pytest

from caseflow.contracts import RunRequest, TenantContext
from caseflow.transports import Delivery, InMemoryTransport


def _request(execution_id: str = "ex-1", tenant: str = "acme") -> RunRequest:
    return RunRequest(execution_id=execution_id, tenant=TenantContext(tenant_id=tenant))


@pytest.mark.asyncio
async def test_inmemory_transport_basic():
    """Publish then consume a run request."""
    transport = InMemoryTransport()
    request = _request()

    await transport.publish("runs", request)
    assert transport.pending("runs") == 1

    received = []
    async for delivery in transport.subscribe("runs"):
        received.append(delivery)
        await transport.ack(delivery)
        break

    assert transport.pending("runs") == 0
    assert received[0].topic == "runs"
    message = received[0].request
    assert message.execution_id == "ex-1"
    assert message.tenant.tenant_id == "acme"
    assert message.message_id == request.message_id
    # consumers get their own copy
    assert message is not request


@pytest.mark.asyncio
async def test_inmemory_transport_preserves_order():
    transport = InMemoryTransport(poll_interval=0.01)
    for n in range(3):
        await transport.publish("runs", _request(f"ex-{n}"))

    seen = [d.request.execution_id async for d in transport.subscribe("runs", lifespan=0.05)]
    assert seen == ["ex-0", "ex-1", "ex-2"]


@pytest.mark.asyncio
async def test_inmemory_transport_topics_are_separate_and_lifespan_ends_subscription():
    transport = InMemoryTransport(poll_interval=0.01)
    await transport.publish("a", _request("ex-a", tenant="t"))

    loop = asyncio.get_running_loop()
    started = loop.time()
    seen = [d.request.execution_id async for d in transport.subscribe("b", lifespan=0.05)]

    assert seen == []
    assert transport.pending("a") == 1
    assert loop.time() - started < 1.0


@pytest.mark.asyncio
async def test_nack_puts_request_back():
    transport = InMemoryTransport(poll_interval=0.01)
    await transport.publish("runs", _request())

    async for delivery in transport.subscribe("runs"):
        await transport.nack(delivery)
        break

    assert transport.pending("runs") == 1


def test_run_request_json_round_trip():
    request = RunRequest(
        execution_id="ex-1", tenant=TenantContext(tenant_id="acme", user_id="u1"), reason="resume"
    )
    restored = RunRequest.from_json(request.to_json())
    assert restored == request


def test_delivery_is_immutable():
    delivery = Delivery(topic="runs", request=_request())
    with pytest.raises(AttributeError):
        delivery.topic = "other"


class FakeRedisLists:
    """Just enough of the redis.asyncio list API for RedisTransport; index 0 is LEFT."""

    def __init__(self) -> None:
        self.lists: dict[str, list[str]] = defaultdict(list)

    def _pop(self, key: str, side: str):
        items = self.lists[key]
        if not items:
            return None
        return items.pop(0) if side == "LEFT" else items.pop()

    def _push(self, key: str, side: str, value: str) -> None:
        if side == "LEFT":
            self.lists[key].insert(0, value)
        else:
            self.lists[key].append(value)

    async def lpush(self, key, value):
        self._push(key, "LEFT", value)
        return len(self.lists[key])

    async def rpush(self, key, value):
        self._push(key, "RIGHT", value)
        return len(self.lists[key])

    async def lmove(self, first, second, src="LEFT", dest="RIGHT"):
        value = self._pop(first, src)
        if value is not None:
            self._push(second, dest, value)
        return value

    async def blmove(self, first, second, timeout, src="LEFT", dest="RIGHT"):
        value = await self.lmove(first, second, src, dest)
        if value is None:
            await asyncio.sleep(min(timeout, 0.01))
        return value

    async def lrem(self, key, count, value):
        try:
            self.lists[key].remove(value)
        except ValueError:
            return 0
        return 1

    def pipeline(self, transaction=True):
        return FakePipeline(self)


class FakePipeline:
    def __init__(self, client: FakeRedisLists) -> None:
        self._client = client
        self._commands = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    def lrem(self, *args):
        self._commands.append(("lrem", args))
        return self

    def rpush(self, *args):
        self._commands.append(("rpush", args))
        return self

    async def execute(self):
        return [await getattr(self._client, name)(*args) for name, args in self._commands]


def _redis_transport():
    from caseflow.transports.redis import RedisTransport

    transport = RedisTransport()
    fake = FakeRedisLists()
    transport._redis = fake
    return transport, fake


TOPIC = "caseflow.workflow.run"
QUEUE = "caseflow:caseflow.workflow.run"
PROCESSING = "caseflow:caseflow.workflow.run:processing"


@pytest.mark.asyncio
async def test_redis_delivery_stays_on_processing_list_until_acked():
    transport, fake = _redis_transport()
    await transport.publish(TOPIC, _request("ex-1"))
    await transport.publish(TOPIC, _request("ex-2"))

    async for delivery in transport.subscribe(TOPIC):
        break

    assert delivery.request.execution_id == "ex-1"
    assert len(fake.lists[QUEUE]) == 1
    assert fake.lists[PROCESSING] == [delivery.receipt]

    await transport.ack(delivery)
    assert fake.lists[PROCESSING] == []
    assert len(fake.lists[QUEUE]) == 1


@pytest.mark.asyncio
async def test_redis_nack_puts_request_back_at_the_head():
    transport, fake = _redis_transport()
    await transport.publish(TOPIC, _request("ex-1"))
    await transport.publish(TOPIC, _request("ex-2"))

    async for delivery in transport.subscribe(TOPIC):
        await transport.nack(delivery)
        break

    assert fake.lists[PROCESSING] == []
    seen = [d.request.execution_id async for d in transport.subscribe(TOPIC, lifespan=0.05)]
    assert seen == ["ex-1", "ex-2"]


@pytest.mark.asyncio
async def test_redis_requeue_unacked_restores_original_order():
    transport, fake = _redis_transport()
    for n in range(3):
        await transport.publish(TOPIC, _request(f"ex-{n}"))
    taken = []
    async for delivery in transport.subscribe(TOPIC):
        taken.append(delivery)
        if len(taken) == 2:
            break

    # the worker holding these died before acknowledging them
    assert await transport.requeue_unacked(TOPIC) == 2
    assert fake.lists[PROCESSING] == []
    seen = [d.request.execution_id async for d in transport.subscribe(TOPIC, lifespan=0.05)]
    assert seen == ["ex-0", "ex-1", "ex-2"]
    assert await transport.requeue_unacked(TOPIC) == 3


@pytest.mark.asyncio
async def test_redis_drops_malformed_requests(caplog):
    transport, fake = _redis_transport()
    await fake.lpush(QUEUE, "{not json")
    await transport.publish(TOPIC, _request("ex-1"))

    with caplog.at_level(logging.ERROR, logger="caseflow.transports.redis"):
        seen = [d.request.execution_id async for d in transport.subscribe(TOPIC, lifespan=0.05)]

    assert seen == ["ex-1"]
    # only the valid request is left waiting for its ack
    assert [RunRequest.from_json(p).execution_id for p in fake.lists[PROCESSING]] == ["ex-1"]
    assert any("malformed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_inmemory_transport_has_nothing_to_requeue():
    assert await InMemoryTransport().requeue_unacked("runs") == 0


@pytest.mark.asyncio
async def test_redis_transport_import():
    """RedisTransport can be built without a running server."""
    from caseflow.transports.redis import RedisTransport

    transport = RedisTransport()
    assert transport.host == "localhost"
    assert transport.port == 6379
    assert RedisTransport.queue_name("caseflow.workflow.run") == "caseflow:caseflow.workflow.run"
    assert (
        RedisTransport.processing_name("caseflow.workflow.run")
        == "caseflow:caseflow.workflow.run:processing"
    )
