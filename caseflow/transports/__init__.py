"""Run-request transports and the backend factory."""

from __future__ import annotations

from typing import Callable, Dict, Optional

from ..config import CaseflowConfig, load_config
from .base import BaseTransport, Delivery
from .inmemory import InMemoryTransport


def _build_inmemory(config: CaseflowConfig) -> BaseTransport:
    return InMemoryTransport()


def _build_redis(config: CaseflowConfig) -> BaseTransport:
    # Imported lazily so the in-memory backend works without a Redis client.
    from .redis import RedisTransport

    return RedisTransport(**config.transport.redis.model_dump())


BACKENDS: Dict[str, Callable[[CaseflowConfig], BaseTransport]] = {
    "inmemory": _build_inmemory,
    "redis": _build_redis,
}


def get_transport(
    backend: Optional[str] = None, config: Optional[CaseflowConfig] = None
) -> BaseTransport:
    """Build the transport named by ``backend``, or by the loaded config.

    ``load_config`` already applies the ``CASEFLOW_TRANSPORT`` override.
    """
    config = config or load_config()
    name = (backend or config.transport.backend).lower()
    try:
        build = BACKENDS[name]
    except KeyError:
        raise ValueError(
            f"Unsupported transport backend: {name} (expected one of {sorted(BACKENDS)})"
        ) from None
    return build(config)


__all__ = ["BaseTransport", "Delivery", "InMemoryTransport", "get_transport"]
