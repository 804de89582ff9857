"""Wiring of repository, transport, handlers, service and worker."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .collaborators.base import Collaborators
from .config import CaseflowConfig, load_config
from .dispatch import WorkflowDispatcher
from .orchestrator import Orchestrator
from .persistence import WorkflowRepository, get_repository
from .service import WorkflowService
from .steps.registry import build_handlers
from .templates import TemplateRepository
from .transports import BaseTransport, get_transport
from .worker import WorkflowWorker


@dataclass
class Engine:
    repository: WorkflowRepository
    transport: BaseTransport
    service: WorkflowService
    worker: WorkflowWorker


def build_engine(
    collaborators: Collaborators,
    templates: TemplateRepository,
    config: Optional[CaseflowConfig] = None,
    repository: Optional[WorkflowRepository] = None,
    transport: Optional[BaseTransport] = None,
) -> Engine:
    """Assemble an engine, filling unspecified pieces from ``config``."""
    config = config or load_config()
    repository = repository or get_repository(config=config)
    transport = transport or get_transport(config=config)

    orchestrator = Orchestrator(repository, build_handlers(collaborators))
    dispatcher = WorkflowDispatcher(transport, topic=config.worker.topic)
    service = WorkflowService(repository, templates, dispatcher)
    worker = WorkflowWorker(
        transport,
        orchestrator,
        repository,
        topic=config.worker.topic,
        dispatch_delay=config.worker.dispatch_delay,
        max_concurrency=config.worker.max_concurrency,
    )
    return Engine(repository=repository, transport=transport, service=service, worker=worker)
