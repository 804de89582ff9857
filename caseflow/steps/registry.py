"""Mapping from step type to the handler that runs it."""

from __future__ import annotations

from typing import Mapping

from ..collaborators.base import Collaborators
from .action import ActionHandler
from .base import StepHandler
from .configs import StepType
from .display import DisplayHandler
from .generation import GenerationHandler
from .integration import IntegrationHandler
from .synthesis import SynthesisHandler

HANDLER_CLASSES: tuple[type[StepHandler], ...] = (
    DisplayHandler,
    SynthesisHandler,
    GenerationHandler,
    IntegrationHandler,
    ActionHandler,
)


def ensure_exhaustive(handlers: Mapping[StepType, StepHandler]) -> None:
    """Raise unless every step type has a handler registered."""
    missing = [t.value for t in StepType if t not in handlers]
    if missing:
        raise ValueError(f"No handler registered for step types: {', '.join(missing)}")


def build_handlers(collaborators: Collaborators) -> dict[StepType, StepHandler]:
    handlers = {cls.step_type: cls(collaborators) for cls in HANDLER_CLASSES}
    ensure_exhaustive(handlers)
    return handlers
