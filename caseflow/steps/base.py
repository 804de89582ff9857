"""Shared plumbing for step handlers."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import ClassVar, Sequence, Union

from pydantic import BaseModel

from ..collaborators.base import AnalysisStore, Collaborators, DocumentAnalysis, TextGenerator
from ..exceptions import CaseflowError, ExternalServiceError
from ..models import ExecutionContext
from .configs import StepInput, StepType
from .results import StepResult, WaitForUser

logger = logging.getLogger(__name__)

StepOutcome = Union[StepResult, WaitForUser]


class StepHandler(ABC):
    """Performs one kind of step.

    Handlers never touch execution or step records. They return a result,
    return :class:`WaitForUser`, or raise, and the orchestrator persists the
    transition.
    """

    step_type: ClassVar[StepType]
    config_type: ClassVar[type[BaseModel]]

    def __init__(self, collaborators: Collaborators) -> None:
        self.collaborators = collaborators

    def config_of(self, step_input: StepInput):
        config = step_input.config
        if not isinstance(config, self.config_type):
            raise TypeError(
                f"{type(self).__name__} cannot run a {type(config).__name__} step"
            )
        return config

    @abstractmethod
    async def execute(
        self, step_name: str, step_input: StepInput, context: ExecutionContext
    ) -> StepOutcome:
        """Run the step and return its outcome."""


async def load_analyses(
    store: AnalysisStore, document_ids: Sequence[str], tenant_id: str
) -> list[DocumentAnalysis]:
    """Fetch stored analyses in document order, skipping documents without one."""
    analyses: list[DocumentAnalysis] = []
    for document_id in document_ids:
        try:
            analysis = await store.get_document_analysis(document_id, tenant_id)
        except Exception as e:
            logger.warning(f"Could not load analysis for document {document_id}: {e}")
            continue
        if analysis is None:
            logger.debug(f"No analysis stored for document {document_id}")
            continue
        analyses.append(analysis)
    return analyses


async def generate_text(generator: TextGenerator, prompt: str, deep_thinking: bool) -> str:
    try:
        return await generator.generate(prompt, deep_thinking=deep_thinking)
    except CaseflowError:
        raise
    except Exception as e:
        raise ExternalServiceError("generation", str(e) or type(e).__name__) from e
