from __future__ import annotations

import logging
from typing import Union

from ..models import ExecutionContext
from .base import StepHandler, generate_text, load_analyses
from .configs import IntegrationConfig, StepInput, StepType
from .generation import generate_document
from .prompts import (
    draft_artifact_name,
    research_artifact_name,
    research_context,
    research_prompt,
)
from .results import (
    DraftIntegrationResult,
    PassthroughIntegrationResult,
    ResearchIntegrationResult,
)

logger = logging.getLogger(__name__)

IntegrationResult = Union[
    DraftIntegrationResult, ResearchIntegrationResult, PassthroughIntegrationResult
]


class IntegrationHandler(StepHandler):
    """Hand generated content to a downstream artifact store.

    ``create_draft`` generates a document and files it as a draft,
    ``legal_research`` runs a research prompt and files a research session.
    Any other integration type completes without side effects.
    """

    step_type = StepType.INTEGRATION
    config_type = IntegrationConfig

    async def execute(
        self, step_name: str, step_input: StepInput, context: ExecutionContext
    ) -> IntegrationResult:
        config: IntegrationConfig = self.config_of(step_input)
        if config.integration_type == "create_draft":
            return await self._create_draft(config, step_input, context)
        if config.integration_type == "legal_research":
            return await self._legal_research(config, step_input, context)
        return PassthroughIntegrationResult(integration_type=config.integration_type)

    async def _create_draft(
        self, config: IntegrationConfig, step_input: StepInput, context: ExecutionContext
    ) -> DraftIntegrationResult:
        content = await generate_document(
            self.collaborators, step_input.document_ids, context.tenant_id, config.generation_type
        )
        name = draft_artifact_name(config.generation_type, context.execution_name)
        artifact_id = await self.collaborators.artifacts.create_draft(
            owner_user_id=context.creator_id,
            name=name,
            case_id=context.case_id,
            execution_id=context.execution_id,
            content=content,
        )
        logger.info(f"Created draft {artifact_id} for execution {context.execution_id}")
        return DraftIntegrationResult(
            draft_content=content, artifact_id=artifact_id, artifact_name=name
        )

    async def _legal_research(
        self, config: IntegrationConfig, step_input: StepInput, context: ExecutionContext
    ) -> ResearchIntegrationResult:
        analyses = await load_analyses(
            self.collaborators.analyses, step_input.document_ids, context.tenant_id
        )
        prompt = research_prompt(research_context(analyses), config.research_query)
        content = await generate_text(self.collaborators.generator, prompt, deep_thinking=True)

        name = research_artifact_name(context.execution_name)
        document_count = len(step_input.document_ids)
        artifact_id = await self.collaborators.artifacts.create_research(
            owner_user_id=context.creator_id,
            name=name,
            case_id=context.case_id,
            execution_id=context.execution_id,
            content=content,
            document_count=document_count,
            description=f"Legal research from workflow: {context.template_name}",
        )
        logger.info(f"Created research session {artifact_id} for execution {context.execution_id}")
        return ResearchIntegrationResult(
            content=content,
            artifact_id=artifact_id,
            artifact_name=name,
            document_count=document_count,
            message=f"Legal research completed - {name}",
        )
