from __future__ import annotations

import logging

from ..models import ExecutionContext
from .base import StepHandler, generate_text, load_analyses
from .configs import StepInput, StepType, SynthesisConfig
from .prompts import synthesis_artifact_name, synthesis_context, synthesis_prompt
from .results import SynthesisResult

logger = logging.getLogger(__name__)


class SynthesisHandler(StepHandler):
    """Light generation across the bound documents, kept as a draft for review."""

    step_type = StepType.SYNTHESIS
    config_type = SynthesisConfig

    async def execute(
        self, step_name: str, step_input: StepInput, context: ExecutionContext
    ) -> SynthesisResult:
        config: SynthesisConfig = self.config_of(step_input)
        analyses = await load_analyses(
            self.collaborators.analyses, step_input.document_ids, context.tenant_id
        )
        prompt = synthesis_prompt(config.synthesis_type, synthesis_context(analyses))
        content = await generate_text(self.collaborators.generator, prompt, deep_thinking=False)

        name = synthesis_artifact_name(config.synthesis_type, context.execution_name)
        artifact_id = await self.collaborators.artifacts.create_draft(
            owner_user_id=context.creator_id,
            name=name,
            case_id=context.case_id,
            execution_id=context.execution_id,
            content=content,
            document_type=config.synthesis_type,
        )
        logger.info(
            f"Created synthesis draft {artifact_id} ({config.synthesis_type}) "
            f"for execution {context.execution_id}"
        )
        return SynthesisResult(
            synthesis_type=config.synthesis_type,
            content=content,
            document_count=len(step_input.document_ids),
            artifact_id=artifact_id,
            artifact_name=name,
            message=f"{name} created and available in Drafting",
        )
