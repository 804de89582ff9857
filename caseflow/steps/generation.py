from __future__ import annotations

from typing import Sequence

from ..collaborators.base import Collaborators
from ..models import ExecutionContext
from .base import StepHandler, generate_text, load_analyses
from .configs import GenerationConfig, StepInput, StepType
from .prompts import generation_context, generation_prompt
from .results import GenerationResult


async def generate_document(
    collaborators: Collaborators,
    document_ids: Sequence[str],
    tenant_id: str,
    generation_type: str,
) -> str:
    """Deep-thinking generation over the full text of the bound documents."""
    analyses = await load_analyses(collaborators.analyses, document_ids, tenant_id)
    prompt = generation_prompt(generation_type, generation_context(analyses))
    return await generate_text(collaborators.generator, prompt, deep_thinking=True)


class GenerationHandler(StepHandler):
    step_type = StepType.GENERATION
    config_type = GenerationConfig

    async def execute(
        self, step_name: str, step_input: StepInput, context: ExecutionContext
    ) -> GenerationResult:
        config: GenerationConfig = self.config_of(step_input)
        content = await generate_document(
            self.collaborators, step_input.document_ids, context.tenant_id, config.generation_type
        )
        return GenerationResult(
            generation_type=config.generation_type,
            content=content,
            document_count=len(step_input.document_ids),
        )
