"""Text generation backed by pydantic-ai agents."""

from __future__ import annotations

import logging
from typing import Optional

from pydantic_ai import Agent
from pydantic_ai.models import Model

from ..config import CaseflowConfig, load_config
from ..exceptions import ExternalServiceError

logger = logging.getLogger(__name__)

INSTRUCTIONS = "You assist lawyers with case work. Answer in well structured plain text."


class AgentTextGenerator:
    """``TextGenerator`` that routes light and deep-thinking prompts to separate agents.

    Models may be given as ``provider:model`` strings or as model instances.
    Agents are built on first use so a missing provider key only surfaces
    when generation is actually requested.
    """

    def __init__(self, light_model: str | Model, deep_model: str | Model) -> None:
        self._models = {False: light_model, True: deep_model}
        self._agents: dict[bool, Agent[None, str]] = {}

    @classmethod
    def from_config(cls, config: Optional[CaseflowConfig] = None) -> "AgentTextGenerator":
        config = config or load_config()
        return cls(config.generation.light_model, config.generation.deep_model)

    def _agent(self, deep_thinking: bool) -> Agent[None, str]:
        agent = self._agents.get(deep_thinking)
        if agent is None:
            agent = Agent(self._models[deep_thinking], instructions=INSTRUCTIONS)
            self._agents[deep_thinking] = agent
        return agent

    async def generate(self, prompt: str, deep_thinking: bool = False) -> str:
        try:
            result = await self._agent(deep_thinking).run(prompt)
        except Exception as e:
            logger.error(f"Generation failed (deep_thinking={deep_thinking}): {e}")
            raise ExternalServiceError("generation", str(e) or type(e).__name__) from e
        return result.output
