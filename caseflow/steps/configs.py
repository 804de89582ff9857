"""Step kinds and their type-specific configuration."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class StepType(str, Enum):
    """The closed set of step kinds a template may contain."""

    DISPLAY = "display"
    SYNTHESIS = "synthesis"
    GENERATION = "generation"
    INTEGRATION = "integration"
    ACTION = "action"


class _FrozenConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class DisplayConfig(_FrozenConfig):
    """Read stored analyses, optionally with action items and timeline events."""

    type: Literal["display"] = "display"
    display_type: str = "analysis"


class SynthesisConfig(_FrozenConfig):
    """Light generation across documents, stored as a draft artifact."""

    type: Literal["synthesis"] = "synthesis"
    synthesis_type: str = "summary"


class GenerationConfig(_FrozenConfig):
    """Deep-thinking generation whose content is returned as step output."""

    type: Literal["generation"] = "generation"
    generation_type: str = "report"


class IntegrationConfig(_FrozenConfig):
    """Create a draft or run legal research, persisting the artifact."""

    type: Literal["integration"] = "integration"
    integration_type: str = "draft"
    generation_type: str = "draft"
    research_query: str = ""


class ActionConfig(_FrozenConfig):
    """Pause for a human decision, optionally notifying the case team."""

    type: Literal["action"] = "action"
    action_type: str = "default"


StepConfig = Annotated[
    Union[DisplayConfig, SynthesisConfig, GenerationConfig, IntegrationConfig, ActionConfig],
    Field(discriminator="type"),
]

_step_config_adapter: TypeAdapter[StepConfig] = TypeAdapter(StepConfig)


def parse_step_config(data: dict) -> StepConfig:
    """Validate a raw configuration mapping into its typed variant.

    The ``type`` key is matched case-insensitively so templates written as
    ``SYNTHESIS`` and ``synthesis`` are equivalent.
    """
    data = dict(data)
    if isinstance(data.get("type"), str):
        data["type"] = data["type"].lower()
    return _step_config_adapter.validate_python(data)


def step_type_of(config: StepConfig) -> StepType:
    return StepType(config.type)


class StepDefinition(BaseModel):
    """One entry of a workflow template."""

    model_config = ConfigDict(frozen=True)

    name: str
    config: StepConfig

    @property
    def step_type(self) -> StepType:
        return step_type_of(self.config)


class StepInput(BaseModel):
    """Snapshot of what a step operates on, written once when the run starts."""

    model_config = ConfigDict(frozen=True)

    document_ids: list[str] = Field(default_factory=list)
    config: StepConfig
