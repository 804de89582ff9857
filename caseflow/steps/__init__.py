"""Step kinds, their configuration and typed results.

Handlers live in the submodules and are assembled by
:mod:`caseflow.steps.registry`.
"""

from .configs import (
    ActionConfig,
    DisplayConfig,
    GenerationConfig,
    IntegrationConfig,
    StepConfig,
    StepDefinition,
    StepInput,
    StepType,
    SynthesisConfig,
    parse_step_config,
)
from .results import StepResult, WaitForUser, parse_step_result

__all__ = [
    "ActionConfig",
    "DisplayConfig",
    "GenerationConfig",
    "IntegrationConfig",
    "StepConfig",
    "StepDefinition",
    "StepInput",
    "StepResult",
    "StepType",
    "SynthesisConfig",
    "WaitForUser",
    "parse_step_config",
    "parse_step_result",
]
