"""Workflow templates: read-only step sequences an execution is created from."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import InvalidTemplateError
from .steps.configs import StepDefinition, parse_step_config


class WorkflowTemplate(BaseModel):
    """Ordered step definitions. ``organization_id`` is ``None`` for system templates."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: Optional[str] = None
    organization_id: Optional[str] = None
    steps: list[StepDefinition] = Field(default_factory=list)

    def visible_to(self, tenant_id: str) -> bool:
        return self.organization_id is None or self.organization_id == tenant_id

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WorkflowTemplate":
        """Build a template from its mapping form.

        Each step is a flat mapping holding ``name``, ``type`` and the
        type-specific options, e.g. ``{"name": "Risks", "type": "synthesis",
        "synthesis_type": "risk_matrix"}``.
        """
        data = dict(data)
        raw_steps = data.pop("steps", None) or []
        try:
            steps = []
            for index, raw in enumerate(raw_steps, start=1):
                raw = dict(raw)
                name = raw.pop("name", None) or f"Step {index}"
                steps.append(StepDefinition(name=name, config=parse_step_config(raw)))
            return cls(steps=steps, **data)
        except (ValidationError, TypeError, ValueError) as e:
            raise InvalidTemplateError(
                f"Invalid template {data.get('id', '<unknown>')}: {e}"
            ) from e


class TemplateRepository(Protocol):
    async def get_template(
        self, template_id: str, tenant_id: str
    ) -> Optional[WorkflowTemplate]:
        """Return the template if it exists and is visible to ``tenant_id``."""

    async def list_templates(self, tenant_id: str) -> list[WorkflowTemplate]:
        """System templates plus those owned by ``tenant_id``."""


class InMemoryTemplateRepository:
    def __init__(self, templates: Iterable[WorkflowTemplate] = ()) -> None:
        self._templates: dict[str, WorkflowTemplate] = {}
        for template in templates:
            self.add(template)

    def add(self, template: WorkflowTemplate) -> None:
        self._templates[template.id] = template

    async def get_template(
        self, template_id: str, tenant_id: str
    ) -> Optional[WorkflowTemplate]:
        template = self._templates.get(template_id)
        if template is None or not template.visible_to(tenant_id):
            return None
        return template

    async def list_templates(self, tenant_id: str) -> list[WorkflowTemplate]:
        return sorted(
            (t for t in self._templates.values() if t.visible_to(tenant_id)),
            key=lambda t: t.name,
        )


def load_templates(path: str | Path) -> list[WorkflowTemplate]:
    """Read templates from a YAML file with a top-level ``templates`` list."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict) or not isinstance(data.get("templates", []), list):
        raise InvalidTemplateError(f"{path}: expected a mapping with a 'templates' list")
    return [WorkflowTemplate.from_dict(entry) for entry in data.get("templates", [])]
