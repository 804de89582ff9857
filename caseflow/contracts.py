"""Message contracts exchanged between the service and workflow workers."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RUN_TOPIC = "caseflow.workflow.run"


class TenantContext(BaseModel):
    """Identity of the caller, passed explicitly across every boundary.

    Background workers never inherit the caller's ambient state, so the
    tenant travels inside each :class:`RunRequest` and is handed to the
    orchestrator as a parameter.
    """

    model_config = ConfigDict(frozen=True)

    tenant_id: str
    user_id: Optional[str] = None


class RunRequest(BaseModel):
    """Envelope asking a worker to run (or continue) one execution."""

    message_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    execution_id: str
    tenant: TenantContext
    reason: Literal["start", "resume"] = "start"
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    spec_version: str = "1.0"

    def to_json(self) -> str:
        """Serialize message to JSON."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> "RunRequest":
        """Deserialize message from JSON."""
        return cls.model_validate_json(data)
