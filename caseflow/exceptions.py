"""Exception hierarchy for caseflow."""

from __future__ import annotations


class CaseflowError(Exception):
    """Base class for all caseflow errors."""


class NotFoundOrAccessDenied(CaseflowError):
    """Raised when a record does not exist or belongs to another tenant.

    Both cases produce the same error so a caller cannot probe for the
    existence of another tenant's records.
    """


class InvalidTemplateError(CaseflowError):
    """Raised when a workflow template cannot be turned into an execution."""


class StepNotWaitingError(CaseflowError):
    """Raised when resuming a step that is not paused for user input."""


class ConcurrentModificationError(CaseflowError):
    """Raised when a record was changed by someone else since it was read."""

    def __init__(self, kind: str, record_id: str, expected_version: int) -> None:
        super().__init__(
            f"{kind} {record_id} was modified concurrently (expected version {expected_version})"
        )
        self.kind = kind
        self.record_id = record_id
        self.expected_version = expected_version


class ExternalServiceError(CaseflowError):
    """Raised when a collaborator (generation backend, artifact sink, ...) fails."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
