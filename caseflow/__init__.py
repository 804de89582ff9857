"""caseflow: resumable multi-step workflow execution for case documents."""

from .contracts import RunRequest, TenantContext
from .dispatch import WorkflowDispatcher
from .engine import Engine, build_engine
from .exceptions import (
    CaseflowError,
    ConcurrentModificationError,
    ExternalServiceError,
    InvalidTemplateError,
    NotFoundOrAccessDenied,
    StepNotWaitingError,
)
from .models import (
    ExecutionSnapshot,
    ExecutionStatus,
    StepExecution,
    StepStatus,
    WorkflowExecution,
)
from .orchestrator import Orchestrator
from .persistence import get_repository
from .service import WorkflowService
from .templates import InMemoryTemplateRepository, WorkflowTemplate, load_templates
from .transports import get_transport
from .worker import WorkflowWorker

__version__ = "0.1.0"
__all__ = [
    "CaseflowError",
    "ConcurrentModificationError",
    "Engine",
    "ExecutionSnapshot",
    "ExecutionStatus",
    "ExternalServiceError",
    "InMemoryTemplateRepository",
    "InvalidTemplateError",
    "NotFoundOrAccessDenied",
    "Orchestrator",
    "RunRequest",
    "StepExecution",
    "StepNotWaitingError",
    "StepStatus",
    "TenantContext",
    "WorkflowDispatcher",
    "WorkflowExecution",
    "WorkflowService",
    "WorkflowTemplate",
    "WorkflowWorker",
    "build_engine",
    "get_repository",
    "get_transport",
    "load_templates",
]
