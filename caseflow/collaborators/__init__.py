"""External services consumed by the step handlers."""

from .base import (
    ActionItem,
    AnalysisStore,
    ArtifactSink,
    CaseDirectory,
    Collaborators,
    DocumentAnalysis,
    Notifier,
    TextGenerator,
    TimelineEvent,
)
from .inmemory import (
    InMemoryAnalysisStore,
    InMemoryArtifactSink,
    InMemoryCaseDirectory,
    InMemoryNotifier,
)

__all__ = [
    "ActionItem",
    "AnalysisStore",
    "ArtifactSink",
    "CaseDirectory",
    "Collaborators",
    "DocumentAnalysis",
    "InMemoryAnalysisStore",
    "InMemoryArtifactSink",
    "InMemoryCaseDirectory",
    "InMemoryNotifier",
    "Notifier",
    "TextGenerator",
    "TimelineEvent",
]
