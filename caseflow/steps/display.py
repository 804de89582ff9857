from __future__ import annotations

import logging

from ..models import ExecutionContext
from .base import StepHandler, load_analyses
from .configs import DisplayConfig, StepInput, StepType
from .results import ActionItemView, AnalysisView, DisplayResult, TimelineEventView

logger = logging.getLogger(__name__)

ACTION_ITEM_MODES = {"action_items", "timeline", "full"}
TIMELINE_MODES = {"timeline", "full"}
UPCOMING_DEADLINE_LIMIT = 5


class DisplayHandler(StepHandler):
    """Surface stored analyses and, depending on the mode, their action items and timeline."""

    step_type = StepType.DISPLAY
    config_type = DisplayConfig

    async def execute(
        self, step_name: str, step_input: StepInput, context: ExecutionContext
    ) -> DisplayResult:
        config: DisplayConfig = self.config_of(step_input)
        store = self.collaborators.analyses
        analyses = await load_analyses(store, step_input.document_ids, context.tenant_id)
        analysis_ids = [a.id for a in analyses]

        result = DisplayResult(
            display_type=config.display_type,
            analysis_count=len(analyses),
            analyses=[
                AnalysisView(
                    document_id=a.document_id,
                    analysis_id=a.id,
                    file_name=a.file_name or "Unknown",
                    document_type=a.detected_type or "Unknown",
                    summary=a.summary or "",
                    key_findings=a.key_findings or "",
                    risk_level=a.risk_level or "",
                )
                for a in analyses
            ],
        )

        if config.display_type in ACTION_ITEM_MODES:
            try:
                items = await store.get_action_items(analysis_ids, context.tenant_id)
            except Exception as e:
                logger.warning(f"Could not load action items for step '{step_name}': {e}")
                items = []
            result.action_items = [
                ActionItemView(
                    id=item.id,
                    title=item.description,
                    description=item.description,
                    priority=item.priority,
                    status=item.status,
                    deadline=item.deadline.isoformat() if item.deadline else None,
                    category=item.category,
                )
                for item in items
            ]
            result.action_item_count = len(result.action_items)

        if config.display_type in TIMELINE_MODES:
            try:
                events = await store.get_timeline_events(analysis_ids, context.tenant_id)
            except Exception as e:
                logger.warning(f"Could not load timeline events for step '{step_name}': {e}")
                events = []
            views = [
                TimelineEventView(
                    id=event.id,
                    title=event.title,
                    description=event.description,
                    event_type=event.event_type,
                    event_date=event.event_date.isoformat() if event.event_date else None,
                    is_deadline=event.event_type == "DEADLINE",
                )
                for event in events
            ]
            result.timeline_events = views
            result.timeline_event_count = len(views)
            result.upcoming_deadlines = [v for v in views if v.is_deadline][:UPCOMING_DEADLINE_LIMIT]

        return result
