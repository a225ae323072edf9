"""
In-memory workspace shared by the HTTP routes.

Holds one schedule, its view state and the scale engine for the lifetime of
the process. Nothing is persisted.
"""

from datetime import date, timedelta
from functools import lru_cache

from gantt_engine.config import Settings, get_settings
from gantt_engine.exceptions import NotFoundError
from gantt_engine.logging_config import get_logger
from gantt_engine.models import DateRange, TaskId
from gantt_engine.services.events import Event
from gantt_engine.services.scale import ScaleEngine
from gantt_engine.services.schedule import ScheduleModel
from gantt_engine.services.timeline import TimelineMapper
from gantt_engine.services.view import ViewState

logger = get_logger(__name__)

# Days shown around the schedule when the caller gives no range
RANGE_PADDING = 7
EMPTY_RANGE_DAYS = 30


class Workspace:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.model = ScheduleModel.from_settings(self.settings)
        self.view = ViewState(start_collapsed=self.settings.collapse)
        self.scale = ScaleEngine.from_settings(self.settings)
        self.view.zoom_level = self.scale.zoom_level

        for event in (Event.TASK_ADDED, Event.TASK_DELETED, Event.TASKS_LOADED):
            self.model.events.on(event, self._sync_view)

    def _sync_view(self, payload) -> None:
        self.view.sync(self.model.tree)

    def resolve_task_id(self, raw) -> TaskId:
        """Map a path parameter back to the stored id, which may be an int."""
        tree = self.model.tree
        if raw in tree:
            return raw
        text = str(raw)
        if text in tree:
            return text
        if text.lstrip("-").isdigit() and int(text) in tree:
            return int(text)
        raise NotFoundError("Task", raw)

    def default_range(self, today: date | None = None) -> DateRange:
        """Effective extent of all tasks, padded; a month from today for an empty schedule."""
        tree = self.model.tree
        starts, ends = [], []
        for task in tree.roots():
            span = tree.get_effective_dates(task.id)
            if not span.is_empty:
                starts.append(span.start)
                ends.append(span.end)
        if not starts:
            first = today or date.today()
            return DateRange(first, first + timedelta(days=EMPTY_RANGE_DAYS))
        padding = timedelta(days=RANGE_PADDING)
        return DateRange(min(starts) - padding, max(ends) + padding)

    def mapper(self, date_range: DateRange, container_width: float | None = None) -> TimelineMapper:
        return TimelineMapper.for_range(
            self.scale,
            date_range,
            container_width=container_width,
            strict=self.settings.strict_offsets,
        )


@lru_cache()
def get_workspace() -> Workspace:
    """Process-wide workspace; tests swap it out through dependency overrides."""
    logger.info("Creating in-memory workspace")
    return Workspace()
