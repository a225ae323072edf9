"""
Pointer gesture interpretation for task bars.

A drag or resize is a series of ``propose`` calls while the pointer moves
(unsnapped, nothing changes) followed by one ``commit`` on release, which
snaps to a column boundary and goes through ScheduleModel like any other
edit.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from gantt_engine.exceptions import ValidationError
from gantt_engine.logging_config import get_logger
from gantt_engine.models import Task, TaskId
from gantt_engine.services.schedule import ScheduleModel
from gantt_engine.services.timeline import TimelineMapper

logger = get_logger(__name__)


class GestureMode(str, Enum):
    MOVE = "move"
    RESIZE = "resize"


class Edge(str, Enum):
    START = "start"
    END = "end"


@dataclass(frozen=True)
class Gesture:
    """Snapshot of the bar when the gesture began."""
    task_id: TaskId
    mode: GestureMode
    edge: Edge | None
    start: date
    end: date
    left: float
    right: float


@dataclass(frozen=True)
class Proposal:
    """Interim bar position and the dates it currently reads as."""
    left: float
    right: float
    start: datetime
    finish: datetime

    @property
    def width(self) -> float:
        return self.right - self.left


def _last_day(finish: datetime) -> date:
    """Inclusive last day of a bar finishing at ``finish``."""
    return (finish - timedelta(microseconds=1)).date()


class GestureController:
    def __init__(self, model: ScheduleModel, mapper: TimelineMapper):
        self.model = model
        self.mapper = mapper

    @property
    def column_width(self) -> float:
        return self.mapper.layout.base_width

    def begin_move(self, task_id: TaskId) -> Gesture:
        return self._begin(task_id, GestureMode.MOVE, None)

    def begin_resize(self, task_id: TaskId, edge: Edge | str = Edge.END) -> Gesture:
        edge = Edge(edge)
        task = self.model.tree.get(task_id)
        if task.is_milestone:
            raise ValidationError(f"Milestone {task_id} cannot be resized")
        return self._begin(task_id, GestureMode.RESIZE, edge)

    def _begin(self, task_id: TaskId, mode: GestureMode, edge: Edge | None) -> Gesture:
        tree = self.model.tree
        task = tree.get(task_id)
        if not tree.is_leaf(task_id):
            raise ValidationError(
                f"Task {task_id} is a parent; its bar follows its children and cannot be dragged"
            )
        span = tree.authored_span(task)
        if span.is_empty:
            raise ValidationError(f"Task {task_id} has no dates to drag")

        geometry = self.mapper.bar_geometry(span.start, span.end)
        return Gesture(
            task_id=task_id,
            mode=mode,
            edge=edge,
            start=span.start,
            end=span.end,
            left=geometry.left,
            right=geometry.right,
        )

    def _edges(self, gesture: Gesture, delta_px: float) -> tuple[float, float]:
        left, right = gesture.left, gesture.right
        if gesture.mode == GestureMode.MOVE:
            return left + delta_px, right + delta_px
        minimum = self.column_width
        if gesture.edge == Edge.START:
            return min(left + delta_px, right - minimum), right
        return left, max(right + delta_px, left + minimum)

    def propose(self, gesture: Gesture, delta_px: float) -> Proposal:
        """Where the bar is while the pointer moves; no state changes."""
        left, right = self._edges(gesture, delta_px)
        return Proposal(
            left=left,
            right=right,
            start=self.mapper.offset_to_date(left),
            finish=self.mapper.offset_to_date(right),
        )

    def commit(self, gesture: Gesture, delta_px: float) -> Task:
        """
        Snap the final position to column boundaries and apply it.

        A move keeps the task's duration; a resize sets both ends. Returns
        the task as stored after any cascade.
        """
        left, right = self._edges(gesture, delta_px)
        if gesture.mode == GestureMode.MOVE:
            left = self.mapper.snap_to_column(left)
            start = self.mapper.offset_to_date(left).date()
            if start == gesture.start:
                return self.model.tree.get(gesture.task_id)
            logger.debug(f"Move of task {gesture.task_id} committed at {start}")
            return self.model.update_task(gesture.task_id, {"start_date": start})

        left = self.mapper.snap_to_column(left)
        right = self.mapper.snap_to_column(right)
        if right - left < self.column_width:
            if gesture.edge == Edge.START:
                left = right - self.column_width
            else:
                right = left + self.column_width
        start = self.mapper.offset_to_date(left).date()
        end = max(_last_day(self.mapper.offset_to_date(right)), start)
        if (start, end) == (gesture.start, gesture.end):
            return self.model.tree.get(gesture.task_id)
        logger.debug(f"Resize of task {gesture.task_id} committed as {start}..{end}")
        return self.model.update_task(gesture.task_id, {"start_date": start, "end_date": end})
