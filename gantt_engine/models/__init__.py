from gantt_engine.models.task import Task, TaskId, TaskKind
from gantt_engine.models.link import Link, LinkType, make_link_id
from gantt_engine.models.scale import DateRange, TimeBucket, ZoomLevel, ZOOM_ORDER

__all__ = [
    "Task",
    "TaskId",
    "TaskKind",
    "Link",
    "LinkType",
    "make_link_id",
    "DateRange",
    "TimeBucket",
    "ZoomLevel",
    "ZOOM_ORDER",
]
