from datetime import date, datetime

from pydantic import BaseModel

from gantt_engine.models import TaskId, ZoomLevel


class BucketRead(BaseModel):
    """One timeline column."""
    unit: ZoomLevel
    label: str
    start: datetime
    end: datetime
    contained_day_count: int
    width: float
    is_today: bool
    is_weekend: bool


class TimelineRead(BaseModel):
    """Header rows (coarsest first) plus the grid geometry of the bottom row."""
    zoom_level: ZoomLevel
    start: date
    end: date
    column_width: float
    total_width: float
    scales: list[list[BucketRead]]


class BarRead(BaseModel):
    task_id: TaskId
    row: int
    left: float
    width: float


class OffsetRead(BaseModel):
    date: datetime
    offset: float
    snapped: float


class ZoomChange(BaseModel):
    level: ZoomLevel | None = None
    direction: str | None = None  # "in" | "out"
