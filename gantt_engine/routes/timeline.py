"""
Timeline routes: scale buckets, bar placement and date <-> offset conversion.
"""

from datetime import date, datetime

from fastapi import APIRouter, Depends

from gantt_engine.exceptions import ValidationError
from gantt_engine.logging_config import get_logger
from gantt_engine.models import DateRange
from gantt_engine.schemas import BarRead, BucketRead, OffsetRead, TimelineRead, ZoomChange
from gantt_engine.services.timeline import TimelineMapper
from gantt_engine.workspace import Workspace, get_workspace

logger = get_logger(__name__)

router = APIRouter()


def _range(ws: Workspace, start: date | None, end: date | None) -> DateRange:
    if start is not None and end is not None:
        return DateRange(start, end)
    default = ws.default_range()
    return DateRange(start or default.start, end or default.end)


def _buckets(mapper: TimelineMapper, buckets) -> list[BucketRead]:
    return [
        BucketRead(
            unit=bucket.unit,
            label=bucket.label,
            start=bucket.start,
            end=bucket.end,
            contained_day_count=bucket.contained_day_count,
            width=mapper.layout.width_of(bucket),
            is_today=bucket.is_today,
            is_weekend=bucket.is_weekend,
        )
        for bucket in buckets
    ]


@router.get("/", response_model=TimelineRead)
async def get_timeline(
    start: date | None = None,
    end: date | None = None,
    container_width: float | None = None,
    ws: Workspace = Depends(get_workspace),
) -> TimelineRead:
    """Header scale rows for the current zoom level, coarsest first."""
    date_range = _range(ws, start, end)
    mapper = ws.mapper(date_range, container_width)
    scales = ws.scale.build_scales(date_range)
    return TimelineRead(
        zoom_level=ws.scale.zoom_level,
        start=date_range.start,
        end=date_range.end,
        column_width=mapper.layout.base_width,
        total_width=mapper.total_width,
        scales=[_buckets(mapper, row) for row in scales],
    )


@router.post("/zoom")
async def change_zoom(change: ZoomChange, ws: Workspace = Depends(get_workspace)) -> dict:
    if change.level is not None:
        level = ws.scale.set_zoom_level(change.level)
    elif change.direction == "in":
        level = ws.scale.zoom_in()
    elif change.direction == "out":
        level = ws.scale.zoom_out()
    else:
        raise ValidationError("Give either a zoom level or a direction of 'in' or 'out'")
    ws.view.zoom_level = level
    logger.info(f"Zoom level set to {level.value}")
    return {"zoom_level": level.value}


@router.get("/bars", response_model=list[BarRead])
async def get_bars(
    start: date | None = None,
    end: date | None = None,
    container_width: float | None = None,
    ws: Workspace = Depends(get_workspace),
) -> list[BarRead]:
    """Bar placement for every visible, scheduled row."""
    mapper = ws.mapper(_range(ws, start, end), container_width)
    tree = ws.model.tree
    bars = []
    for row, task in enumerate(ws.view.visible_rows(tree)):
        span = tree.get_effective_dates(task.id)
        if span.is_empty:
            continue
        geometry = mapper.bar_geometry(span.start, span.end, milestone=task.is_milestone and tree.is_leaf(task.id))
        bars.append(BarRead(task_id=task.id, row=row, left=geometry.left, width=geometry.width))
    return bars


@router.get("/offset", response_model=OffsetRead)
async def date_to_offset(
    value: datetime,
    start: date | None = None,
    end: date | None = None,
    container_width: float | None = None,
    ws: Workspace = Depends(get_workspace),
) -> OffsetRead:
    mapper = ws.mapper(_range(ws, start, end), container_width)
    offset = mapper.date_to_offset(value)
    return OffsetRead(date=value, offset=offset, snapped=mapper.snap_to_column(offset))


@router.get("/date", response_model=OffsetRead)
async def offset_to_date(
    offset: float,
    start: date | None = None,
    end: date | None = None,
    container_width: float | None = None,
    ws: Workspace = Depends(get_workspace),
) -> OffsetRead:
    mapper = ws.mapper(_range(ws, start, end), container_width)
    return OffsetRead(
        date=mapper.offset_to_date(offset),
        offset=offset,
        snapped=mapper.snap_to_column(offset),
    )
