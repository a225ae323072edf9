from gantt_engine.schemas.task import (
    ScheduleLoad,
    ScheduleLoadResult,
    SimulationRead,
    SimulationRequest,
    TaskChangeIn,
    TaskCreate,
    TaskImpactRead,
    TaskMove,
    TaskRead,
    TaskUpdate,
)
from gantt_engine.schemas.link import LinkCreate, LinkRead, LinkValidationRead
from gantt_engine.schemas.timeline import BarRead, BucketRead, OffsetRead, TimelineRead, ZoomChange

__all__ = [
    "ScheduleLoad",
    "ScheduleLoadResult",
    "SimulationRead",
    "SimulationRequest",
    "TaskChangeIn",
    "TaskImpactRead",
    "TaskCreate",
    "TaskUpdate",
    "TaskMove",
    "TaskRead",
    "LinkCreate",
    "LinkRead",
    "LinkValidationRead",
    "BarRead",
    "BucketRead",
    "OffsetRead",
    "TimelineRead",
    "ZoomChange",
]
