from datetime import date

from pydantic import BaseModel, Field

from gantt_engine.models import TaskId, TaskKind


class TaskCreate(BaseModel):
    """Schema for creating a new task."""
    id: TaskId
    name: str = ""
    start_date: date | None = None
    end_date: date | None = None
    duration: int | None = Field(default=None, ge=0)
    parent: TaskId | None = None
    progress: float = 0
    kind: TaskKind = TaskKind.TASK
    is_open: bool | None = None

    model_config = {"extra": "allow"}


class TaskUpdate(BaseModel):
    """Schema for updating a task. Only the fields sent are changed."""
    name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    duration: int | None = Field(default=None, ge=0)
    parent: TaskId | None = None
    progress: float | None = None
    kind: TaskKind | None = None

    model_config = {"extra": "allow"}


class TaskMove(BaseModel):
    """Schema for re-parenting a task."""
    parent: TaskId | None = None
    index: int | None = Field(default=None, ge=0)


class TaskRead(BaseModel):
    """
    One task row as the chart renders it.

    Dates, duration, kind and progress are the effective values: derived from
    the subtree for parents.
    """
    id: TaskId
    name: str
    start_date: date | None
    end_date: date | None
    duration: int
    parent: TaskId | None
    progress: float
    kind: TaskKind
    depth: int
    has_children: bool
    is_open: bool

    @classmethod
    def from_tree(cls, tree, task, view=None) -> "TaskRead":
        span = tree.get_effective_dates(task.id)
        return cls(
            id=task.id,
            name=task.name,
            start_date=span.start,
            end_date=span.end,
            duration=tree.duration_of(task.id),
            parent=task.parent,
            progress=tree.rollup_progress(task.id),
            kind=tree.effective_kind(task.id),
            depth=tree.depth(task.id),
            has_children=not tree.is_leaf(task.id),
            is_open=view.is_expanded(task.id) if view is not None else bool(task.is_open),
        )


class ScheduleLoad(BaseModel):
    """Schema for replacing the whole schedule in one step."""
    tasks: list[dict]
    links: list[dict] = []
    strict_links: bool = False


class ScheduleLoadResult(BaseModel):
    tasks: int
    links: int
    valid: bool
    errors: list[str]


class TaskChangeIn(BaseModel):
    """A hypothetical change for what-if simulation."""
    task_id: TaskId
    start_date: date | None = None
    duration: int | None = Field(default=None, ge=0)


class SimulationRequest(BaseModel):
    changes: list[TaskChangeIn]


class TaskImpactRead(BaseModel):
    task_id: TaskId
    name: str
    original_start: date
    original_end: date
    simulated_start: date
    simulated_end: date
    delta_days: int


class SimulationRead(BaseModel):
    original_end_date: date | None
    simulated_end_date: date | None
    impact_days: int
    affected_tasks: list[TaskImpactRead]
    total_tasks: int
