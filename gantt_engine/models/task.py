from datetime import date
from enum import Enum
from typing import Union

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

TaskId = Union[int, str]


class TaskKind(str, Enum):
    """The three task variants; a task with children always behaves as PROJECT."""

    TASK = "task"
    MILESTONE = "milestone"
    PROJECT = "project"


class Task(BaseModel):
    """
    One schedule item.

    Key fields:
    - start_date/end_date: inclusive calendar days. Optional on parents, whose
      effective dates are derived from their subtree.
    - duration: included days between start and end, honoring the weekend
      policy of the owning tree. Filled in by the tree when only two of
      start/end/duration are supplied.
    - parent: None (or any falsy value) means a root task.
    - kind: "task" | "milestone" | "project". Also accepted as ``type``.
    """

    id: TaskId
    name: str = ""
    start_date: date | None = None
    end_date: date | None = None
    duration: int | None = Field(default=None, ge=0)
    parent: TaskId | None = None
    progress: float = 0
    kind: TaskKind = Field(default=TaskKind.TASK, validation_alias=AliasChoices("kind", "type"))
    is_open: bool | None = None

    # Host-specific fields (color, resource, text, ...) ride along untouched
    model_config = {"extra": "allow", "populate_by_name": True}

    @field_validator("parent", mode="before")
    @classmethod
    def _falsy_parent_is_root(cls, value):
        return value or None

    @field_validator("progress", mode="before")
    @classmethod
    def _clamp_progress(cls, value):
        if value is None:
            return 0
        return max(0, min(100, float(value)))

    @model_validator(mode="after")
    def _check_dates(self) -> "Task":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError(f"end_date {self.end_date} is before start_date {self.start_date}")
        return self

    @property
    def is_milestone(self) -> bool:
        return self.kind == TaskKind.MILESTONE

    @property
    def is_scheduled(self) -> bool:
        return self.start_date is not None and self.end_date is not None
