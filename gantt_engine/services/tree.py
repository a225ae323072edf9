"""
Hierarchical task store.

Owns the task records and the ordered child lists. Parent dates are never
stored as the source of truth: ``get_effective_dates`` derives them on demand
as the envelope of the subtree, so any mutation order yields consistent
results.

Every mutation validates fully before touching state; a failed call leaves
the tree exactly as it was.
"""

import math
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Callable, Iterable, Mapping

import networkx as nx
from pydantic import ValidationError as PydanticValidationError

from gantt_engine.exceptions import (
    CycleDetectedError,
    DuplicateIdError,
    NotFoundError,
    SelfParentError,
    ValidationError,
)
from gantt_engine.logging_config import get_logger
from gantt_engine.models import Task, TaskId, TaskKind
from gantt_engine.services.calendar import WorkCalendar

logger = get_logger(__name__)

TEMPORAL_FIELDS = frozenset({"start_date", "end_date", "duration", "kind"})

DEFAULT_SEARCH_FIELDS = ("name", "text", "description")


@dataclass(frozen=True)
class DateSpan:
    """Inclusive start/end days. Either end is None for an unscheduled task."""
    start: date | None = None
    end: date | None = None

    @property
    def is_empty(self) -> bool:
        return self.start is None or self.end is None

    def shifted(self, days: int) -> "DateSpan":
        if self.is_empty or not days:
            return self
        delta = timedelta(days=days)
        return DateSpan(self.start + delta, self.end + delta)


@dataclass
class ValidationReport:
    valid: bool = True
    errors: list[str] = field(default_factory=list)


def coerce_task(record: Task | Mapping[str, Any]) -> Task:
    """Validate a record into a Task, raising the engine's ValidationError."""
    if isinstance(record, Task):
        return record
    try:
        return Task.model_validate(record)
    except PydanticValidationError as exc:
        raise ValidationError(
            "Invalid task",
            details=[
                {"loc": [str(part) for part in err["loc"]], "msg": err["msg"], "type": err["type"]}
                for err in exc.errors()
            ],
        )


class TaskTree:
    """Task records keyed by id, plus the display-ordered child list of every node."""

    def __init__(self, calendar: WorkCalendar | None = None):
        self.calendar = calendar or WorkCalendar()
        self._tasks: dict[TaskId, Task] = {}
        # None holds the root list
        self._children: dict[TaskId | None, list[TaskId]] = {None: []}

    # =========================================================================
    # Lookup
    # =========================================================================

    def __contains__(self, task_id) -> bool:
        return task_id in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self):
        return iter(self.flatten())

    def count(self) -> int:
        return len(self._tasks)

    def ids(self) -> list[TaskId]:
        return list(self._tasks)

    def get(self, task_id: TaskId) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def find(self, task_id: TaskId) -> Task | None:
        return self._tasks.get(task_id)

    def roots(self) -> list[Task]:
        return [self._tasks[child] for child in self._children[None]]

    def children_ids(self, task_id: TaskId | None) -> list[TaskId]:
        if task_id is not None:
            self.get(task_id)
        return list(self._children.get(task_id, []))

    def get_children(self, task_id: TaskId) -> list[Task]:
        return [self._tasks[child] for child in self.children_ids(task_id)]

    def get_parent(self, task_id: TaskId) -> Task | None:
        parent = self.get(task_id).parent
        return self._tasks.get(parent) if parent is not None else None

    def is_leaf(self, task_id: TaskId) -> bool:
        return not self._children.get(task_id)

    def ancestors(self, task_id: TaskId) -> list[TaskId]:
        """Parent chain, nearest first."""
        chain = []
        parent = self.get(task_id).parent
        while parent is not None:
            chain.append(parent)
            parent = self._tasks[parent].parent
        return chain

    def descendants(self, task_id: TaskId) -> list[TaskId]:
        """Subtree ids below ``task_id``, depth-first in display order."""
        result = []
        stack = list(reversed(self.children_ids(task_id)))
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self._children.get(current, [])))
        return result

    def is_ancestor(self, ancestor_id: TaskId, task_id: TaskId) -> bool:
        if ancestor_id not in self._tasks or task_id not in self._tasks:
            return False
        return ancestor_id in self.ancestors(task_id)

    def depth(self, task_id: TaskId) -> int:
        return len(self.ancestors(task_id))

    def effective_kind(self, task_id: TaskId) -> TaskKind:
        if not self.is_leaf(task_id):
            return TaskKind.PROJECT
        return self.get(task_id).kind

    def as_graph(self) -> nx.DiGraph:
        """Containment graph with parent -> child edges."""
        graph = nx.DiGraph()
        graph.add_nodes_from(self._tasks)
        for parent, children in self._children.items():
            if parent is None:
                continue
            graph.add_edges_from((parent, child) for child in children)
        return graph

    # =========================================================================
    # Dates
    # =========================================================================

    def normalize(self, task: Task) -> Task:
        """Fill in whichever of end_date/duration can be derived from the others."""
        updates: dict[str, Any] = {}
        if task.start_date is not None:
            end = task.end_date
            if end is None and task.duration is not None:
                end = updates["end_date"] = self.calendar.end_for_duration(task.start_date, task.duration)
            if end is not None:
                duration = self.calendar.count_days(task.start_date, end)
                if duration != task.duration:
                    updates["duration"] = duration
        return task.model_copy(update=updates) if updates else task

    @staticmethod
    def authored_span(task: Task) -> DateSpan:
        """The task's own dates; a milestone always occupies exactly its start day."""
        if task.is_milestone and task.start_date is not None:
            return DateSpan(task.start_date, task.start_date)
        return DateSpan(task.start_date, task.end_date)

    def get_effective_dates(
        self,
        task_id: TaskId,
        overrides: Mapping[TaskId, DateSpan] | None = None,
    ) -> DateSpan:
        """
        Effective start/end of a task.

        A leaf returns its own dates. A parent returns the min start / max end
        over its children's effective dates, recursively; dates authored on
        the parent itself take part in the envelope. ``overrides`` replaces
        the authored span of individual tasks (used for previews).
        """
        task = self.get(task_id)
        overrides = overrides or {}
        own = overrides.get(task_id) or self.authored_span(task)
        children = self._children.get(task_id)
        if not children:
            return own

        starts = [own.start] if own.start else []
        ends = [own.end] if own.end else []
        for child in children:
            span = self.get_effective_dates(child, overrides)
            if span.start:
                starts.append(span.start)
            if span.end:
                ends.append(span.end)
        return DateSpan(min(starts) if starts else None, max(ends) if ends else None)

    def duration_of(self, task_id: TaskId) -> int:
        """Included days of the effective span; milestones are always one day."""
        if self.effective_kind(task_id) == TaskKind.MILESTONE:
            return 1
        span = self.get_effective_dates(task_id)
        if span.is_empty:
            return 0
        return self.calendar.count_days(span.start, span.end)

    def apply_spans(self, spans: Mapping[TaskId, DateSpan]) -> None:
        """Write new authored dates; callers have already validated every span."""
        for task_id, span in spans.items():
            task = self.get(task_id)
            end = span.start if task.is_milestone else span.end
            self._tasks[task_id] = self.normalize(
                task.model_copy(update={"start_date": span.start, "end_date": end})
            )

    # =========================================================================
    # Mutation
    # =========================================================================

    def load(self, records: Iterable[Task | Mapping[str, Any]]) -> list[Task]:
        """
        Replace the whole tree in one step.

        Child order follows record order. Duplicate ids, self-parenting,
        unknown parents and parent loops are all rejected before anything is
        replaced.
        """
        tasks: dict[TaskId, Task] = {}
        order: list[TaskId] = []
        for record in records:
            task = self.normalize(coerce_task(record))
            if task.id in tasks:
                raise DuplicateIdError(task.id)
            if task.parent == task.id:
                raise SelfParentError(task.id)
            tasks[task.id] = task
            order.append(task.id)

        children: dict[TaskId | None, list[TaskId]] = {None: []}
        for task_id in order:
            parent = tasks[task_id].parent
            if parent is not None and parent not in tasks:
                raise NotFoundError("Parent task", parent)
            children.setdefault(parent, []).append(task_id)

        for task_id in order:
            path = [task_id]
            parent = tasks[task_id].parent
            while parent is not None:
                if parent in path:
                    raise CycleDetectedError(task_id, parent, kind="tree", path=path + [parent])
                path.append(parent)
                parent = tasks[parent].parent

        self._tasks = tasks
        self._children = children
        logger.info(f"Loaded {len(tasks)} tasks")
        return [tasks[task_id] for task_id in order]

    def add(self, record: Task | Mapping[str, Any]) -> Task:
        """Insert a task as the first child of its parent (or first root)."""
        task = self.normalize(coerce_task(record))
        if task.id in self._tasks:
            raise DuplicateIdError(task.id)
        if task.parent == task.id:
            raise SelfParentError(task.id)
        if task.parent is not None and task.parent not in self._tasks:
            raise NotFoundError("Parent task", task.parent)

        self._tasks[task.id] = task
        self._children.setdefault(task.parent, []).insert(0, task.id)
        return task

    def prepare_update(self, task_id: TaskId, changes: Mapping[str, Any]) -> Task:
        """
        Validate a partial update without applying it.

        Moving the start or changing the duration keeps the other and
        recomputes the end; an explicit end recomputes the duration.
        """
        task = self.get(task_id)
        changes = dict(changes)
        if changes.get("id", task_id) != task_id:
            raise ValidationError("Task id cannot be changed")

        if "type" in changes:
            changes["kind"] = changes.pop("type")
        data = task.model_dump()
        data.update(changes)
        if "end_date" not in changes and ({"start_date", "duration"} & changes.keys()):
            if data.get("duration") is not None:
                data["end_date"] = None
        updated = self.normalize(coerce_task(data))

        if updated.parent != task.parent:
            self._check_parent(task_id, updated.parent)
        return updated

    def update(self, task_id: TaskId, changes: Mapping[str, Any]) -> Task:
        """Merge ``changes`` into the task. A changed parent is a move (appended last)."""
        updated = self.prepare_update(task_id, changes)
        previous = self._tasks[task_id]
        if updated.parent != previous.parent:
            self._detach(task_id, previous.parent)
            self._children.setdefault(updated.parent, []).append(task_id)
        self._tasks[task_id] = updated
        return updated

    def delete(self, task_id: TaskId) -> list[TaskId]:
        """Remove a task and its subtree; returns every removed id, the task first."""
        task = self.get(task_id)
        removed = [task_id] + self.descendants(task_id)
        self._detach(task_id, task.parent)
        for removed_id in removed:
            self._tasks.pop(removed_id, None)
            self._children.pop(removed_id, None)
        return removed

    def move(self, task_id: TaskId, new_parent: TaskId | None, index: int | None = None) -> Task:
        """
        Re-parent a task (None moves it to the root list).

        The task is appended to the new sibling list unless ``index`` gives
        a position.
        """
        task = self.get(task_id)
        new_parent = new_parent or None
        self._check_parent(task_id, new_parent)

        self._detach(task_id, task.parent)
        siblings = self._children.setdefault(new_parent, [])
        if index is None:
            siblings.append(task_id)
        else:
            siblings.insert(max(0, min(index, len(siblings))), task_id)

        moved = task.model_copy(update={"parent": new_parent})
        self._tasks[task_id] = moved
        return moved

    def _check_parent(self, task_id: TaskId, new_parent: TaskId | None) -> None:
        if new_parent is None:
            return
        if new_parent not in self._tasks:
            raise NotFoundError("Parent task", new_parent)
        if new_parent == task_id or new_parent in self.descendants(task_id):
            path = [task_id] + list(reversed(self._path_down(task_id, new_parent)))
            raise CycleDetectedError(task_id, new_parent, kind="tree", path=path)

    def _path_down(self, ancestor_id: TaskId, task_id: TaskId) -> list[TaskId]:
        path = []
        current = task_id
        while current is not None and current != ancestor_id:
            path.append(current)
            current = self._tasks[current].parent
        return path

    def _detach(self, task_id: TaskId, parent: TaskId | None) -> None:
        siblings = self._children.get(parent, [])
        if task_id in siblings:
            siblings.remove(task_id)

    # =========================================================================
    # Traversal and queries
    # =========================================================================

    def flatten(self, expanded: Callable[[TaskId], bool] | None = None) -> list[Task]:
        """
        Depth-first, parent-before-children sequence in sibling order.

        With ``expanded`` given, children of nodes it rejects are skipped
        (the row order for rendering a partially collapsed tree).
        """
        result = []
        stack = list(reversed(self._children[None]))
        while stack:
            current = stack.pop()
            result.append(self._tasks[current])
            if expanded is None or expanded(current):
                stack.extend(reversed(self._children.get(current, [])))
        return result

    def sort(self, field_name: str, ascending: bool = True) -> None:
        """Reorder every sibling list by a task field; tasks missing the field go last."""
        def key(task_id):
            value = getattr(self._tasks[task_id], field_name, None)
            return (value is None, value if value is not None else 0)

        for parent, siblings in self._children.items():
            present = [task_id for task_id in siblings if key(task_id)[0] is False]
            missing = [task_id for task_id in siblings if key(task_id)[0] is True]
            present.sort(key=lambda task_id: key(task_id)[1], reverse=not ascending)
            self._children[parent] = present + missing

    def filter(self, predicate: Callable[[Task], bool]) -> list[Task]:
        return [task for task in self.flatten() if predicate(task)]

    def search(self, query: str, fields: Iterable[str] = DEFAULT_SEARCH_FIELDS) -> list[Task]:
        """Case-insensitive substring match over the given fields, in flatten order."""
        if not query:
            return self.flatten()
        needle = query.lower()
        fields = tuple(fields)

        def matches(task: Task) -> bool:
            for name in fields:
                value = getattr(task, name, None)
                if value and needle in str(value).lower():
                    return True
            return False

        return self.filter(matches)

    def tasks_in_range(self, start: date, end: date) -> list[Task]:
        """Tasks whose effective span overlaps [start, end]."""
        def overlaps(task: Task) -> bool:
            span = self.get_effective_dates(task.id)
            return not span.is_empty and span.start <= end and span.end >= start

        return self.filter(overlaps)

    def rollup_progress(self, task_id: TaskId) -> float:
        """Own progress for a leaf; the rounded mean of the children's rollups for a parent."""
        children = self._children.get(task_id)
        if not children:
            return self.get(task_id).progress
        total = sum(self.rollup_progress(child) for child in children)
        return math.floor(total / len(children) + 0.5)

    def validate(self) -> ValidationReport:
        """Report leaves that cannot be placed on the timeline."""
        report = ValidationReport()
        for task in self.flatten():
            if self.is_leaf(task.id) and task.start_date is None:
                report.errors.append(f"Task {task.id}: no start_date")
            elif self.is_leaf(task.id) and task.end_date is None and not task.is_milestone:
                report.errors.append(f"Task {task.id}: no end_date or duration")
        report.valid = not report.errors
        return report

    def copy(self) -> "TaskTree":
        """Independent tree with the same records (records are replaced, never mutated)."""
        clone = TaskTree(self.calendar)
        clone._tasks = dict(self._tasks)
        clone._children = {parent: list(children) for parent, children in self._children.items()}
        return clone
