"""
ScheduleModel: the single entry point for committed mutations.

Every mutation is validated, and its auto-scheduling cascade computed, on
staged copies before the live tree or link graph changes. The live state is
then updated in one step and change notifications are emitted.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from gantt_engine.logging_config import get_logger
from gantt_engine.models import Link, LinkType, Task, TaskId
from gantt_engine.services.calendar import WorkCalendar
from gantt_engine.services.events import Event, EventBus
from gantt_engine.services.graph import LinkGraph, LinkValidation
from gantt_engine.services.recalc import AutoScheduler, ScheduleResult
from gantt_engine.services.tree import TEMPORAL_FIELDS, DateSpan, TaskTree, ValidationReport

logger = get_logger(__name__)

# Changing any of these can move a task (or its parent's envelope)
CASCADE_FIELDS = TEMPORAL_FIELDS | {"type", "parent"}


@dataclass
class ModelValidation:
    tasks: ValidationReport
    links: list[LinkValidation] = field(default_factory=list)

    @property
    def dangling_links(self) -> list[LinkValidation]:
        return [link for link in self.links if not link.valid]

    @property
    def valid(self) -> bool:
        return self.tasks.valid and not self.dangling_links


class ScheduleModel:
    """Tasks and links of one schedule, plus the policy applied when they change."""

    def __init__(
        self,
        calendar: WorkCalendar | None = None,
        events: EventBus | None = None,
        auto_schedule: bool = True,
    ):
        self.calendar = calendar or WorkCalendar()
        self.events = events or EventBus()
        self.auto_schedule = auto_schedule
        self._attach(TaskTree(self.calendar), None)

    @classmethod
    def from_settings(cls, settings, events: EventBus | None = None) -> "ScheduleModel":
        calendar = WorkCalendar(weekends=settings.weekend_set, full_week=settings.full_week)
        return cls(calendar=calendar, events=events, auto_schedule=settings.auto_schedule)

    def _attach(self, tree: TaskTree, links: LinkGraph | None) -> None:
        self.tree = tree
        self.links = links if links is not None else LinkGraph(tree)
        self.scheduler = AutoScheduler(self.tree, self.links)

    # =========================================================================
    # Bulk
    # =========================================================================

    def load(
        self,
        tasks: Iterable[Task | Mapping[str, Any]],
        links: Iterable[Link | Mapping[str, Any]] = (),
        strict_links: bool = False,
    ) -> ModelValidation:
        """
        Replace tasks and links atomically.

        Links referencing unknown tasks are kept and reported in the returned
        validation unless ``strict_links`` is set, in which case they fail
        the whole load.
        """
        tree = TaskTree(self.calendar)
        tree.load(tasks)
        graph = LinkGraph(tree)
        graph.load(links, strict=strict_links)

        self._attach(tree, graph)
        report = self.validate()
        if report.dangling_links:
            logger.warning(f"{len(report.dangling_links)} links reference missing or identical tasks")
        self.events.emit(Event.TASKS_LOADED, {
            "task_ids": tree.ids(),
            "link_ids": [link.id for link in graph.links],
        })
        return report

    def validate(self) -> ModelValidation:
        return ModelValidation(tasks=self.tree.validate(), links=self.links.validate())

    # =========================================================================
    # Tasks
    # =========================================================================

    def add_task(self, record: Task | Mapping[str, Any]) -> Task:
        staged = self.tree.copy()
        task = staged.add(record)
        cascade = self._plan(staged, self.links.copy(staged), task.id)

        self.tree.add(task)
        self._apply(cascade)
        logger.info(f"Added task {task.id} (parent={task.parent})")
        self.events.emit(Event.TASK_ADDED, {"task_id": task.id, "parent": task.parent})
        self._announce(cascade)
        return self.tree.get(task.id)

    def update_task(self, task_id: TaskId, changes: Mapping[str, Any]) -> Task:
        """Merge ``changes``; temporal changes cascade through links when enabled."""
        changes = dict(changes)
        staged = self.tree.copy()
        staged.update(task_id, changes)
        cascade = None
        if CASCADE_FIELDS & changes.keys():
            cascade = self._plan(staged, self.links.copy(staged), task_id)

        self.tree.update(task_id, changes)
        self._apply(cascade)
        logger.info(f"Updated task {task_id}: {', '.join(sorted(changes))}")
        self.events.emit(Event.TASK_UPDATED, {"task_id": task_id, "fields": sorted(changes)})
        self._announce(cascade)
        return self.tree.get(task_id)

    def delete_task(self, task_id: TaskId) -> list[TaskId]:
        """Remove a task, its subtree and every link touching them."""
        removed = self.tree.delete(task_id)
        dropped = self.links.remove_links_for(removed)

        logger.info(f"Deleted task {task_id} ({len(removed)} tasks, {len(dropped)} links)")
        self.events.emit(Event.TASK_DELETED, {"task_id": task_id, "removed": removed})
        for link in dropped:
            self.events.emit(Event.LINK_REMOVED, {"link_id": link.id, "source": link.source, "target": link.target})
        return removed

    def move_task(self, task_id: TaskId, new_parent: TaskId | None, index: int | None = None) -> Task:
        previous = self.tree.get(task_id).parent
        staged = self.tree.copy()
        staged.move(task_id, new_parent, index)
        cascade = self._plan(staged, self.links.copy(staged), task_id)

        moved = self.tree.move(task_id, new_parent, index)
        self._apply(cascade)
        logger.info(f"Moved task {task_id}: parent {previous} -> {moved.parent}")
        self.events.emit(Event.TASK_MOVED, {
            "task_id": task_id,
            "old_parent": previous,
            "new_parent": moved.parent,
        })
        self._announce(cascade)
        return self.tree.get(task_id)

    # =========================================================================
    # Links
    # =========================================================================

    def add_link(
        self,
        source: TaskId,
        target: TaskId,
        link_type: LinkType | str = LinkType.FINISH_TO_START,
        lag: int = 0,
        link_id: str | None = None,
    ) -> Link:
        return self.add_link_record({"id": link_id, "source": source, "target": target, "type": link_type, "lag": lag})

    def add_link_record(self, record: Link | Mapping[str, Any]) -> Link:
        """Add a link; with auto-scheduling on, its target is pushed to satisfy it."""
        link = self.links.prepare(record)
        staged = self.links.copy()
        staged.add(link)
        cascade = self._plan(self.tree, staged, link.source)

        self.links.add(link)
        self._apply(cascade)
        self.events.emit(Event.LINK_ADDED, {"link_id": link.id, "source": link.source, "target": link.target})
        self._announce(cascade)
        return link

    def remove_link(self, link_id: str) -> Link:
        link = self.links.remove_link(link_id)
        self.events.emit(Event.LINK_REMOVED, {"link_id": link.id, "source": link.source, "target": link.target})
        return link

    def remove_link_between(self, source: TaskId, target: TaskId, link_type: LinkType | None = None) -> list[Link]:
        removed = self.links.remove_link_between(source, target, link_type)
        for link in removed:
            self.events.emit(Event.LINK_REMOVED, {"link_id": link.id, "source": link.source, "target": link.target})
        return removed

    # =========================================================================
    # Scheduling
    # =========================================================================

    def reschedule(self, task_id: TaskId | None = None) -> ScheduleResult:
        """Run the cascade explicitly (every task when ``task_id`` is None) and apply it."""
        if task_id is None:
            result = self.scheduler.reschedule_all()
        else:
            result = self.scheduler.reschedule(task_id)
        self._apply(result)
        self._announce(result)
        return result

    def preview(self, task_id: TaskId, span: DateSpan) -> ScheduleResult:
        """Cascade that would follow if ``task_id`` had ``span``; nothing is applied."""
        return self.scheduler.reschedule(task_id, overrides={task_id: span})

    def _plan(self, tree: TaskTree, links: LinkGraph, task_id: TaskId) -> ScheduleResult | None:
        if not self.auto_schedule:
            return None
        return AutoScheduler(tree, links).reschedule(task_id)

    def _apply(self, result: ScheduleResult | None) -> None:
        if result:
            self.tree.apply_spans(result.updates)

    def _announce(self, result: ScheduleResult | None) -> None:
        if not result:
            return
        self.events.emit(Event.SCHEDULE_CASCADED, {
            "task_id": result.task_id,
            "affected": list(result.spans),
            "shifted": list(result.updates),
        })
