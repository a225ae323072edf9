"""
Auto-scheduling: propagating date changes through dependency links.

When a task moves, every link leaving it (or leaving one of its ancestors,
whose envelope may have grown) is re-checked:
- FS: target.start  >= source.finish + lag
- SS: target.start  >= source.start  + lag
- FF: target.finish >= source.finish + lag
- SF: target.finish >= source.start  + lag

Positions are compared as instants: a task occupying days start..end
finishes at the start of day end + 1, a milestone finishes where it starts.
A violated target is pushed forward by the missing days (never backward)
and re-examined in turn. Pushing a parent pushes its whole subtree.

All work happens on an overlay of authored spans; the tree is only changed
by whoever applies the returned updates.
"""

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Mapping

import networkx as nx

from gantt_engine.logging_config import get_logger
from gantt_engine.models import Link, TaskId, TaskKind
from gantt_engine.services.graph import LinkGraph
from gantt_engine.services.tree import DateSpan, TaskTree

logger = get_logger(__name__)


@dataclass
class ScheduleResult:
    """
    Outcome of one cascade.

    ``spans`` maps every task whose effective dates changed to its new
    dates. ``updates`` holds the authored spans to write back.
    """
    task_id: TaskId | None
    spans: dict[TaskId, DateSpan] = field(default_factory=dict)
    updates: dict[TaskId, DateSpan] = field(default_factory=dict)
    loop_guarded: bool = False

    @property
    def affected(self) -> set[TaskId]:
        return set(self.spans)

    def __bool__(self) -> bool:
        return bool(self.updates)


def finish_instant(span: DateSpan, kind: TaskKind) -> date:
    if kind == TaskKind.MILESTONE:
        return span.start
    return span.end + timedelta(days=1)


def required_shift(
    link: Link,
    source: DateSpan,
    source_kind: TaskKind,
    target: DateSpan,
    target_kind: TaskKind,
) -> int:
    """Days the target must move forward for ``link`` to hold (<= 0 when satisfied)."""
    lag = timedelta(days=link.lag)
    source_anchor = source.start if link.type.from_start else finish_instant(source, source_kind)
    target_anchor = finish_instant(target, target_kind) if link.type.to_finish else target.start
    return (source_anchor + lag - target_anchor).days


class AutoScheduler:
    """Forward-only cascade over a TaskTree and its LinkGraph."""

    def __init__(self, tree: TaskTree, links: LinkGraph):
        self.tree = tree
        self.links = links

    def reschedule(
        self,
        moved_task_id: TaskId,
        overrides: Mapping[TaskId, DateSpan] | None = None,
    ) -> ScheduleResult:
        """
        Cascade from ``moved_task_id``.

        Args:
            moved_task_id: Task whose dates just changed
            overrides: Authored spans to treat as already changed (previews)

        Returns:
            ScheduleResult with the changed effective spans and the authored
            spans that must be written back
        """
        self.tree.get(moved_task_id)
        seeds = [moved_task_id] + self.tree.ancestors(moved_task_id)
        return self._cascade(moved_task_id, seeds, overrides)

    def reschedule_all(self, overrides: Mapping[TaskId, DateSpan] | None = None) -> ScheduleResult:
        """Re-check every link, walking tasks in dependency order where possible."""
        graph = self.links.as_graph()
        graph.add_nodes_from(self.tree.ids())
        try:
            order = list(nx.topological_sort(graph))
        except nx.NetworkXUnfeasible:
            order = list(graph.nodes)
        seeds = [task_id for task_id in order if task_id in self.tree]
        return self._cascade(None, seeds, overrides)

    def _cascade(self, task_id, seeds, overrides) -> ScheduleResult:
        result = ScheduleResult(task_id=task_id)
        cycle = self.links.checker.find_cycle()
        if cycle:
            logger.warning(f"Link graph is not acyclic ({' -> '.join(map(str, cycle))}); cascade is loop-guarded")

        baseline = dict(overrides or {})
        overlay = dict(baseline)
        visits: Counter = Counter()
        limit = len(self.tree) + 1
        queue = deque(seeds)
        shifted: set[TaskId] = set()

        while queue:
            node = queue.popleft()
            if node not in self.tree:
                continue
            visits[node] += 1
            if visits[node] > limit:
                if not result.loop_guarded:
                    logger.warning(f"Cascade visited task {node} more than {limit} times; stopping there")
                result.loop_guarded = True
                continue

            source_span = self.tree.get_effective_dates(node, overlay)
            if source_span.is_empty:
                continue
            source_kind = self.tree.effective_kind(node)

            for link in self.links.outgoing(node):
                target = link.target
                if target not in self.tree:
                    continue
                target_span = self.tree.get_effective_dates(target, overlay)
                if target_span.is_empty:
                    continue
                delta = required_shift(
                    link, source_span, source_kind, target_span, self.tree.effective_kind(target)
                )
                if delta <= 0:
                    continue

                moved = self._shift_subtree(target, delta, overlay)
                shifted.update(moved)
                logger.debug(
                    f"{link.type.short_name} {node} -> {target} (lag={link.lag}) pushes {target} by {delta} days"
                )
                queue.append(target)
                queue.extend(self.tree.ancestors(target))
                queue.extend(task for task in moved if task != target)

        candidates = set(shifted)
        for task in shifted:
            candidates.update(self.tree.ancestors(task))
        for candidate in candidates:
            before = self.tree.get_effective_dates(candidate, baseline)
            after = self.tree.get_effective_dates(candidate, overlay)
            if before != after:
                result.spans[candidate] = after
        result.updates = {task: overlay[task] for task in shifted}

        if result.updates:
            logger.info(
                f"Cascade from {task_id if task_id is not None else 'all tasks'}: "
                f"{len(result.updates)} tasks shifted, {len(result.spans)} affected"
            )
        return result

    def _shift_subtree(self, task_id: TaskId, days: int, overlay: dict) -> list[TaskId]:
        """Shift the authored span of ``task_id`` and every scheduled task below it."""
        moved = []
        for node in [task_id] + self.tree.descendants(task_id):
            span = overlay.get(node) or self.tree.authored_span(self.tree.get(node))
            if span.is_empty:
                continue
            overlay[node] = self._shifted(span, days)
            moved.append(node)
        return moved

    def _shifted(self, span: DateSpan, days: int) -> DateSpan:
        """
        Move a span forward by ``days`` calendar days, keeping its length.

        On a work-week calendar the start lands on the next working day and
        the end is recounted in working days, so a pushed task keeps its
        duration and never ends on an excluded day.
        """
        calendar = self.tree.calendar
        if calendar.full_week:
            return span.shifted(days)
        length = calendar.count_days(span.start, span.end)
        start = calendar.next_working_day(span.start + timedelta(days=days))
        if span.start == span.end:
            return DateSpan(start, start)
        return DateSpan(start, calendar.end_for_duration(start, length))


def link_satisfied(tree: TaskTree, link: Link) -> bool:
    """Whether ``link`` currently holds between its tasks' effective dates."""
    source = tree.get_effective_dates(link.source)
    target = tree.get_effective_dates(link.target)
    if source.is_empty or target.is_empty:
        return True
    return required_shift(
        link, source, tree.effective_kind(link.source), target, tree.effective_kind(link.target)
    ) <= 0

