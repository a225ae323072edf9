"""
What-If Simulation Service.

Applies hypothetical start/duration changes to a copy of the schedule, runs
the auto-scheduling cascade on it, and reports the ripple effect. Nothing on
the real schedule is touched.
"""

from dataclasses import dataclass
from datetime import date

from gantt_engine.exceptions import ValidationError
from gantt_engine.logging_config import get_logger
from gantt_engine.models import TaskId
from gantt_engine.services.recalc import AutoScheduler
from gantt_engine.services.tree import TaskTree

logger = get_logger(__name__)


@dataclass
class TaskChange:
    """A hypothetical change to a task."""
    task_id: TaskId
    start_date: date | None = None
    duration: int | None = None


@dataclass
class TaskImpact:
    """The impact of simulation on a single task."""
    task_id: TaskId
    name: str
    original_start: date
    original_end: date
    simulated_start: date
    simulated_end: date
    delta_days: int  # Positive = delayed, negative = earlier


@dataclass
class SimulationResult:
    """Complete result of a what-if simulation."""
    original_end_date: date | None
    simulated_end_date: date | None
    impact_days: int  # How many days the project end moved
    affected_tasks: list[TaskImpact]
    total_tasks: int


def project_end(tree: TaskTree) -> date | None:
    ends = [
        span.end for span in (tree.get_effective_dates(task.id) for task in tree.roots())
        if not span.is_empty
    ]
    return max(ends) if ends else None


def simulate_changes(model, changes: list[TaskChange]) -> SimulationResult:
    """
    Simulate changes to tasks and calculate the ripple effect.

    Args:
        model: Anything exposing ``tree`` (TaskTree) and ``links`` (LinkGraph)
        changes: List of hypothetical task changes

    Returns:
        SimulationResult with original vs simulated dates
    """
    original = model.tree
    if not len(original):
        raise ValidationError("No tasks to simulate")

    tree = original.copy()
    links = model.links.copy(tree)
    scheduler = AutoScheduler(tree, links)

    changed = []
    for change in changes:
        if change.task_id not in tree:
            logger.warning(f"Task {change.task_id} not found in schedule, skipping")
            continue
        updates = {}
        if change.start_date is not None:
            updates["start_date"] = change.start_date
        if change.duration is not None:
            updates["duration"] = change.duration
        if updates:
            tree.update(change.task_id, updates)
            changed.append(change.task_id)

    for task_id in changed:
        result = scheduler.reschedule(task_id)
        tree.apply_spans(result.updates)

    affected_tasks = []
    for task in original.flatten():
        before = original.get_effective_dates(task.id)
        after = tree.get_effective_dates(task.id)
        if before.is_empty or after.is_empty or before == after:
            continue
        affected_tasks.append(TaskImpact(
            task_id=task.id,
            name=task.name,
            original_start=before.start,
            original_end=before.end,
            simulated_start=after.start,
            simulated_end=after.end,
            delta_days=(after.end - before.end).days,
        ))

    original_end = project_end(original)
    simulated_end = project_end(tree)
    impact = 0
    if original_end is not None and simulated_end is not None:
        impact = (simulated_end - original_end).days

    logger.info(
        f"Simulated {len(changed)} changes: {len(affected_tasks)} tasks affected, "
        f"project end moved {impact} days"
    )
    return SimulationResult(
        original_end_date=original_end,
        simulated_end_date=simulated_end,
        impact_days=impact,
        affected_tasks=affected_tasks,
        total_tasks=len(original),
    )
