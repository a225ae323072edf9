"""
Task routes for the gantt engine API.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends, status

from gantt_engine.logging_config import get_logger
from gantt_engine.schemas import (
    LinkRead,
    ScheduleLoad,
    ScheduleLoadResult,
    SimulationRead,
    SimulationRequest,
    TaskCreate,
    TaskMove,
    TaskRead,
    TaskUpdate,
)
from gantt_engine.services.simulation import TaskChange, simulate_changes
from gantt_engine.workspace import Workspace, get_workspace

logger = get_logger(__name__)

router = APIRouter()


def _read(ws: Workspace, task_id) -> TaskRead:
    return TaskRead.from_tree(ws.model.tree, ws.model.tree.get(task_id), ws.view)


@router.get("/", response_model=list[TaskRead])
async def list_tasks(
    q: str | None = None,
    include_collapsed: bool = False,
    ws: Workspace = Depends(get_workspace),
) -> list[TaskRead]:
    """
    List task rows in display order.

    Children of collapsed parents are left out unless ``include_collapsed``;
    ``q`` filters by name instead.
    """
    tree = ws.model.tree
    if q:
        tasks = tree.search(q)
    elif include_collapsed:
        tasks = tree.flatten()
    else:
        tasks = ws.view.visible_rows(tree)
    logger.debug(f"Listed {len(tasks)} of {len(tree)} tasks")
    return [TaskRead.from_tree(tree, task, ws.view) for task in tasks]


@router.put("/", response_model=ScheduleLoadResult)
async def load_schedule(
    schedule: ScheduleLoad,
    ws: Workspace = Depends(get_workspace),
) -> ScheduleLoadResult:
    """Replace every task and link in one step."""
    report = ws.model.load(schedule.tasks, schedule.links, strict_links=schedule.strict_links)
    errors = list(report.tasks.errors)
    for link in report.dangling_links:
        errors.extend(link.errors)
    return ScheduleLoadResult(
        tasks=len(ws.model.tree),
        links=len(ws.model.links),
        valid=report.valid,
        errors=errors,
    )


@router.post("/", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(
    task_in: TaskCreate,
    ws: Workspace = Depends(get_workspace),
) -> TaskRead:
    """Create a task as the first child of its parent (or the first root)."""
    task = ws.model.add_task(task_in.model_dump(exclude_none=True))
    return _read(ws, task.id)


@router.post("/simulate", response_model=SimulationRead)
async def simulate(
    request: SimulationRequest,
    ws: Workspace = Depends(get_workspace),
) -> SimulationRead:
    """
    What-if: apply hypothetical start/duration changes to a copy of the
    schedule and report how far the ripple goes. Nothing is saved.
    """
    changes = [
        TaskChange(task_id=change.task_id, start_date=change.start_date, duration=change.duration)
        for change in request.changes
    ]
    result = simulate_changes(ws.model, changes)
    return SimulationRead(**asdict(result))


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(task_id: str, ws: Workspace = Depends(get_workspace)) -> TaskRead:
    """Get a task by ID."""
    return _read(ws, ws.resolve_task_id(task_id))


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: str,
    task_in: TaskUpdate,
    ws: Workspace = Depends(get_workspace),
) -> TaskRead:
    """
    Update a task.

    Date changes cascade to dependent tasks when auto-scheduling is on.
    """
    resolved = ws.resolve_task_id(task_id)
    changes = task_in.model_dump(exclude_unset=True)
    ws.model.update_task(resolved, changes)
    return _read(ws, resolved)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, ws: Workspace = Depends(get_workspace)) -> None:
    """Delete a task, its subtree and every link touching them."""
    ws.model.delete_task(ws.resolve_task_id(task_id))


@router.post("/{task_id}/move", response_model=TaskRead)
async def move_task(
    task_id: str,
    move: TaskMove,
    ws: Workspace = Depends(get_workspace),
) -> TaskRead:
    resolved = ws.resolve_task_id(task_id)
    parent = ws.resolve_task_id(move.parent) if move.parent is not None else None
    ws.model.move_task(resolved, parent, move.index)
    return _read(ws, resolved)


@router.post("/{task_id}/expand", response_model=TaskRead)
async def expand_task(task_id: str, ws: Workspace = Depends(get_workspace)) -> TaskRead:
    resolved = ws.resolve_task_id(task_id)
    ws.view.expand(resolved)
    return _read(ws, resolved)


@router.post("/{task_id}/collapse", response_model=TaskRead)
async def collapse_task(task_id: str, ws: Workspace = Depends(get_workspace)) -> TaskRead:
    resolved = ws.resolve_task_id(task_id)
    ws.view.collapse(resolved)
    return _read(ws, resolved)


@router.get("/{task_id}/links")
async def task_links(task_id: str, ws: Workspace = Depends(get_workspace)) -> dict:
    """Incoming and outgoing links of a task."""
    links = ws.model.links.links_of(ws.resolve_task_id(task_id))
    return {
        "incoming": [LinkRead.from_link(link) for link in links.incoming],
        "outgoing": [LinkRead.from_link(link) for link in links.outgoing],
    }
