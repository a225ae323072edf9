"""
Pytest configuration and fixtures for gantt engine tests.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from gantt_engine.config import Settings
from gantt_engine.main import app
from gantt_engine.services.calendar import WorkCalendar
from gantt_engine.services.graph import LinkGraph
from gantt_engine.services.recalc import AutoScheduler
from gantt_engine.services.schedule import ScheduleModel
from gantt_engine.services.tree import TaskTree
from gantt_engine.workspace import Workspace, get_workspace


@pytest.fixture
def tree():
    return TaskTree()


@pytest.fixture
def work_week_tree():
    """Tree whose durations skip Saturdays and Sundays."""
    return TaskTree(WorkCalendar(full_week=False))


@pytest.fixture
def project_tree(tree):
    """
    Two-level project:

        1 Project       (no own dates)
          2 Design      Jan 1 - Jan 5
          3 Build       Jan 8 - Jan 12
            4 Backend   Jan 8 - Jan 10
            5 Frontend  Jan 9 - Jan 12
        6 Launch        milestone Jan 15
    """
    tree.load([
        {"id": 1, "name": "Project"},
        {"id": 2, "name": "Design", "parent": 1, "start_date": "2024-01-01", "duration": 5},
        {"id": 3, "name": "Build", "parent": 1},
        {"id": 4, "name": "Backend", "parent": 3, "start_date": "2024-01-08", "end_date": "2024-01-10"},
        {"id": 5, "name": "Frontend", "parent": 3, "start_date": "2024-01-09", "end_date": "2024-01-12"},
        {"id": 6, "name": "Launch", "kind": "milestone", "start_date": "2024-01-15"},
    ])
    return tree


@pytest.fixture
def links(tree):
    return LinkGraph(tree)


@pytest.fixture
def scheduler(tree, links):
    return AutoScheduler(tree, links)


@pytest.fixture
def model():
    return ScheduleModel()


@pytest.fixture
def workspace():
    """Fresh in-memory workspace with default settings."""
    return Workspace(Settings())


@pytest_asyncio.fixture
async def client(workspace):
    """Create an async test client bound to a fresh workspace."""
    app.dependency_overrides[get_workspace] = lambda: workspace

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
