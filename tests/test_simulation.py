"""
Test what-if simulation - hypothetical changes ripple through a copy of
the schedule and leave the real one alone.
"""

from datetime import date

import pytest

from gantt_engine.exceptions import ValidationError
from gantt_engine.services.schedule import ScheduleModel
from gantt_engine.services.simulation import TaskChange, project_end, simulate_changes


@pytest.fixture
def chain():
    model = ScheduleModel()
    model.load(
        [
            {"id": "A", "name": "Dig", "start_date": "2024-01-01", "duration": 5},
            {"id": "B", "name": "Pour", "start_date": "2024-01-06", "duration": 3},
            {"id": "C", "name": "Paint", "start_date": "2024-01-20", "duration": 2},
        ],
        [{"source": "A", "target": "B"}],
    )
    return model


class TestSimulation:
    def test_longer_task_delays_successor(self, chain):
        """
        Scenario: A (5 days) -> B, A becomes 10 days
        Expected: A and B both end 5 days later; C is untouched
        """
        result = simulate_changes(chain, [TaskChange(task_id="A", duration=10)])

        impacts = {impact.task_id: impact for impact in result.affected_tasks}
        assert set(impacts) == {"A", "B"}
        assert impacts["B"].simulated_start == date(2024, 1, 11)
        assert impacts["B"].delta_days == 5
        assert result.total_tasks == 3

    def test_real_schedule_untouched(self, chain):
        simulate_changes(chain, [TaskChange(task_id="A", start_date=date(2024, 1, 15))])

        assert chain.tree.get("A").start_date == date(2024, 1, 1)
        assert chain.tree.get("B").start_date == date(2024, 1, 6)

    def test_project_end_moves(self, chain):
        """
        Scenario: A starts Jan 15, so B runs Jan 20 - 22, past C's Jan 21
        Expected: project end moves from Jan 21 to Jan 22
        """
        result = simulate_changes(chain, [TaskChange(task_id="A", start_date=date(2024, 1, 15))])

        assert result.original_end_date == date(2024, 1, 21)
        assert result.simulated_end_date == date(2024, 1, 22)
        assert result.impact_days == 1

    def test_earlier_start_is_negative_delta(self, chain):
        result = simulate_changes(chain, [TaskChange(task_id="C", start_date=date(2024, 1, 10))])

        (impact,) = result.affected_tasks
        assert impact.task_id == "C"
        assert impact.delta_days == -10
        assert result.simulated_end_date == date(2024, 1, 11)
        assert result.impact_days == -10

    def test_unknown_task_is_skipped(self, chain):
        result = simulate_changes(chain, [TaskChange(task_id="Z", duration=4)])
        assert result.affected_tasks == []
        assert result.impact_days == 0

    def test_empty_schedule(self):
        with pytest.raises(ValidationError):
            simulate_changes(ScheduleModel(), [])

    def test_project_end(self, chain):
        assert project_end(chain.tree) == date(2024, 1, 21)
