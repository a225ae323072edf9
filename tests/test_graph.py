"""
Tests for the dependency link graph and cycle detection.
"""

import pytest

from gantt_engine.exceptions import (
    CycleDetectedError,
    DuplicateLinkError,
    NotFoundError,
    SelfLinkError,
    ValidationError,
)
from gantt_engine.models import Link, LinkType
from gantt_engine.services.graph import CycleChecker, LinkGraph


@pytest.fixture
def flat_links(tree):
    """Three unrelated root tasks A, B and C."""
    tree.load([
        {"id": "A", "start_date": "2024-01-01", "duration": 2},
        {"id": "B", "start_date": "2024-01-03", "duration": 2},
        {"id": "C", "start_date": "2024-01-05", "duration": 2},
    ])
    return LinkGraph(tree)


class TestLinkModel:
    def test_id_is_derived(self):
        link = Link(source=1, target=2, type="SS")
        assert link.id == "1_2_1"
        assert link.type == LinkType.START_TO_START

    @pytest.mark.parametrize("value", ["0", "FS", "fs", "finish_to_start", LinkType.FINISH_TO_START, None])
    def test_type_spellings(self, value):
        assert Link(source=1, target=2, type=value).type == LinkType.FINISH_TO_START

    def test_type_helpers(self):
        assert LinkType.START_TO_FINISH.from_start
        assert LinkType.START_TO_FINISH.to_finish
        assert not LinkType.FINISH_TO_START.from_start
        assert LinkType.FINISH_TO_FINISH.label == "Finish-to-Finish (FF)"


class TestAddLink:
    def test_add_and_query(self, flat_links):
        link = flat_links.add_link("A", "B")

        assert link.id == "A_B_0"
        assert flat_links.get_link("A_B_0") is link
        assert flat_links.successors_of("A") == ["B"]
        assert flat_links.predecessors_of("B") == ["A"]
        assert flat_links.links_of("B").incoming == [link]
        assert flat_links.links_of("B").outgoing == []

    def test_explicit_id(self, flat_links):
        link = flat_links.add_link("A", "B", link_id="l1")
        assert "l1" in flat_links
        assert link.id == "l1"

    def test_self_link(self, flat_links):
        with pytest.raises(SelfLinkError):
            flat_links.add_link("A", "A")
        assert len(flat_links) == 0

    def test_duplicate_link(self, flat_links):
        flat_links.add_link("A", "B", "FS")
        with pytest.raises(DuplicateLinkError):
            flat_links.add_link("A", "B", "0")

    def test_different_types_between_same_pair(self, flat_links):
        flat_links.add_link("A", "B", "FS")
        flat_links.add_link("A", "B", "SS")

        assert len(flat_links) == 2
        assert flat_links.successors_of("A") == ["B"]

    def test_unknown_task(self, flat_links):
        with pytest.raises(NotFoundError):
            flat_links.add_link("A", "Z")

    def test_unknown_type(self, flat_links):
        with pytest.raises(ValidationError):
            flat_links.add_link("A", "B", "XX")

    def test_detached_graph_accepts_any_ids(self):
        links = LinkGraph()
        links.add_link(1, 2)
        assert links.successors_of(1) == [2]

    def test_underscored_ids_do_not_collide(self):
        """Links 1_2 -> 3 and 1 -> 2_3 derive the same id but are different links."""
        links = LinkGraph()
        first = links.add_link("1_2", "3")
        second = links.add_link("1", "2_3")

        assert first.id == "1_2_3_0"
        assert second.id == "1_2_3_0-2"
        assert links.get_link("1_2_3_0-2").source == "1"
        assert len(links) == 2


class TestCycleDetection:
    def test_reverse_edge_closes_cycle(self, flat_links):
        """
        Scenario: A -> B (FS) exists, then B -> A (SS) is added.
        Expected: rejected as a graph cycle; only the first link remains.
        """
        flat_links.add_link("A", "B", "FS")

        with pytest.raises(CycleDetectedError) as exc_info:
            flat_links.add_link("B", "A", "SS")

        assert exc_info.value.kind == "graph"
        assert [link.id for link in flat_links] == ["A_B_0"]

    def test_transitive_cycle(self, flat_links):
        flat_links.add_link("A", "B")
        flat_links.add_link("B", "C")

        with pytest.raises(CycleDetectedError) as exc_info:
            flat_links.add_link("C", "A")

        assert exc_info.value.path == ["C", "A", "B", "C"]

    def test_added_link_forbids_its_reverse(self, flat_links):
        flat_links.add_link("A", "C")
        assert flat_links.would_create_cycle("C", "A")
        assert not flat_links.would_create_cycle("A", "B")

    def test_link_to_own_child_is_tree_cycle(self, project_tree):
        links = LinkGraph(project_tree)

        with pytest.raises(CycleDetectedError) as exc_info:
            links.add_link(3, 4)
        assert exc_info.value.kind == "tree"

        with pytest.raises(CycleDetectedError) as exc_info:
            links.add_link(5, 1)
        assert exc_info.value.kind == "tree"

    def test_cycle_through_containment(self, project_tree):
        """
        Scenario: Launch -> Build exists; Build contains Backend.
        Expected: Backend -> Launch would close a loop through the parent.
        """
        links = LinkGraph(project_tree)
        links.add_link(6, 3)

        with pytest.raises(CycleDetectedError) as exc_info:
            links.add_link(4, 6)

        assert exc_info.value.kind == "graph"

    def test_siblings_may_link(self, project_tree):
        links = LinkGraph(project_tree)
        links.add_link(2, 3)
        links.add_link(4, 5)
        assert len(links) == 2

    def test_checker_without_tree(self):
        links = LinkGraph()
        links.add_link(1, 2)
        checker = CycleChecker.for_tree(links.as_graph(), None)

        assert checker.check(2, 1).kind == "graph"
        assert checker.check(1, 3) is None
        assert checker.find_cycle() is None


class TestRemoveLink:
    def test_remove_by_id(self, flat_links):
        flat_links.add_link("A", "B")
        flat_links.remove_link("A_B_0")

        assert len(flat_links) == 0
        assert flat_links.successors_of("A") == []

    def test_remove_one_of_two_parallel_links(self, flat_links):
        flat_links.add_link("A", "B", "FS")
        flat_links.add_link("A", "B", "SS")
        flat_links.remove_link("A_B_0")

        assert flat_links.successors_of("A") == ["B"]

    def test_remove_between(self, flat_links):
        flat_links.add_link("A", "B", "FS")
        flat_links.add_link("A", "B", "SS")

        removed = flat_links.remove_link_between("A", "B")

        assert len(removed) == 2
        assert len(flat_links) == 0

    def test_remove_missing(self, flat_links):
        with pytest.raises(NotFoundError):
            flat_links.remove_link("nope")
        with pytest.raises(NotFoundError):
            flat_links.remove_link_between("A", "B")

    def test_remove_links_for(self, flat_links):
        flat_links.add_link("A", "B")
        flat_links.add_link("B", "C")
        flat_links.add_link("A", "C")

        removed = flat_links.remove_links_for(["B"])

        assert {link.id for link in removed} == {"A_B_0", "B_C_0"}
        assert [link.id for link in flat_links] == ["A_C_0"]


class TestLoadAndValidate:
    def test_lenient_load_keeps_dangling_links(self, flat_links):
        flat_links.load([
            {"source": "A", "target": "B"},
            {"source": "A", "target": "Z"},
        ])

        results = {result.link_id: result for result in flat_links.validate()}

        assert len(flat_links) == 2
        assert results["A_B_0"].valid
        assert not results["A_Z_0"].valid
        assert not results["A_Z_0"].target_exists
        assert results["A_Z_0"].errors == ["Link A_Z_0: target task Z not found"]

    def test_validate_against_explicit_ids(self, flat_links):
        flat_links.add_link("A", "B")
        (result,) = flat_links.validate(valid_task_ids=["B"])
        assert not result.source_exists
        assert result.target_exists

    def test_lenient_load_rejects_repeated_ids(self, flat_links):
        with pytest.raises(DuplicateLinkError):
            flat_links.load([{"id": "x", "source": "A", "target": "B"}, {"id": "x", "source": "B", "target": "C"}])

    def test_lenient_load_keeps_colliding_derived_ids(self):
        links = LinkGraph()
        loaded = links.load([{"source": "a_b", "target": "c"}, {"source": "a", "target": "b_c"}])
        assert [link.id for link in loaded] == ["a_b_c_0", "a_b_c_0-2"]

    def test_lenient_load_rejects_repeated_links(self, flat_links):
        with pytest.raises(DuplicateLinkError):
            flat_links.load([{"source": "A", "target": "B"}, {"source": "A", "target": "B", "type": "FS"}])

    def test_strict_load_is_atomic(self, flat_links):
        flat_links.add_link("A", "B")

        with pytest.raises(CycleDetectedError):
            flat_links.load([
                {"source": "B", "target": "C"},
                {"source": "C", "target": "B"},
            ], strict=True)

        assert [link.id for link in flat_links] == ["A_B_0"]

    def test_copy_is_independent(self, flat_links):
        flat_links.add_link("A", "B")
        clone = flat_links.copy()
        clone.add_link("B", "C")

        assert len(flat_links) == 1
        assert len(clone) == 2
