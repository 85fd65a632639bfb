"""Unit tests for progress resolution and the per-phase summary."""
import pytest

from curriculum.progress import compute, resolve
from curriculum.tree import flatten

ABC_TREE = [
    {
        "id": "phase-1",
        "title": "Phase 1",
        "items": [
            {"id": "phase-1/a", "title": "A"},
            {"id": "phase-1/b", "title": "B"},
            {"id": "phase-1/c", "title": "C"},
        ],
    }
]

ID_SETS = [
    [],
    ["phase-1/intro"],
    ["phase-2/d", "phase-1/intro", "nope"],
    ["phase-2/a", "phase-2/b", "phase-2/c", "phase-2/d"],
    ["x", "y", "z"],
    ["phase-1/intro", "phase-1/setup", "phase-2/a", "phase-2/b", "phase-2/c", "phase-2/d"],
]


@pytest.mark.unit
class TestResolve:
    def test_unknown_id(self):
        result = resolve(ABC_TREE, ["unknown-x"])
        assert result.titles == []
        assert result.unmatched_ids == ["unknown-x"]

    def test_mixed_keeps_input_order(self):
        result = resolve(ABC_TREE, ["phase-1/c", "ghost", "phase-1/a"])
        assert result.titles == ["C", "A"]
        assert result.unmatched_ids == ["ghost"]

    @pytest.mark.parametrize("ids", [None, [], "phase-1/a"])
    def test_no_ids(self, ids):
        result = resolve(ABC_TREE, ids)
        assert result.titles == [] and result.unmatched_ids == []

    def test_empty_tree_leaves_everything_unmatched(self):
        assert resolve([], ["a", "b"]).unmatched_ids == ["a", "b"]

    def test_flat_tree(self, flat_map):
        assert resolve(flat_map, ["m2"]).titles == ["Module 2"]

    def test_flatten_ids_resolve_completely(self, hierarchical_map):
        ids = [e.id for e in flatten(hierarchical_map)]
        result = resolve(hierarchical_map, ids)
        assert result.unmatched_ids == []
        assert result.titles == [e.title for e in flatten(hierarchical_map)]

    @pytest.mark.parametrize("ids", ID_SETS)
    def test_present_ids_never_unmatched(self, hierarchical_map, ids):
        present = {e.id for e in flatten(hierarchical_map)}
        assert not set(resolve(hierarchical_map, ids).unmatched_ids) & present


@pytest.mark.unit
class TestCompute:
    def test_one_of_three(self):
        summary = compute(ABC_TREE, ["phase-1/a"])
        phase = summary.phases[0]
        assert (phase.total, phase.completed, phase.is_complete) == (3, 1, False)
        assert phase.remaining_titles == ["B", "C"]

    def test_all_complete(self):
        summary = compute(ABC_TREE, ["phase-1/a", "phase-1/b", "phase-1/c"])
        assert summary.all_complete
        assert summary.phases[0].remaining_titles == []

    def test_two_phases(self, hierarchical_map):
        summary = compute(hierarchical_map, ["phase-1/intro", "phase-1/setup", "phase-2/b"])
        assert summary.total_modules == 6
        assert summary.completed_modules == 3
        first, second = summary.phases
        assert (first.phase_id, first.phase_title, first.is_complete) == ("phase-1", "Phase 1", True)
        assert (second.total, second.completed) == (4, 1)
        assert second.remaining_titles == ["A", "C", "D"]

    def test_remaining_capped_at_three(self, hierarchical_map):
        summary = compute(hierarchical_map, [])
        assert summary.phases[1].remaining_titles == ["A", "B", "C"]

    def test_flat_tree_is_single_phase(self, flat_map):
        summary = compute(flat_map, ["m1"])
        assert len(summary.phases) == 1
        phase = summary.phases[0]
        assert (phase.phase_id, phase.phase_title) == ("all", "All Modules")
        assert phase.remaining_titles == ["Module 2", "Module 3"]

    def test_empty_tree(self):
        summary = compute([], ["a"])
        assert summary.phases == []
        assert summary.total_items == 0
        assert not summary.all_complete

    def test_empty_section_is_zero_length_phase(self):
        tree = ABC_TREE + [{"id": "phase-2", "title": "", "items": []}]
        summary = compute(tree, ["phase-1/a", "phase-1/b", "phase-1/c"])
        empty = summary.phases[1]
        assert (empty.phase_title, empty.total, empty.is_complete) == ("Unnamed Phase", 0, False)
        assert not summary.all_complete

    @pytest.mark.parametrize("ids", ID_SETS)
    def test_totals_add_up(self, hierarchical_map, ids):
        summary = compute(hierarchical_map, ids)
        assert sum(p.total for p in summary.phases) == summary.total_modules
        assert sum(p.completed for p in summary.phases) == summary.completed_modules
        assert all(len(p.remaining_titles) <= 3 for p in summary.phases)
