"""Tests for the column-per-depth tree layout (engine/layout.py)."""

from __future__ import annotations

from dataclasses import replace

from tasktree.domain.models import Position, Project, Task
from tasktree.engine.layout import DEFAULT_LAYOUT, LayoutConfig, apply_layout, compute_layout


def _tree(links: dict[str, list[str]], roots: list[str]) -> dict[str, Task]:
    """Build a task map from ``{parent: [children]}``."""
    parents = {child: parent for parent, children in links.items() for child in children}
    ids = set(links) | set(parents) | set(roots)
    return {
        tid: Task(id=tid, title=tid, parent_id=parents.get(tid), child_ids=list(links.get(tid, [])))
        for tid in sorted(ids)
    }


class TestComputeLayout:
    def test_single_root_is_centred_on_midline(self) -> None:
        tasks = _tree({}, ["r"])
        positions = compute_layout(tasks, ["r"])
        assert positions == {"r": Position(x=50.0, y=120.0)}

    def test_child_goes_one_column_right(self) -> None:
        tasks = _tree({"r": ["c"]}, ["r"])
        positions = compute_layout(tasks, ["r"])
        assert positions["c"].x == 330.0
        assert positions["c"].y == 120.0

    def test_three_siblings_are_symmetric_about_midline(self) -> None:
        tasks = _tree({"r": ["a", "b", "c"]}, ["r"])
        positions = compute_layout(tasks, ["r"])
        ys = [positions[t].y for t in ("a", "b", "c")]
        assert ys == [-60.0, 120.0, 300.0]
        centres = [y + DEFAULT_LAYOUT.node_height / 2 for y in ys]
        assert centres == [20.0, 200.0, 380.0]
        assert ys[1] - ys[0] == ys[2] - ys[1] == 180.0
        assert len({positions[t].x for t in ("a", "b", "c")}) == 1

    def test_start_y_clamps_column_top(self) -> None:
        tasks = _tree({"r": ["a", "b", "c"]}, ["r"])
        positions = compute_layout(tasks, ["r"], LayoutConfig(start_y=50.0))
        assert [positions[t].y for t in ("a", "b", "c")] == [50.0, 230.0, 410.0]

    def test_start_y_does_not_affect_single_node(self) -> None:
        tasks = _tree({}, ["r"])
        positions = compute_layout(tasks, ["r"], LayoutConfig(start_y=500.0))
        assert positions["r"].y == 120.0

    def test_multiple_roots_share_first_column(self) -> None:
        tasks = _tree({}, ["r1", "r2"])
        positions = compute_layout(tasks, ["r1", "r2"])
        assert positions["r1"] == Position(x=50.0, y=30.0)
        assert positions["r2"] == Position(x=50.0, y=210.0)

    def test_columns_follow_bfs_discovery_order(self) -> None:
        tasks = _tree({"r1": ["a"], "r2": ["b"], "a": ["a1"]}, ["r1", "r2"])
        positions = compute_layout(tasks, ["r1", "r2"])
        assert positions["a"].y < positions["b"].y
        assert positions["a1"].x == 50.0 + 2 * 280.0

    def test_unreachable_and_missing_ids_are_skipped(self) -> None:
        tasks = _tree({"r": ["c"]}, ["r"])
        tasks["orphan"] = Task(id="orphan", parent_id="gone", position=Position(x=7.0, y=9.0))
        positions = compute_layout(tasks, ["r", "does-not-exist"])
        assert set(positions) == {"r", "c"}

    def test_cycles_visit_each_task_once(self) -> None:
        tasks = _tree({"r": ["a"]}, ["r"])
        tasks["a"] = replace(tasks["a"], child_ids=["r"])
        positions = compute_layout(tasks, ["r"])
        assert set(positions) == {"r", "a"}
        assert positions["r"].x == 50.0

    def test_deterministic(self) -> None:
        tasks = _tree({"r": ["a", "b"], "a": ["a1", "a2"], "b": ["b1"]}, ["r"])
        assert compute_layout(tasks, ["r"]) == compute_layout(tasks, ["r"])

    def test_positions_are_distinct(self) -> None:
        tasks = _tree({"r": ["a", "b"], "a": ["a1", "a2"], "b": ["b1", "b2"]}, ["r"])
        positions = compute_layout(tasks, ["r"])
        coords = [(p.x, p.y) for p in positions.values()]
        assert len(set(coords)) == len(coords)

    def test_custom_dimensions(self) -> None:
        config = LayoutConfig(start_x=0.0, column_width=100.0, node_height=50.0, vertical_spacing=10.0, midline=0.0)
        tasks = _tree({"r": ["a", "b"]}, ["r"])
        positions = compute_layout(tasks, ["r"], config)
        assert positions["r"] == Position(x=0.0, y=-25.0)
        assert positions["a"] == Position(x=100.0, y=-55.0)
        assert positions["b"] == Position(x=100.0, y=5.0)


class TestApplyLayout:
    def test_returns_new_project_and_leaves_input_untouched(self) -> None:
        tasks = _tree({"r": ["c"]}, ["r"])
        project = Project(id="p", tasks=tasks, root_task_ids=["r"])
        laid_out = apply_layout(project)
        assert laid_out is not project
        assert project.tasks["c"].position == Position()
        assert laid_out.tasks["c"].position == Position(x=330.0, y=120.0)

    def test_unchanged_tasks_are_shared(self) -> None:
        tasks = _tree({"r": ["c"]}, ["r"])
        project = apply_layout(Project(id="p", tasks=tasks, root_task_ids=["r"]))
        again = apply_layout(project)
        assert again.tasks["r"] is project.tasks["r"]
        assert again.tasks["c"] is project.tasks["c"]

    def test_does_not_touch_timestamps(self) -> None:
        tasks = _tree({"r": ["c"]}, ["r"])
        project = Project(id="p", tasks=tasks, root_task_ids=["r"], updated_at="2000-01-01T00:00:00+00:00")
        laid_out = apply_layout(project)
        assert laid_out.updated_at == "2000-01-01T00:00:00+00:00"
        assert laid_out.tasks["c"].updated_at == project.tasks["c"].updated_at

    def test_orphans_keep_stored_position(self) -> None:
        tasks = _tree({"r": []}, ["r"])
        tasks["o"] = Task(id="o", parent_id="gone", position=Position(x=7.0, y=9.0))
        laid_out = apply_layout(Project(id="p", tasks=tasks, root_task_ids=["r"]))
        assert laid_out.tasks["o"].position == Position(x=7.0, y=9.0)
