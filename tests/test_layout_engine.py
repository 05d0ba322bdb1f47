"""Tests for the layout engine: row assignment over span trees."""
from __future__ import annotations

import copy
import random
from typing import Any

import pytest

from conftest import make_span
from tracegantt.errors import CyclicTraceError, InvalidTraceError
from tracegantt.layout.engine import LayoutResult, layout, ordered_children
from tracegantt.trace.span_model import Span
from tracegantt.trace.trace_model import parse_trace


def _random_tree(rng: random.Random, max_nodes: int) -> Span:
    """Build a random tree with shuffled, sometimes-tied child start times."""
    counter = [0]

    def build(depth: int) -> Span:
        counter[0] += 1
        span_id = f"n{counter[0]}"
        children: list[Span] = []
        if depth < 6:
            for _ in range(rng.randint(0, 4)):
                if counter[0] >= max_nodes:
                    break
                children.append(build(depth + 1))
        start = rng.randint(0, 20)  # narrow range forces ties
        return make_span(span_id, start, start + rng.randint(-5, 50), tuple(children))

    return build(0)


def _count_nodes(span: Span) -> int:
    return 1 + sum(_count_nodes(c) for c in span.children)


def _subtree_ids(span: Span) -> list[str]:
    ids = [span.span_id]
    for child in span.children:
        ids.extend(_subtree_ids(child))
    return ids


# ============================================================================
# Examples
# ============================================================================


class TestLayoutExamples:
    """Worked examples of row assignment."""

    def test_children_rows_follow_start_order(self, example_payload: dict[str, Any]) -> None:
        result = layout(parse_trace(example_payload))

        assert result.row_count == 4
        assert [p.span_id for p in result.positioned] == ["root", "c10", "c50", "c110"]
        assert [p.row for p in result.positioned] == [0, 1, 2, 3]
        assert [p.start_time for p in result.descendants] == [10, 50, 110]

    def test_single_root_without_children(self) -> None:
        result = layout(make_span("only", 0, 10))

        assert result.row_count == 1
        assert result.descendants == ()
        assert result.root.row == 0
        assert result.root.depth == 0

    def test_depth_and_parent_are_recorded(self, checkout_payload: dict[str, Any]) -> None:
        result = layout(parse_trace(checkout_payload))

        summary = [(p.service_name, p.row, p.depth, p.parent_span_id) for p in result.positioned]
        assert summary == [
            ("frontend", 0, 0, None),
            ("cart", 1, 1, "a1f0c3d2e4b50001"),
            ("redis", 2, 2, "a1f0c3d2e4b50002"),
            ("payment", 3, 1, "a1f0c3d2e4b50001"),
            ("payment-db", 4, 2, "a1f0c3d2e4b50004"),
            ("email", 5, 1, "a1f0c3d2e4b50001"),
        ]

    def test_domain_is_root_interval(self, checkout_payload: dict[str, Any]) -> None:
        result = layout(parse_trace(checkout_payload))
        assert result.domain == (1700000000000000000, 1700000000900000000)

    def test_inverted_span_does_not_raise(self) -> None:
        root = make_span("root", 0, 200, (make_span("bad", 100, 80),))

        result = layout(root)

        bad = result.by_span_id()["bad"]
        assert bad.row == 1
        assert bad.effective_duration == 0

    def test_accepts_raw_mapping(self, example_payload: dict[str, Any]) -> None:
        result = layout(example_payload)
        assert result.row_count == 4

    def test_accepts_trace(self, example_payload: dict[str, Any]) -> None:
        trace = parse_trace(example_payload)
        assert layout(trace) == layout(trace.root)

    def test_to_dict(self, example_payload: dict[str, Any]) -> None:
        data = layout(example_payload).to_dict()

        assert data["row_count"] == 4
        assert data["domain"] == [0, 160]
        assert data["positioned"][1]["span_id"] == "c10"
        assert data["positioned"][1]["depth"] == 1


# ============================================================================
# Ordering
# ============================================================================


class TestChildOrdering:
    """Tests for sorting children by start time."""

    def test_ties_keep_input_order(self) -> None:
        root = make_span(
            "root",
            0,
            100,
            (
                make_span("b", 20, 30),
                make_span("first-tie", 10, 15),
                make_span("second-tie", 10, 90),
                make_span("third-tie", 10, 11),
            ),
        )

        assert [c.span_id for c in ordered_children(root)] == [
            "first-tie",
            "second-tie",
            "third-tie",
            "b",
        ]
        assert [p.span_id for p in layout(root).descendants] == [
            "first-tie",
            "second-tie",
            "third-tie",
            "b",
        ]

    def test_ordered_children_does_not_mutate(self) -> None:
        root = make_span("root", 0, 100, (make_span("late", 50, 60), make_span("early", 5, 10)))

        ordered_children(root)
        layout(root)

        assert [c.span_id for c in root.children] == ["late", "early"]

    def test_layout_does_not_mutate_raw_payload(self, checkout_payload: dict[str, Any]) -> None:
        before = copy.deepcopy(checkout_payload)
        layout(checkout_payload)
        assert checkout_payload == before

    def test_subtree_rows_are_contiguous(self) -> None:
        root = make_span(
            "root",
            0,
            100,
            (
                make_span("b", 50, 60, (make_span("b1", 55, 56), make_span("b2", 51, 52))),
                make_span("a", 10, 20, (make_span("a1", 12, 13),)),
            ),
        )

        ids = [p.span_id for p in layout(root).positioned]
        assert ids == ["root", "a", "a1", "b", "b2", "b1"]


# ============================================================================
# Properties over random trees
# ============================================================================


class TestLayoutProperties:
    """Invariants that hold for any acyclic span tree."""

    @pytest.mark.parametrize("seed", range(25))
    def test_rows_are_a_permutation_of_node_count(self, seed: int) -> None:
        root = _random_tree(random.Random(seed), max_nodes=60)
        result = layout(root)

        rows = [p.row for p in result.positioned]
        assert result.row_count == _count_nodes(root)
        assert sorted(rows) == list(range(result.row_count))
        assert rows == list(range(result.row_count))

    @pytest.mark.parametrize("seed", range(25))
    def test_descendants_have_larger_rows(self, seed: int) -> None:
        root = _random_tree(random.Random(seed), max_nodes=60)
        result = layout(root)

        # Rebuild the parent relation from the positioned output
        parent_row: dict[int, int] = {}
        row_by_id_stack: list[tuple[int, int]] = []  # (depth, row)
        for p in result.positioned:
            while row_by_id_stack and row_by_id_stack[-1][0] >= p.depth:
                row_by_id_stack.pop()
            if row_by_id_stack:
                parent_row[p.row] = row_by_id_stack[-1][1]
            row_by_id_stack.append((p.depth, p.row))

        for row, parent in parent_row.items():
            assert row > parent

    @pytest.mark.parametrize("seed", range(25))
    def test_siblings_in_non_decreasing_start_order(self, seed: int) -> None:
        root = _random_tree(random.Random(seed), max_nodes=60)
        result = layout(root)

        siblings: dict[tuple[Any, int], list[float]] = {}
        for p in result.positioned:
            siblings.setdefault((p.parent_span_id, p.depth), []).append(p.start_time)
        for starts in siblings.values():
            assert starts == sorted(starts)

    @pytest.mark.parametrize("seed", range(10))
    def test_subtree_occupies_contiguous_block(self, seed: int) -> None:
        root = _random_tree(random.Random(seed), max_nodes=40)
        result = layout(root)
        by_id = result.by_span_id()

        stack = [root]
        while stack:
            span = stack.pop()
            rows = sorted(by_id[i].row for i in _subtree_ids(span))
            assert rows == list(range(by_id[span.span_id].row, by_id[span.span_id].row + len(rows)))
            stack.extend(span.children)

    def test_layout_is_repeatable(self) -> None:
        root = _random_tree(random.Random(7), max_nodes=80)
        assert layout(root) == layout(root)


# ============================================================================
# Failure handling
# ============================================================================


class TestLayoutFailures:
    """Tests for malformed and hostile input."""

    def test_none_root_raises(self) -> None:
        with pytest.raises(InvalidTraceError):
            layout(None)

    def test_unsupported_type_raises(self) -> None:
        with pytest.raises(InvalidTraceError):
            layout(42)  # type: ignore[arg-type]

    def test_mapping_missing_timestamps_raises(self) -> None:
        with pytest.raises(InvalidTraceError):
            layout({"span_id": "root", "service_name": "svc", "operation_name": "op"})

    def test_deep_tree_does_not_hit_recursion_limit(self) -> None:
        depth = 3000
        node = make_span(f"n{depth - 1}", depth - 1, depth)
        for i in range(depth - 2, -1, -1):
            node = make_span(f"n{i}", i, depth, (node,))

        result = layout(node)

        assert result.row_count == depth
        assert result.positioned[-1].depth == depth - 1

    def test_depth_limit_raises_cyclic_error(self) -> None:
        node = make_span("leaf", 0, 1)
        for i in range(10):
            node = make_span(f"n{i}", 0, 1, (node,))

        with pytest.raises(CyclicTraceError):
            layout(node, max_depth=5)

    def test_span_that_is_its_own_ancestor_raises(self) -> None:
        root = make_span("root", 0, 10)
        # Frozen dataclasses can still be forced into a cycle
        object.__setattr__(root, "children", (make_span("child", 1, 2, (root,)),))

        with pytest.raises(CyclicTraceError, match="own ancestor"):
            layout(root)

    def test_shared_subtree_is_not_a_cycle(self) -> None:
        shared = make_span("shared", 5, 6)
        root = make_span("root", 0, 10, (make_span("a", 1, 2, (shared,)), make_span("b", 3, 4, (shared,))))

        result = layout(root)
        assert [p.span_id for p in result.positioned] == ["root", "a", "shared", "b", "shared"]

    def test_result_type(self) -> None:
        assert isinstance(layout(make_span("r", 0, 1)), LayoutResult)
