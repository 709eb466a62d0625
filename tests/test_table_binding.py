"""Tests for applying schema and delta frames to one table."""

import pytest

from gridsync.app.table_binding import TableBinding
from gridsync.pipeline.decoder import parse_frame
from gridsync.pipeline.frame_types import FrameError, RefreshReason
from tests.harness import FakeView, column, delta_frame, schema_frame

SCHEMA = schema_frame(
    column("first"),
    column("last"),
    column("full", template="{first} {last}", style="color: {tone}"),
    column("tone", hidden=True),
)


@pytest.fixture
def binding(view):
    binding = TableBinding("grid", view)
    binding.apply_schema(parse_frame(SCHEMA))
    return binding


def _apply(binding, rows, **kwargs):
    return binding.apply_delta(parse_frame(delta_frame(rows, **kwargs)))


# ─── Schema ───────────────────────────────────────────────────────────────────


class TestApplySchema:
    def test_first_schema_widens_view(self, view):
        binding = TableBinding("grid", view)
        assert binding.apply_schema(parse_frame(SCHEMA)) is True
        assert [c.name for c in view.columns] == ["first", "last", "full", "tone"]
        assert view.columns[3].hidden is True

    def test_same_schema_again_does_not_widen(self, binding, view):
        assert binding.apply_schema(parse_frame(SCHEMA)) is False
        assert view.column_count() == 4

    def test_redefinition_reaches_view_without_widening(self, binding, view):
        assert binding.apply_schema(parse_frame(schema_frame(column("first", caption="Given")))) is False
        assert binding.schema[0].caption == "Given"
        assert len(binding.schema) == 4
        assert view.column_count() == 4
        assert view.columns[0].caption == "Given"
        assert view.replaced == [0]

    def test_unchanged_columns_not_replaced(self, binding, view):
        binding.apply_schema(parse_frame(SCHEMA))
        assert view.replaced == []

    def test_renamed_column_reconciles(self, binding, view):
        _apply(binding, {0: {0: "Ada", 1: "Lovelace"}})
        renamed = schema_frame(
            column("first"),
            column("surname"),
            column("full", template="{first} {surname}"),
            column("tone", hidden=True),
        )
        binding.apply_schema(parse_frame(renamed))
        assert [c.name for c in view.columns] == ["first", "surname", "full", "tone"]

        result = _apply(binding, {0: {0: "Ada", 1: "Byron"}})
        assert result.mismatches == []
        assert view.cell(0, "surname") == "Byron"
        assert view.cell(0, "full") == "Ada Byron"

        assert _apply(binding, {0: {0: "Augusta"}}).mismatches == []

    def test_growth_adds_only_new_columns(self, binding, view):
        wider = schema_frame(
            column("first"), column("last"), column("full"), column("tone"), column("age")
        )
        assert binding.apply_schema(parse_frame(wider)) is True
        assert [c.name for c in view.columns][-2:] == ["tone", "age"]
        assert view.column_count() == 5

    def test_existing_rows_gain_slots(self, binding):
        _apply(binding, {0: {0: "Ada"}})
        binding.apply_schema(
            parse_frame(
                schema_frame(
                    column("first"), column("last"), column("full"), column("tone"), column("age")
                )
            )
        )
        assert binding.rows.record(0).values["age"] == ""


# ─── Table deltas ─────────────────────────────────────────────────────────────


class TestApplyTableDelta:
    def test_delta_before_schema_ignored(self, view):
        binding = TableBinding("grid", view)
        result = _apply(binding, {0: {0: "x"}})
        assert result.changed_cells == 0
        assert view.insert_calls == []

    def test_writes_rendered_row(self, binding, view):
        result = _apply(binding, {0: {0: "Ada", 1: "Lovelace", 3: "green"}})
        assert result.changed_cells == 3
        assert result.row_ids == [0]
        assert result.mismatches == []
        assert view.rows[0] == {"first": "Ada", "last": "Lovelace", "full": "Ada Lovelace", "tone": "green"}
        assert view.styles[0][2] == "color: green"

    def test_height_grows_in_one_batch(self, binding, view):
        _apply(binding, {4: {0: "e"}, 1: {0: "b"}})
        assert view.insert_calls == [5]
        assert binding.rows.height == 5
        assert view.cell(4, "first") == "e"
        assert view.cell(2, "first") == ""

    def test_repaint_deferred_until_batch_end(self, binding, view):
        _apply(binding, {0: {0: "a"}, 1: {0: "b"}})
        assert all(suppress for *_, suppress in view.writes)
        assert view.repaints == [0, 1]

    def test_partial_update_keeps_other_cells(self, binding, view):
        _apply(binding, {0: {0: "Ada", 1: "Lovelace"}})
        _apply(binding, {0: {1: "Byron"}})
        assert view.cell(0, "full") == "Ada Byron"

    def test_rows_deduplicated(self, binding):
        frame = parse_frame("Tgrid|0:0=>a|0:1=>b")
        result = binding.apply_delta(frame)
        assert result.row_ids == [0]
        assert result.changed_cells == 2

    def test_undeclared_column_rejects_whole_frame(self, binding, view):
        with pytest.raises(FrameError) as excinfo:
            _apply(binding, {0: {0: "ok"}, 1: {7: "bad"}})
        assert excinfo.value.reason is RefreshReason.UNDECLARED_COLUMN
        assert view.writes == []
        assert view.insert_calls == []

    def test_view_mismatch_reported(self, binding, view):
        _apply(binding, {0: {0: "seed"}})
        view.tamper[(0, "first")] = "stale"
        result = _apply(binding, {0: {0: "fresh"}})
        assert [(m.row_id, m.column, m.expected, m.actual) for m in result.mismatches] == [
            (0, "first", "fresh", "stale")
        ]

    def test_view_without_the_row(self):
        view = FakeView(swallow_inserts=True)
        binding = TableBinding("grid", view)
        binding.apply_schema(parse_frame(SCHEMA))
        result = _apply(binding, {0: {0: "x"}})
        assert view.writes == []
        assert len(result.mismatches) == 1
        assert result.mismatches[0].actual is None


# ─── Highlight deltas ─────────────────────────────────────────────────────────


class TestApplyHighlightDelta:
    def test_sets_style_override_only(self, binding, view):
        _apply(binding, {0: {0: "Ada", 3: "red"}})
        result = _apply(binding, {0: {0: "background: {tone}"}}, highlight=True)
        assert result.changed_cells == 1
        assert binding.rows.record(0).values["first"] == "Ada"
        assert view.styles[0][0] == "background: red"
        assert view.cell(0, "first") == "Ada"

    def test_not_reconciled(self, binding, view):
        _apply(binding, {0: {0: "Ada"}})
        view.tamper[(0, "first")] = "stale"
        result = _apply(binding, {0: {0: "font-weight: bold"}}, highlight=True)
        assert result.mismatches == []
