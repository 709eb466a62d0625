"""Tests for inbound frame parsing."""

import pytest

from gridsync.core.schema import ColumnSpec
from gridsync.pipeline.decoder import parse_frame, split_sequence
from gridsync.pipeline.frame_types import (
    DeltaFrame,
    DeltaKind,
    FrameError,
    Operation,
    RefreshReason,
    RowDelta,
    SchemaFrame,
)
from tests.harness import column, schema_frame


# ─── Schema frames ────────────────────────────────────────────────────────────


class TestSchema:
    def test_addressed(self):
        frame = parse_frame("Sgrid|name,>Name,>{name},>,true,false,false")
        assert frame == SchemaFrame(
            address="grid",
            columns=(ColumnSpec("name", ">Name", ">{name}", ">", "true", "false", "false"),),
        )

    def test_single_table_uses_default_address(self):
        frame = parse_frame(
            "Sname,>Name,>{name},>,true,false,false|qty,>Qty,>{qty},>,true,true,false",
            addressed=False,
            default_address="main",
        )
        assert frame.address == "main"
        assert [c.name for c in frame.columns] == ["name", "qty"]

    def test_width_field(self):
        frame = parse_frame(schema_frame(column("name", width=40)))
        assert frame.columns[0].width == "40"

    def test_empty_parts_skipped(self):
        frame = parse_frame("Sgrid||" + column("a") + "|")
        assert len(frame.columns) == 1

    def test_too_few_fields(self):
        with pytest.raises(FrameError) as excinfo:
            parse_frame("Sgrid|name,>Name,>{name}")
        assert excinfo.value.reason is RefreshReason.MALFORMED_FRAME


# ─── Delta frames ─────────────────────────────────────────────────────────────


class TestDelta:
    def test_table_frame(self):
        frame = parse_frame("Tgrid|0:0=>a,1=<42|2:0=>c")
        assert isinstance(frame, DeltaFrame)
        assert frame.address == "grid"
        assert frame.kind is DeltaKind.TABLE
        assert frame.operation is Operation.TABLE_UPDATE
        assert frame.sequence == "0"
        assert frame.rows == (
            RowDelta(0, ((0, "a"), (1, "B"))),
            RowDelta(2, ((0, "c"),)),
        )
        assert frame.cell_count == 3
        assert frame.payload_length == len("grid|0:0=>a,1=<42|2:0=>c")

    def test_highlight_frame(self):
        frame = parse_frame("Hgrid|0:1=>bold")
        assert frame.kind is DeltaKind.HIGHLIGHT
        assert frame.operation is Operation.HIGHLIGHT_UPDATE

    def test_single_table_row(self):
        frame = parse_frame("T0:0=<48656c6c6f", addressed=False, default_address="main")
        assert frame.address == "main"
        assert frame.sequence == "0"
        assert frame.rows == (RowDelta(0, ((0, "Hello"),)),)
        assert frame.payload_length == 15

    def test_addressed_sequence_header(self):
        frame = parse_frame("T17@1700000000:grid|0:0=>x")
        assert frame.sequence == "17@1700000000"
        assert frame.address == "grid"
        assert frame.payload_length == len("grid|0:0=>x")

    def test_numeric_address_without_sequence(self):
        frame = parse_frame("T5|0:0=>x")
        assert frame.address == "5"
        assert frame.sequence == "0"

    def test_single_table_sequence_header(self):
        frame = parse_frame("T9:0:0=>x", addressed=False)
        assert frame.sequence == "9"
        assert frame.rows == (RowDelta(0, ((0, "x"),)),)

    def test_empty_segments_skipped(self):
        frame = parse_frame("Tgrid|0:0=>a,||")
        assert frame.rows == (RowDelta(0, ((0, "a"),)),)

    def test_address_only(self):
        assert parse_frame("Tgrid").rows == ()


class TestSplitSequence:
    @pytest.mark.parametrize(
        ("payload", "addressed", "expected"),
        [
            ("grid|0:0=>a", True, ("0", "grid|0:0=>a")),
            ("3:grid|0:0=>a", True, ("3", "grid|0:0=>a")),
            ("0:0=>a", False, ("0", "0:0=>a")),
            ("3:0:0=>a", False, ("3", "0:0=>a")),
            ("3@99:0:0=>a", False, ("3@99", "0:0=>a")),
        ],
    )
    def test_header_detection(self, payload, addressed, expected):
        assert split_sequence(payload, addressed=addressed) == expected


class TestMalformed:
    @pytest.mark.parametrize(
        "text",
        [
            "",
            "X0:0=>a",
            "Tgrid|abc",
            "Tgrid|0:0",
            "Tgrid|x:0=>a",
            "Tgrid|0:-1=>a",
            "Tgrid|0:١=>a",
        ],
    )
    def test_raises_frame_error(self, text):
        with pytest.raises(FrameError) as excinfo:
            parse_frame(text)
        assert excinfo.value.reason is RefreshReason.MALFORMED_FRAME
