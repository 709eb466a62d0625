"""Per-address table context: schema, rows and the view they drive.

// [LAW:no-shared-mutable-globals] Each ConnectionManager owns a dict of these,
//   keyed by table address.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from gridsync.core.interpolation import DEFAULT_PASSES
from gridsync.core.rows import RowStore, locate_view_row
from gridsync.core.schema import Column, SchemaStore
from gridsync.pipeline.frame_types import (
    DeltaFrame,
    DeltaKind,
    FrameError,
    RefreshReason,
    SchemaFrame,
)
from gridsync.pipeline.reconciler import Mismatch, reconcile_rows
from gridsync.tui.protocols import TableView

logger = logging.getLogger(__name__)


@dataclass
class DeltaResult:
    """What one delta frame did to the table."""

    changed_cells: int = 0
    row_ids: list[int] = field(default_factory=list)
    mismatches: list[Mismatch] = field(default_factory=list)


class TableBinding:
    def __init__(self, address: str, view: TableView, passes: int = DEFAULT_PASSES) -> None:
        self.address = address
        self.view = view
        self.schema = SchemaStore()
        self.rows = RowStore(view, passes)

    # ─── Schema ───────────────────────────────────────────────────────────

    def apply_schema(self, frame: SchemaFrame) -> bool:
        """Apply a schema frame. Returns True when the view had to widen."""
        before = self.schema.columns
        minimum = self.schema.apply(frame.columns)
        self.rows.ensure_width(self.schema.columns)
        self.redefine_view_columns(before)
        return self.ensure_view_width(minimum)

    def redefine_view_columns(self, before: tuple[Column, ...]) -> None:
        """Push overwritten definitions to columns the view already has."""
        shared = min(len(before), self.view.column_count())
        for index in range(shared):
            column = self.schema[index]
            if column != before[index]:
                logger.info("table %s: column %d redefined as %s", self.address, index, column.name)
                self.view.replace_column(index, column)

    def ensure_view_width(self, minimum: int) -> bool:
        width = self.view.column_count()
        if width >= minimum:
            return False
        for index in range(width, len(self.schema)):
            self.view.add_column(self.schema[index])
        logger.info(
            "table %s widened from %d to %d columns", self.address, width, len(self.schema)
        )
        return True

    # ─── Rows ─────────────────────────────────────────────────────────────

    def apply_delta(self, frame: DeltaFrame) -> DeltaResult:
        """Apply a table or highlight frame as one batch.

        Raises:
            FrameError: If any cell names a column the schema has not declared.
                Nothing is written in that case.
        """
        result = DeltaResult()
        if len(self.schema) == 0:
            logger.debug("table %s: delta before schema ignored", self.address)
            return result
        if not frame.rows:
            return result
        self._check_columns(frame)

        columns = self.schema.columns
        self.rows.ensure_height(max(row.row_index for row in frame.rows), columns)

        highlight = frame.kind is DeltaKind.HIGHLIGHT
        for row in frame.rows:
            handle = locate_view_row(self.view, row.row_index)
            if handle >= self.rows.height:
                logger.warning("table %s: view has no row %d", self.address, row.row_index)
                result.mismatches.append(
                    Mismatch(row_id=row.row_index, column="", expected="", actual=None)
                )
                continue
            record = self.rows.record(handle)
            for column_index, value in row.cells:
                if highlight:
                    record.styles[column_index] = value
                else:
                    record.values[columns[column_index].name] = value
            if highlight:
                template = self.rows.render_styles(handle, columns)
            else:
                template = self.rows.render(handle, columns)
            self.view.write_row(
                handle, dict(template.fields), list(template.styles), suppress_repaint=True
            )
            result.changed_cells += len(row.cells)
            if handle not in result.row_ids:
                result.row_ids.append(handle)

        for handle in result.row_ids:
            self.view.repaint_row(handle)
        if not highlight:
            result.mismatches += reconcile_rows(self.view, self.schema, self.rows, result.row_ids)
        return result

    def _check_columns(self, frame: DeltaFrame) -> None:
        width = len(self.schema)
        for row in frame.rows:
            for column_index, _ in row.cells:
                if column_index >= width:
                    raise FrameError(
                        f"table {self.address} row {row.row_index} references column "
                        f"{column_index} but only {width} are declared",
                        reason=RefreshReason.UNDECLARED_COLUMN,
                    )
