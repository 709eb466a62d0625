"""Post-write check that the view shows what the row store rendered.

Row-granular and best-effort: the first differing column ends the check for
that row and yields one mismatch. Repair is never attempted locally; the
caller asks the server for a full resend.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from gridsync.core.rows import RowStore, locate_view_row
from gridsync.core.schema import SchemaStore
from gridsync.tui.protocols import TableView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Mismatch:
    row_id: int
    column: str
    expected: str
    actual: str | None


def reconcile_rows(
    view: TableView,
    schema: SchemaStore,
    rows: RowStore,
    row_ids: Iterable[int],
) -> list[Mismatch]:
    """Compare rendered templates against the view for each changed row."""
    mismatches = []
    for row_id in row_ids:
        mismatch = _check_row(view, schema, rows, row_id)
        if mismatch is not None:
            logger.warning(
                "reconcile failure row=%d column=%s expected=%r actual=%r",
                mismatch.row_id,
                mismatch.column,
                mismatch.expected,
                mismatch.actual,
            )
            mismatches.append(mismatch)
    return mismatches


def _check_row(view: TableView, schema: SchemaStore, rows: RowStore, row_id: int) -> Mismatch | None:
    template = rows.template(row_id)
    shown = view.read_row(locate_view_row(view, row_id))
    for column in schema:
        expected = template.fields.get(column.name, "")
        actual = None if shown is None else shown.get(column.name)
        if actual != expected:
            return Mismatch(row_id=row_id, column=column.name, expected=expected, actual=actual)
    return None
