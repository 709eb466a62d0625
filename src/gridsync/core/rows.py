"""Row store: Record and RenderedTemplate arenas for one table.

Rows are dense and contiguous from id 0. Both arenas are plain lists indexed
by row id and only grow through ensure_height()/ensure_width().

// [LAW:single-enforcer] The row store is the only writer of records/templates;
//   views get copies of rendered fields.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from gridsync.core.interpolation import DEFAULT_PASSES, interpolate
from gridsync.core.schema import Column

if TYPE_CHECKING:
    from gridsync.tui.protocols import TableView


@dataclass
class Record:
    """Raw decoded values for one row, plus per-column style overrides."""

    row_id: int
    values: dict[str, str] = field(default_factory=dict)
    styles: list[str | None] = field(default_factory=list)


@dataclass
class RenderedTemplate:
    """Interpolated, paint-ready text and style for one row."""

    row_id: int
    fields: dict[str, str] = field(default_factory=dict)
    styles: list[str] = field(default_factory=list)


def locate_view_row(view: "TableView", logical_id: int) -> int:
    """Map a logical row id to the view's row handle.

    An id the view does not know maps to ``view.row_count() + 1``, i.e. the
    row is assumed to be the next one appended.
    """
    handle = view.find_row(logical_id)
    if handle is None:
        return view.row_count() + 1
    return handle


class RowStore:
    def __init__(self, view: "TableView", passes: int = DEFAULT_PASSES) -> None:
        self._view = view
        self._passes = passes
        self._records: list[Record] = []
        self._templates: list[RenderedTemplate] = []

    @property
    def height(self) -> int:
        return len(self._records)

    def record(self, row_id: int) -> Record:
        return self._records[row_id]

    def template(self, row_id: int) -> RenderedTemplate:
        return self._templates[row_id]

    def ensure_height(self, required_index: int, columns: Sequence[Column]) -> int:
        """Allocate rows up to and including required_index.

        Returns the number of rows inserted; the view gets one
        insert_blank_rows() call for the whole range.
        """
        start = len(self._records)
        if required_index < start:
            return 0
        names = [column.name for column in columns]
        for row_id in range(start, required_index + 1):
            self._records.append(
                Record(
                    row_id=row_id,
                    values=dict.fromkeys(names, ""),
                    styles=[None] * len(names),
                )
            )
            self._templates.append(
                RenderedTemplate(
                    row_id=row_id,
                    fields=dict.fromkeys(names, ""),
                    styles=[""] * len(names),
                )
            )
        count = required_index + 1 - start
        self._view.insert_blank_rows(count)
        return count

    def ensure_width(self, columns: Sequence[Column]) -> None:
        """Give every existing row an empty slot for each column it lacks."""
        width = len(columns)
        for record, template in zip(self._records, self._templates):
            for column in columns:
                record.values.setdefault(column.name, "")
                template.fields.setdefault(column.name, "")
            if len(record.styles) < width:
                record.styles.extend([None] * (width - len(record.styles)))
            if len(template.styles) < width:
                template.styles.extend([""] * (width - len(template.styles)))

    def render(self, row_id: int, columns: Sequence[Column]) -> RenderedTemplate:
        """Recompute a row's template (text and style) from its record."""
        record = self._records[row_id]
        template = self._templates[row_id]
        for column in columns:
            template.fields[column.name] = interpolate(
                column.template, record.values, columns, self._passes
            )
        self.render_styles(row_id, columns)
        return template

    def render_styles(self, row_id: int, columns: Sequence[Column]) -> RenderedTemplate:
        """Recompute only the style side of a row's template."""
        record = self._records[row_id]
        template = self._templates[row_id]
        for index, column in enumerate(columns):
            override = record.styles[index] if index < len(record.styles) else None
            source = column.style if override is None else override
            styled = interpolate(source, record.values, columns, self._passes)
            if index < len(template.styles):
                template.styles[index] = styled
            else:
                template.styles.append(styled)
        return template
