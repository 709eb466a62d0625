"""DataTable-backed table view.

GridView adapts a textual DataTable to the TableView contract; TablePanel is
the widget that hosts one table address (title + DataTable).

Row keys are str(row_id) and survive sorting. Column keys are the column's
position in the schema. Hidden columns are tracked here but never added to the
DataTable, so read_row() returns their last written text from this adapter and
every visible column's text from the DataTable itself.
"""

from collections.abc import Mapping

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import DataTable, Static
from textual.widgets.data_table import ColumnKey, RowKey

from gridsync.core.schema import Column
from gridsync.tui.cell_style import css_to_style


def _plain(cell: object) -> str:
    if isinstance(cell, Text):
        return cell.plain
    return "" if cell is None else str(cell)


class GridView:
    """TableView over a DataTable."""

    def __init__(self, table: DataTable) -> None:
        self.table = table
        self._columns: list[Column] = []
        self._keys: dict[int, ColumnKey] = {}
        self._hidden: dict[int, dict[str, str]] = {}
        self._sort_reverse: dict[int, bool] = {}

    # ─── TableView ────────────────────────────────────────────────────────

    def find_row(self, row_id: int) -> int | None:
        return row_id if RowKey(str(row_id)) in self.table.rows else None

    def insert_blank_rows(self, count: int) -> None:
        start = self.table.row_count
        blanks = [""] * len(self._keys)
        for row_id in range(start, start + count):
            self.table.add_row(*blanks, key=str(row_id))
            self._hidden[row_id] = {c.name: "" for c in self._columns if c.hidden}

    def add_column(self, column: Column) -> None:
        index = len(self._columns)
        self._columns.append(column)
        if column.hidden:
            for values in self._hidden.values():
                values[column.name] = ""
            return
        self._keys[index] = self._add_table_column(index, column)

    def replace_column(self, index: int, column: Column) -> None:
        """Redefine the column at index, carrying each row's current cell over.

        The DataTable has no relabel or reorder API, so its columns are rebuilt
        in schema order. Sort order is reset.
        """
        old = self._columns[index]
        if column == old:
            return
        snapshot: dict[int, dict[int, object]] = {}
        for row_key in list(self.table.rows):
            row_id = int(row_key.value)
            hidden = self._hidden.setdefault(row_id, {})
            cells = {i: self.table.get_cell(row_key, key) for i, key in self._keys.items()}
            carried = hidden.pop(old.name, "") if old.hidden else cells.pop(index, "")
            if column.hidden:
                hidden[column.name] = _plain(carried)
            else:
                cells[index] = carried
            snapshot[row_id] = cells
        self._columns[index] = column
        self.table.clear(columns=True)
        self._keys = {}
        self._sort_reverse.clear()
        for i, current in enumerate(self._columns):
            if not current.hidden:
                self._keys[i] = self._add_table_column(i, current)
        for row_id, cells in snapshot.items():
            self.table.add_row(*(cells.get(i, "") for i in self._keys), key=str(row_id))

    def _add_table_column(self, index: int, column: Column) -> ColumnKey:
        return self.table.add_column(
            column.caption or column.name,
            width=column.width,
            key=str(index),
            default="",
        )

    def write_row(
        self,
        row_id: int,
        rendered: Mapping[str, str],
        styles: list[str],
        suppress_repaint: bool,
    ) -> None:
        row_key = str(row_id)
        for index, column in enumerate(self._columns):
            value = rendered.get(column.name, "")
            if column.hidden:
                self._hidden.setdefault(row_id, {})[column.name] = value
                continue
            style = styles[index] if index < len(styles) else ""
            cell = Text(value, style=css_to_style(style) if style else "")
            self.table.update_cell(row_key, self._keys[index], cell)
        if not suppress_repaint:
            self.repaint_row(row_id)

    def repaint_row(self, row_id: int) -> None:
        if self.find_row(row_id) is None:
            return
        self.table.refresh_row(self.table.get_row_index(str(row_id)))

    def read_row(self, row_id: int) -> dict[str, str] | None:
        if self.find_row(row_id) is None:
            return None
        row_key = str(row_id)
        shown = dict(self._hidden.get(row_id, {}))
        for index, column in enumerate(self._columns):
            if not column.hidden:
                shown[column.name] = _plain(self.table.get_cell(row_key, self._keys[index]))
        return shown

    def column_count(self) -> int:
        return len(self._columns)

    def row_count(self) -> int:
        return self.table.row_count

    # ─── Sorting ──────────────────────────────────────────────────────────

    def sort_by(self, column_key: ColumnKey) -> bool:
        """Sort by a sortable column, toggling direction on repeat. Returns True if sorted."""
        index = int(column_key.value) if column_key.value is not None else -1
        if not (0 <= index < len(self._columns)) or not self._columns[index].sortable:
            return False
        reverse = not self._sort_reverse.get(index, True)
        self._sort_reverse[index] = reverse
        self.table.sort(column_key, key=_plain, reverse=reverse)
        return True


class TablePanel(Vertical):
    """Hosts one table address: a title line and its DataTable."""

    DEFAULT_CSS = """
    TablePanel {
        height: auto;
        max-height: 100%;
    }
    TablePanel > .table-title {
        text-style: bold;
        padding: 0 1;
    }
    """

    def __init__(self, address: str) -> None:
        super().__init__(classes="table-panel")
        self.address = address
        self.view = GridView(DataTable(zebra_stripes=True, cursor_type="row"))

    def compose(self) -> ComposeResult:
        yield Static(self.address or "table", classes="table-title")
        yield self.view.table

    def on_data_table_header_selected(self, event: DataTable.HeaderSelected) -> None:
        event.stop()
        self.view.sort_by(event.column_key)
