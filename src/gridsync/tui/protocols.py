"""Protocol definitions for the collaborators the sync core drives.

The core never imports a widget, socket or event loop directly. It talks to:

1. TableView: the on-screen grid for one table address
2. Transport: a message-based connection created by a TransportFactory
3. Scheduler: one-shot deferred calls on the single event loop

All three use structural typing, so implementations don't need to inherit
from these protocols. This module has no dependencies on other project modules.
"""

from collections.abc import Callable, Mapping
from typing import Protocol

from gridsync.core.schema import Column


class TableView(Protocol):
    """Grid widget contract for one table.

    Row handles are the integer row ids the row store assigns (dense, from 0).
    insert_blank_rows() appends rows whose ids continue from row_count().
    """

    def find_row(self, row_id: int) -> int | None:
        """Return the view's handle for row_id, or None when absent."""
        ...

    def insert_blank_rows(self, count: int) -> None:
        ...

    def add_column(self, column: Column) -> None:
        ...

    def replace_column(self, index: int, column: Column) -> None:
        """Redefine an existing column; rows keep their cell at that index."""
        ...

    def write_row(
        self,
        row_id: int,
        rendered: Mapping[str, str],
        styles: list[str],
        suppress_repaint: bool,
    ) -> None:
        """Write a row's rendered text (keyed by column name) and styles (by index)."""
        ...

    def repaint_row(self, row_id: int) -> None:
        ...

    def read_row(self, row_id: int) -> dict[str, str] | None:
        """Read back the rendered text currently shown, or None when absent."""
        ...

    def column_count(self) -> int:
        ...

    def row_count(self) -> int:
        ...


class TransportListener(Protocol):
    """Event sink a transport reports to. close always follows error."""

    def on_open(self) -> None:
        ...

    def on_message(self, text: str) -> None:
        ...

    def on_error(self, error: BaseException | None) -> None:
        ...

    def on_close(self) -> None:
        ...


class Transport(Protocol):
    def send(self, text: str) -> None:
        ...

    def close(self) -> None:
        ...


TransportFactory = Callable[[str, TransportListener], Transport]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """One-shot deferred calls on the event loop that owns the connection."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run callback once after delay seconds."""
        ...
