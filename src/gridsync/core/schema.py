"""Column definitions and the per-table schema store.

// [LAW:one-source-of-truth] SchemaStore owns column order; the view mirrors it
//   and is told to grow or to redefine an existing column, never to shrink.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

from gridsync.core.value_codec import decode


@dataclass(frozen=True)
class ColumnSpec:
    """One raw schema tuple as it arrived on the wire (tokens still encoded)."""

    name: str
    caption: str
    template: str
    style: str
    resizable: str
    sortable: str
    hidden: str
    width: str = ""


@dataclass(frozen=True)
class Column:
    """Decoded column definition."""

    name: str
    caption: str = ""
    template: str = ""
    style: str = ""
    resizable: bool = False
    sortable: bool = False
    hidden: bool = False
    width: int | None = None
    token: str = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "token", "{" + self.name + "}")

    @classmethod
    def from_spec(cls, spec: ColumnSpec) -> "Column":
        return cls(
            name=spec.name,
            caption=decode(spec.caption),
            template=decode(spec.template),
            style=decode(spec.style),
            resizable=spec.resizable == "true",
            sortable=spec.sortable == "true",
            hidden=spec.hidden == "true",
            width=_parse_width(spec.width),
        )


def _parse_width(raw: str) -> int | None:
    try:
        return int(raw)
    except ValueError:
        return None


class SchemaStore:
    """Ordered column list for one table. Length never decreases."""

    def __init__(self) -> None:
        self._columns: list[Column] = []

    def __len__(self) -> int:
        return len(self._columns)

    def __iter__(self) -> Iterator[Column]:
        return iter(self._columns)

    def __getitem__(self, index: int) -> Column:
        return self._columns[index]

    @property
    def columns(self) -> tuple[Column, ...]:
        return tuple(self._columns)

    def names(self) -> list[str]:
        return [column.name for column in self._columns]

    def apply(self, specs: Iterable[ColumnSpec]) -> int:
        """Overwrite/append columns by position. Returns the tuple count."""
        count = 0
        for index, spec in enumerate(specs):
            column = Column.from_spec(spec)
            if index < len(self._columns):
                self._columns[index] = column
            else:
                self._columns.append(column)
            count += 1
        return count
