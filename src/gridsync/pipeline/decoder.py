"""Inbound frame parsing.

Grammar (text frames):

    S[address|]col0|col1|...          col = name,caption,template,style,
                                            resizable,sortable,hidden[,width]
    T[seq:][address|]row0|row1|...    row = rowIndex:col=val[,col=val]*
    H[seq:][address|]row0|row1|...

In single-table mode (addressed=False) there is no address field and frames
bind to the caller's default address.

The optional sequence header is digits (optionally `@millis`) and a colon. It
is only taken as a header when the first `|` field holds more colons than the
unheadered grammar allows, so a single-table `T0:0=...` is a row, not a
sequence. Literal tokens must therefore keep `|`, `,`, `=` and `:` out of
their text; anything else goes hex-encoded.
"""

import re

from gridsync.core.schema import ColumnSpec
from gridsync.core.value_codec import decode
from gridsync.pipeline.frame_types import (
    DeltaFrame,
    DeltaKind,
    Frame,
    FrameError,
    FrameTag,
    RowDelta,
    SchemaFrame,
)

_SEQUENCE_HEADER = re.compile(r"^(\d+(?:@\d+)?):")
_MIN_COLUMN_FIELDS = 7


def parse_frame(text: str, *, addressed: bool = True, default_address: str = "") -> Frame:
    """Classify and parse one inbound frame.

    Raises:
        FrameError: On an unknown tag or a structurally broken payload.
    """
    try:
        tag = FrameTag(text[:1])
    except ValueError:
        raise FrameError(f"unknown frame tag {text[:1]!r}") from None
    payload = text[1:]
    if tag is FrameTag.SCHEMA:
        return _parse_schema(payload, addressed, default_address)
    kind = DeltaKind.HIGHLIGHT if tag is FrameTag.HIGHLIGHT else DeltaKind.TABLE
    return _parse_delta(payload, kind, addressed, default_address)


def split_sequence(payload: str, *, addressed: bool = True) -> tuple[str, str]:
    """Strip an optional `sequence:` header. Returns (sequence, rest)."""
    match = _SEQUENCE_HEADER.match(payload)
    if match is None:
        return "0", payload
    first_field = payload.split("|", 1)[0]
    allowed = 0 if addressed else 1
    if first_field.count(":") <= allowed:
        return "0", payload
    return match.group(1), payload[match.end():]


def _split_address(payload: str, addressed: bool, default_address: str) -> tuple[str, list[str]]:
    parts = payload.split("|")
    if addressed:
        return parts[0], parts[1:]
    return default_address, parts


def _parse_schema(payload: str, addressed: bool, default_address: str) -> SchemaFrame:
    address, parts = _split_address(payload, addressed, default_address)
    columns = []
    for part in filter(None, parts):
        values = part.split(",")
        if len(values) < _MIN_COLUMN_FIELDS:
            raise FrameError(f"schema column {part!r} has {len(values)} fields")
        columns.append(
            ColumnSpec(
                name=values[0],
                caption=values[1],
                template=values[2],
                style=values[3],
                resizable=values[4],
                sortable=values[5],
                hidden=values[6],
                width=values[7] if len(values) > _MIN_COLUMN_FIELDS else "",
            )
        )
    return SchemaFrame(address=address, columns=tuple(columns))


def _parse_delta(payload: str, kind: DeltaKind, addressed: bool, default_address: str) -> DeltaFrame:
    sequence, payload = split_sequence(payload, addressed=addressed)
    address, parts = _split_address(payload, addressed, default_address)
    rows = tuple(_parse_row(part) for part in parts if part)
    return DeltaFrame(
        address=address,
        kind=kind,
        rows=rows,
        sequence=sequence,
        payload_length=len(payload),
    )


def _parse_row(part: str) -> RowDelta:
    index, sep, delta = part.partition(":")
    if not sep:
        raise FrameError(f"row field {part!r} has no ':'")
    row_index = _parse_index(index, "row")
    cells = []
    for cell in filter(None, delta.split(",")):
        column, sep, token = cell.partition("=")
        if not sep:
            raise FrameError(f"cell {cell!r} has no '='")
        cells.append((_parse_index(column, "column"), decode(token)))
    return RowDelta(row_index=row_index, cells=tuple(cells))


def _parse_index(raw: str, what: str) -> int:
    if not (raw.isascii() and raw.isdigit()):
        raise FrameError(f"{what} index {raw!r} is not a non-negative integer")
    return int(raw)
