"""Typed frames for the gridsync delta protocol.

// [LAW:one-source-of-truth] The class IS the frame type; the wire tag lives only
//   in FrameTag and the outbound encoders below.
// [LAW:single-enforcer] gridsync.pipeline.decoder.parse_frame is the sole inbound
//   validation boundary.
"""

from dataclasses import dataclass, field
from enum import Enum

from gridsync.core.schema import ColumnSpec


# ─── Enums ────────────────────────────────────────────────────────────────────


class FrameTag(Enum):
    """First character of an inbound frame."""

    TABLE = "T"
    HIGHLIGHT = "H"
    SCHEMA = "S"


class DeltaKind(Enum):
    """Which side of the rendered template a delta frame updates."""

    TABLE = "table"
    HIGHLIGHT = "highlight"


class Operation(Enum):
    """Telemetry label carried in status frames (the `method` key)."""

    OPEN = "open"
    ERROR = "error"
    CLOSE = "close"
    TABLE_UPDATE = "updateTable"
    HIGHLIGHT_UPDATE = "highlightTable"


class ConnectionStatus(Enum):
    """Status icon the host shows for a status report."""

    SUCCESS = "success"
    FAILURE = "failure"
    PENDING = "pending"


class RefreshReason(Enum):
    """Why a full resend is being requested."""

    SCHEMA_UPDATE = "schemaUpdate"
    RECONCILE_FAILURE = "reconcileFailure"
    UNDECLARED_COLUMN = "undeclaredColumn"
    MALFORMED_FRAME = "malformedFrame"
    BACKPRESSURE = "backpressure"


# ─── Errors ───────────────────────────────────────────────────────────────────


class FrameError(ValueError):
    """A frame that cannot be applied. The reason doubles as the refresh reason."""

    def __init__(self, message: str, reason: RefreshReason = RefreshReason.MALFORMED_FRAME):
        super().__init__(message)
        self.reason = reason


# ─── Inbound frames ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RowDelta:
    """Changed cells for one row: (column_index, decoded_value) pairs."""

    row_index: int
    cells: tuple[tuple[int, str], ...]


@dataclass(frozen=True)
class Frame:
    """Base class for inbound frames."""

    address: str


@dataclass(frozen=True)
class SchemaFrame(Frame):
    columns: tuple[ColumnSpec, ...]


@dataclass(frozen=True)
class DeltaFrame(Frame):
    kind: DeltaKind
    rows: tuple[RowDelta, ...]
    sequence: str = "0"
    payload_length: int = 0

    @property
    def operation(self) -> Operation:
        if self.kind is DeltaKind.HIGHLIGHT:
            return Operation.HIGHLIGHT_UPDATE
        return Operation.TABLE_UPDATE

    @property
    def cell_count(self) -> int:
        return sum(len(row.cells) for row in self.rows)


# ─── Outbound frames ──────────────────────────────────────────────────────────


@dataclass(frozen=True)
class StatusReport:
    """Telemetry sent after every delta frame and every lifecycle event."""

    status: ConnectionStatus
    operation: Operation
    rows: int = 0
    length: int = 0
    change: int = 0
    duration: int = 0
    sequence: str = "0"
    address: str = ""
    user: str = field(default="", kw_only=True)

    def encode(self) -> str:
        return (
            f"status:rows={self.rows},length={self.length},change={self.change},"
            f"duration={self.duration},sequence={self.sequence},"
            f"address={self.address},user={self.user},method={self.operation.value}"
        )


def refresh_request(reason: RefreshReason) -> str:
    """Ask the server to resend its full state."""
    return f"refresh:everything=true,message={reason.value}"
