"""Bounded inbound frame queue.

Frames are parsed on receipt and applied later, one at a time, by the drain.
When a frame arrives with the inbox at its limit:

1. adjacent frames of the same type for the same address are merged: deltas
   of one kind fold their cells (later values win, later sequence wins,
   payload lengths add up), schema frames overlay by column position
2. if that does not free a slot, every pending delta frame is dropped and the
   inbox remembers that the server must resend everything

Schema frames are never dropped, so the limit bounds delta frames only: the
queue grows past it only by schema frames that could not be merged.
"""

from __future__ import annotations

import logging
from collections import deque

from gridsync.pipeline.frame_types import DeltaFrame, Frame, RowDelta, SchemaFrame

logger = logging.getLogger(__name__)

DEFAULT_INBOX_LIMIT = 256


def merge_deltas(first: DeltaFrame, second: DeltaFrame) -> DeltaFrame:
    """Fold two delta frames for the same table into one."""
    merged: dict[int, dict[int, str]] = {}
    for frame in (first, second):
        for row in frame.rows:
            cells = merged.setdefault(row.row_index, {})
            for column, value in row.cells:
                cells[column] = value
    rows = tuple(
        RowDelta(row_index=index, cells=tuple(cells.items())) for index, cells in merged.items()
    )
    return DeltaFrame(
        address=second.address,
        kind=second.kind,
        rows=rows,
        sequence=second.sequence,
        payload_length=first.payload_length + second.payload_length,
    )


def merge_schemas(first: SchemaFrame, second: SchemaFrame) -> SchemaFrame:
    """Overlay a later schema frame on an earlier one for the same table."""
    columns = list(first.columns)
    columns[: len(second.columns)] = second.columns
    return SchemaFrame(address=second.address, columns=tuple(columns))


def _mergeable(a: Frame, b: Frame) -> bool:
    if a.address != b.address:
        return False
    if isinstance(a, SchemaFrame) and isinstance(b, SchemaFrame):
        return True
    return isinstance(a, DeltaFrame) and isinstance(b, DeltaFrame) and a.kind is b.kind


def _merge(a: Frame, b: Frame) -> Frame:
    if isinstance(a, SchemaFrame):
        return merge_schemas(a, b)
    return merge_deltas(a, b)


class FrameInbox:
    def __init__(self, limit: int = DEFAULT_INBOX_LIMIT) -> None:
        if limit < 1:
            raise ValueError(f"inbox limit must be positive, got {limit}")
        self._limit = limit
        self._frames: deque[Frame] = deque()
        self._overflowed = False

    def __len__(self) -> int:
        return len(self._frames)

    def put(self, frame: Frame) -> None:
        if len(self._frames) >= self._limit:
            self._coalesce()
        if len(self._frames) >= self._limit:
            self._drop_deltas()
        self._frames.append(frame)

    def pop(self) -> Frame | None:
        return self._frames.popleft() if self._frames else None

    def take_overflow(self) -> bool:
        """Return and clear the dropped-frames flag."""
        overflowed, self._overflowed = self._overflowed, False
        return overflowed

    def clear(self) -> None:
        self._frames.clear()
        self._overflowed = False

    def _coalesce(self) -> None:
        coalesced: deque[Frame] = deque()
        for frame in self._frames:
            if coalesced and _mergeable(coalesced[-1], frame):
                coalesced[-1] = _merge(coalesced[-1], frame)
            else:
                coalesced.append(frame)
        if len(coalesced) < len(self._frames):
            logger.debug("inbox coalesced %d frames into %d", len(self._frames), len(coalesced))
        self._frames = coalesced

    def _drop_deltas(self) -> None:
        kept = deque(frame for frame in self._frames if not isinstance(frame, DeltaFrame))
        dropped = len(self._frames) - len(kept)
        if dropped:
            logger.warning("inbox full: dropped %d delta frames", dropped)
            self._overflowed = True
        self._frames = kept
