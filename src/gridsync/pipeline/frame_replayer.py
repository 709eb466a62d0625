"""Frame log replay - plays recorded server frames through the Transport contract.

A frame log is plain text, one inbound frame per line. Blank lines and lines
starting with '#' are skipped. The replayer behaves like a server that opens,
sends every frame in order and then closes, so the whole sync path (decode,
apply, reconcile, status, reconnect) runs exactly as it does live.
"""

import logging
from collections.abc import Callable, Sequence
from pathlib import Path

from gridsync.tui.protocols import Scheduler, TimerHandle, TransportListener

logger = logging.getLogger(__name__)


def load_frames(path: str | Path) -> list[str]:
    """Load a frame log.

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    frames = []
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            frame = line.rstrip("\r\n")
            if not frame.strip() or frame.startswith("#"):
                continue
            frames.append(frame)
    return frames


class FrameReplayer:
    """Transport that replays a fixed frame sequence.

    Every event is delivered through the scheduler, never synchronously from
    the constructor. Outbound frames are kept in `sent`.
    """

    def __init__(
        self,
        frames: Sequence[str],
        listener: TransportListener,
        scheduler: Scheduler,
        interval: float = 0.0,
    ) -> None:
        self._frames = list(frames)
        self._listener = listener
        self._scheduler = scheduler
        self._interval = interval
        self._position = 0
        self._closed = False
        self._handle: TimerHandle | None = None
        self.sent: list[str] = []
        self._schedule(0, self._open)

    def send(self, text: str) -> None:
        if self._closed:
            raise ConnectionError("replay transport is closed")
        logger.debug("replay sent %s", text)
        self.sent.append(text)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._listener.on_close()

    def _schedule(self, delay: float, callback: Callable[[], None]) -> None:
        self._handle = self._scheduler.call_later(delay, callback)

    def _open(self) -> None:
        self._listener.on_open()
        self._schedule(self._interval, self._next)

    def _next(self) -> None:
        self._handle = None
        if self._closed:
            return
        if self._position >= len(self._frames):
            self.close()
            return
        frame = self._frames[self._position]
        self._position += 1
        self._listener.on_message(frame)
        self._schedule(self._interval, self._next)


def replay_factory(
    frames: Sequence[str], scheduler: Scheduler, interval: float = 0.0
) -> Callable[[str, TransportListener], FrameReplayer]:
    """TransportFactory that replays frames on every connect; the URL is ignored."""

    def factory(url: str, listener: TransportListener) -> FrameReplayer:
        logger.info("replaying %d frames in place of %s", len(frames), url)
        return FrameReplayer(frames, listener, scheduler, interval)

    return factory
