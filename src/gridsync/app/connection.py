"""Connection lifecycle, frame dispatch and telemetry.

State machine:

    CONNECTING --open--> OPEN --error/close--> CLOSED --timer--> CONNECTING ...
    any state --dispose()--> DISPOSED (terminal)

Reconnect delay after a close is ``min(max_backoff_ms, (2**attempts - 1) * 1000)``
computed before attempts is incremented. attempts starts at 0, is reset to 1 on
every successful open, and grows by one per close, so from a cold start the
delays run 0, 1000, 3000, 7000, 15000, 30000 ms.

Everything here runs on one event loop: transport callbacks, the inbox drain
and the reconnect timer. No locks.

// [LAW:single-enforcer] ConnectionManager is the only sender of outbound frames.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from gridsync.app.table_binding import DeltaResult, TableBinding
from gridsync.core.interpolation import DEFAULT_PASSES
from gridsync.io.settings import ConnectionSettings, connection_url
from gridsync.pipeline.decoder import parse_frame
from gridsync.pipeline.frame_types import (
    ConnectionStatus,
    DeltaFrame,
    Frame,
    FrameError,
    Operation,
    RefreshReason,
    SchemaFrame,
    StatusReport,
    refresh_request,
)
from gridsync.pipeline.inbox import DEFAULT_INBOX_LIMIT, FrameInbox
from gridsync.tui.protocols import Scheduler, TableView, TimerHandle, Transport, TransportFactory

logger = logging.getLogger(__name__)

DEFAULT_MAX_BACKOFF_MS = 30_000

ViewProvider = Callable[[str], "TableView | None"]
StatusObserver = Callable[[StatusReport], None]


class ConnectionPhase(Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"
    DISPOSED = "disposed"


@dataclass
class ConnectionState:
    attempts: int = 0
    phase: ConnectionPhase = ConnectionPhase.CONNECTING

    @property
    def is_open(self) -> bool:
        return self.phase is ConnectionPhase.OPEN


def backoff_delay_ms(attempts: int, cap_ms: int = DEFAULT_MAX_BACKOFF_MS) -> int:
    """Reconnect delay for the attempt count before it is incremented."""
    return min(cap_ms, (2**attempts - 1) * 1000)


class AsyncioScheduler:
    """Scheduler over an asyncio loop (the running loop by default)."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(delay, callback)


class _Listener:
    """Binds transport events to the generation that created the transport."""

    def __init__(self, manager: ConnectionManager, generation: int) -> None:
        self._manager = manager
        self._generation = generation

    def on_open(self) -> None:
        self._manager._handle_open(self._generation)

    def on_message(self, text: str) -> None:
        self._manager._handle_message(self._generation, text)

    def on_error(self, error: BaseException | None) -> None:
        self._manager._handle_error(self._generation, error)

    def on_close(self) -> None:
        self._manager._handle_close(self._generation)


class ConnectionManager:
    """Owns one logical connection and the table bindings it feeds.

    Transports must report events after the factory call returns (on a later
    loop iteration), never from inside it.
    """

    def __init__(
        self,
        url: str,
        transport_factory: TransportFactory,
        view_provider: ViewProvider,
        scheduler: Scheduler,
        *,
        user: str = "",
        table_address: str | None = None,
        max_backoff_ms: int = DEFAULT_MAX_BACKOFF_MS,
        passes: int = DEFAULT_PASSES,
        inbox_limit: int = DEFAULT_INBOX_LIMIT,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url = url
        self._transport_factory = transport_factory
        self._view_provider = view_provider
        self._scheduler = scheduler
        self._user = user
        self._table_address = table_address
        self._max_backoff_ms = max_backoff_ms
        self._passes = passes
        self._clock = clock

        self.state = ConnectionState()
        self._bindings: dict[str, TableBinding] = {}
        self._inbox = FrameInbox(inbox_limit)
        self._observers: list[StatusObserver] = []

        self._transport: Transport | None = None
        self._generation = 0
        self._closed_generation = 0
        self._reconnect_handle: TimerHandle | None = None
        self._drain_handle: TimerHandle | None = None

    @classmethod
    def from_settings(
        cls,
        settings: ConnectionSettings,
        transport_factory: TransportFactory,
        view_provider: ViewProvider,
        scheduler: Scheduler,
    ) -> ConnectionManager:
        return cls(
            connection_url(settings),
            transport_factory,
            view_provider,
            scheduler,
            user=settings.user,
            table_address=settings.table_address,
            max_backoff_ms=settings.max_backoff_ms,
            passes=settings.interpolation_passes,
            inbox_limit=settings.inbox_limit,
        )

    # ─── Public API ───────────────────────────────────────────────────────

    @property
    def bindings(self) -> dict[str, TableBinding]:
        return dict(self._bindings)

    def add_status_observer(self, observer: StatusObserver) -> None:
        self._observers.append(observer)

    def start(self) -> None:
        if self.state.phase is ConnectionPhase.DISPOSED:
            raise RuntimeError("connection manager has been disposed")
        self._connect()

    def dispose(self) -> None:
        """Stop for good: cancel timers, close the transport, never reconnect."""
        if self.state.phase is ConnectionPhase.DISPOSED:
            return
        self.state.phase = ConnectionPhase.DISPOSED
        self._generation += 1
        for handle in (self._reconnect_handle, self._drain_handle):
            if handle is not None:
                handle.cancel()
        self._reconnect_handle = None
        self._drain_handle = None
        self._inbox.clear()
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()
        logger.info("connection to %s disposed", self.url)

    # ─── Lifecycle ────────────────────────────────────────────────────────

    def _connect(self) -> None:
        self._generation += 1
        generation = self._generation
        self.state.phase = ConnectionPhase.CONNECTING
        logger.info("connecting to %s (attempt %d)", self.url, self.state.attempts)
        try:
            self._transport = self._transport_factory(self.url, _Listener(self, generation))
        except Exception as e:
            logger.exception("transport factory failed for %s", self.url)
            self._handle_error(generation, e)
            self._handle_close(generation)

    def _reconnect(self) -> None:
        self._reconnect_handle = None
        if self.state.phase is ConnectionPhase.DISPOSED:
            return
        self._connect()

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation or self.state.phase is ConnectionPhase.DISPOSED

    def _handle_open(self, generation: int) -> None:
        if self._is_stale(generation):
            return
        self.state.attempts = 1
        self.state.phase = ConnectionPhase.OPEN
        logger.info("connected to %s", self.url)
        self._report(ConnectionStatus.SUCCESS, Operation.OPEN)

    def _handle_error(self, generation: int, error: BaseException | None) -> None:
        if self._is_stale(generation):
            return
        logger.warning("transport error on %s: %s", self.url, error)
        self.state.phase = ConnectionPhase.CLOSED
        self._report(ConnectionStatus.FAILURE, Operation.ERROR)

    def _handle_close(self, generation: int) -> None:
        if self._is_stale(generation) or generation == self._closed_generation:
            return
        self._closed_generation = generation
        self.state.phase = ConnectionPhase.CLOSED
        self._transport = None
        self._report(ConnectionStatus.PENDING, Operation.CLOSE)

        delay = backoff_delay_ms(self.state.attempts, self._max_backoff_ms)
        self.state.attempts += 1
        logger.info("connection to %s closed; reconnecting in %d ms", self.url, delay)
        self._reconnect_handle = self._scheduler.call_later(delay / 1000, self._reconnect)

    # ─── Inbound frames ───────────────────────────────────────────────────

    def _handle_message(self, generation: int, text: str) -> None:
        if self._is_stale(generation):
            return
        try:
            frame = parse_frame(
                text,
                addressed=self._table_address is None,
                default_address=self._table_address or "",
            )
        except FrameError as e:
            logger.warning("dropping frame %.40r: %s", text, e)
            self._send(refresh_request(e.reason))
            return
        self._inbox.put(frame)
        if self._drain_handle is None:
            self._drain_handle = self._scheduler.call_later(0, self._drain)

    def _drain(self) -> None:
        self._drain_handle = None
        while (frame := self._inbox.pop()) is not None:
            self._apply(frame)
        if self._inbox.take_overflow():
            self._send(refresh_request(RefreshReason.BACKPRESSURE))

    def _apply(self, frame: Frame) -> None:
        if isinstance(frame, SchemaFrame):
            self._apply_schema(frame)
        elif isinstance(frame, DeltaFrame):
            self._apply_delta(frame)

    def _apply_schema(self, frame: SchemaFrame) -> None:
        binding = self._bindings.get(frame.address)
        if binding is None:
            view = self._view_provider(frame.address)
            if view is None:
                logger.debug("no view for table %r; schema ignored", frame.address)
                return
            binding = TableBinding(frame.address, view, self._passes)
            self._bindings[frame.address] = binding
        if binding.apply_schema(frame):
            self._send(refresh_request(RefreshReason.SCHEMA_UPDATE))

    def _apply_delta(self, frame: DeltaFrame) -> None:
        binding = self._bindings.get(frame.address)
        if binding is None:
            logger.debug("no table bound at %r; delta ignored", frame.address)
            return
        start = self._clock()
        try:
            result = binding.apply_delta(frame)
        except FrameError as e:
            logger.warning("rejected delta for %s: %s", frame.address, e)
            self._send(refresh_request(e.reason))
            result = DeltaResult()
        for _ in result.mismatches:
            self._send(refresh_request(RefreshReason.RECONCILE_FAILURE))
        duration = int((self._clock() - start) * 1000)
        self._report(
            ConnectionStatus.SUCCESS,
            frame.operation,
            rows=binding.view.row_count(),
            length=frame.payload_length,
            change=result.changed_cells,
            duration=duration,
            sequence=frame.sequence,
            address=frame.address,
        )

    # ─── Outbound frames ──────────────────────────────────────────────────

    def _report(self, status: ConnectionStatus, operation: Operation, **fields) -> None:
        report = StatusReport(status, operation, user=self._user, **fields)
        for observer in self._observers:
            observer(report)
        self._send(report.encode())

    def _send(self, text: str) -> None:
        if self._transport is None or not self.state.is_open:
            logger.debug("not connected; dropped %.40r", text)
            return
        try:
            self._transport.send(text)
        except OSError as e:
            # The transport reports the failure through on_error/on_close.
            logger.warning("send failed on %s: %s", self.url, e)
