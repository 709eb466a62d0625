"""Main TUI application using Textual.

// [LAW:locality-or-seam] Thin host: ConnectionManager owns sync state; the app
//   only supplies views, a scheduler and a status bar.
"""

import logging
from collections.abc import Callable

from textual.app import App, ComposeResult
from textual.containers import VerticalScroll
from textual.timer import Timer
from textual.widgets import Footer, Header

from gridsync.app.connection import ConnectionManager
from gridsync.io.settings import ConnectionSettings, connection_url
from gridsync.pipeline.frame_types import Operation, StatusReport
from gridsync.tui.grid_view import GridView, TablePanel
from gridsync.tui.protocols import Scheduler, TransportFactory
from gridsync.tui.status_bar import StatusBar

logger = logging.getLogger(__name__)

# Builds the transport factory once the app's scheduler exists.
TransportFactoryBuilder = Callable[[Scheduler], TransportFactory]


class _TimerHandle:
    def __init__(self, timer: Timer) -> None:
        self._timer = timer

    def cancel(self) -> None:
        self._timer.stop()


class _CallbackHandle:
    """Cancelable wrapper for a callback posted to the message queue."""

    def __init__(self, callback: Callable[[], None]) -> None:
        self._callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __call__(self) -> None:
        if not self.cancelled:
            self._callback()


class TextualScheduler:
    """Scheduler over the app's message loop.

    Positive delays use textual timers. A textual Timer cannot have a zero
    interval, so immediate calls are posted with App.call_later instead.
    """

    def __init__(self, app: App) -> None:
        self._app = app

    def call_later(self, delay: float, callback: Callable[[], None]) -> _TimerHandle | _CallbackHandle:
        if delay <= 0:
            handle = _CallbackHandle(callback)
            self._app.call_later(handle)
            return handle
        return _TimerHandle(self._app.set_timer(delay, callback))


class GridSyncApp(App):
    """Live tables fed by one sync connection."""

    TITLE = "gridsync"

    CSS = """
    #tables {
        height: 1fr;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
    ]

    def __init__(
        self,
        settings: ConnectionSettings,
        transport_factory: TransportFactoryBuilder,
        *,
        exit_on_close: bool = False,
    ) -> None:
        super().__init__()
        self._settings = settings
        self._transport_factory = transport_factory
        self._exit_on_close = exit_on_close
        self._panels: dict[str, TablePanel] = {}
        self.manager: ConnectionManager | None = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield VerticalScroll(id="tables")
        yield StatusBar(connection_url(self._settings))
        yield Footer()

    def on_mount(self) -> None:
        scheduler = TextualScheduler(self)
        self.manager = ConnectionManager.from_settings(
            self._settings,
            self._transport_factory(scheduler),
            self.view_for,
            scheduler,
        )
        self.manager.add_status_observer(self._on_status)
        self.manager.start()

    def on_unmount(self) -> None:
        if self.manager is not None:
            self.manager.dispose()

    def view_for(self, address: str) -> GridView:
        """Return the view for a table address, mounting a panel on first use."""
        panel = self._panels.get(address)
        if panel is None:
            logger.info("mounting table %r", address)
            panel = TablePanel(address)
            self._panels[address] = panel
            self.query_one("#tables", VerticalScroll).mount(panel)
        return panel.view

    def _on_status(self, report: StatusReport) -> None:
        self.query_one(StatusBar).show_report(report)
        if self._exit_on_close and report.operation is Operation.CLOSE:
            self.exit()
