"""Status bar: connection state and the last applied delta.

// [LAW:one-source-of-truth] Everything shown is derived from the last StatusReport.
"""

from rich.text import Text
from textual.widgets import Static

from gridsync.pipeline.frame_types import ConnectionStatus, Operation, StatusReport

_INDICATORS = {
    ConnectionStatus.SUCCESS: ("●", "bold green", "Connected"),
    ConnectionStatus.FAILURE: ("✖", "bold red", "Error"),
    ConnectionStatus.PENDING: ("◌", "yellow", "Reconnecting"),
}


def render_status(report: StatusReport | None, url: str = "") -> Text:
    """Render the status line for the latest report (or the initial state)."""
    result = Text()
    if report is None:
        result.append("○ Connecting", style="dim")
    else:
        indicator, style, label = _INDICATORS[report.status]
        result.append(indicator, style=style)
        result.append(" ")
        result.append(label, style=style)
    if url:
        result.append("  ")
        result.append(url, style="dim")
    if report is None or report.operation not in (Operation.TABLE_UPDATE, Operation.HIGHLIGHT_UPDATE):
        return result

    result.append("  │ ", style="dim")
    if report.address:
        result.append(report.address, style="bold")
        result.append(" ")
    result.append(f"rows {report.rows}  changes {report.change}  {report.duration} ms")
    if report.sequence and report.sequence != "0":
        result.append(f"  #{report.sequence}", style="dim")
    return result


class StatusBar(Static):
    """One-line connection status, fed by ConnectionManager status observers."""

    DEFAULT_CSS = """
    StatusBar {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $panel;
    }
    """

    def __init__(self, url: str = "") -> None:
        super().__init__(render_status(None, url))
        self._url = url
        self.last_report: StatusReport | None = None
        self.last_delta: StatusReport | None = None

    def show_report(self, report: StatusReport) -> None:
        self.last_report = report
        if report.operation in (Operation.TABLE_UPDATE, Operation.HIGHLIGHT_UPDATE):
            self.last_delta = report
        self.update(render_status(report, self._url))
