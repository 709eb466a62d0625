"""App lifecycle management for Textual in-process tests.

Creates GridSyncApp instances fed by a FrameReplayer and manages the
run_test() lifecycle. Every call builds a fresh app and transport.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator

from textual.pilot import Pilot

from gridsync.io.settings import ConnectionSettings
from gridsync.pipeline.frame_replayer import replay_factory
from gridsync.tui.app import GridSyncApp


@asynccontextmanager
async def run_app(
    frames: list[str],
    *,
    settings: ConnectionSettings | None = None,
    size: tuple[int, int] = (120, 40),
) -> AsyncIterator[tuple[Pilot, GridSyncApp]]:
    """Run a GridSyncApp that replays `frames` once connected.

    Yields (pilot, app) after the replay has had time to apply.
    """
    settings = settings or ConnectionSettings()
    app = GridSyncApp(settings, lambda scheduler: replay_factory(frames, scheduler))
    async with app.run_test(size=size) as pilot:
        await settle(pilot)
        yield pilot, app


async def settle(pilot: Pilot, rounds: int = 5) -> None:
    """Let timers, mounts and refreshes run."""
    for _ in range(rounds):
        await pilot.pause(0.05)
