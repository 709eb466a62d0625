"""Test harness for gridsync.

Re-exports all public API for convenient imports:
    from tests.harness import FakeView, SyncHarness, schema_frame, run_app, ...
"""

from tests.harness.app_runner import run_app, settle
from tests.harness.builders import column, delta_frame, schema_frame, token
from tests.harness.fakes import (
    FakeScheduler,
    FakeTimer,
    FakeTransport,
    FakeView,
    TransportRecorder,
)
from tests.harness.sync import SyncHarness

__all__ = [
    "run_app",
    "settle",
    "column",
    "delta_frame",
    "schema_frame",
    "token",
    "FakeScheduler",
    "FakeTimer",
    "FakeTransport",
    "FakeView",
    "TransportRecorder",
    "SyncHarness",
]
