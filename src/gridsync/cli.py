"""CLI entry point for gridsync."""

import argparse
import importlib
import logging
import sys
from pathlib import Path

import gridsync.io.logging_setup
import gridsync.io.settings
import gridsync.pipeline.frame_replayer
from gridsync.tui.app import GridSyncApp, TransportFactoryBuilder

logger = logging.getLogger(__name__)


def load_transport_builder(target: str) -> TransportFactoryBuilder:
    """Resolve `module:attribute` to a transport factory builder.

    The attribute is called with the app's Scheduler and must return a
    TransportFactory.

    Raises:
        ValueError: If target is not `module:attribute` or the attribute isn't callable
        ImportError: If the module can't be imported
    """
    module_name, sep, attr = target.partition(":")
    if not sep or not module_name or not attr:
        raise ValueError(f"transport must be module:factory, got {target!r}")
    module = importlib.import_module(module_name)
    builder = getattr(module, attr, None)
    if builder is None or not callable(builder):
        raise ValueError(f"{target} is not a callable transport factory builder")
    return builder


def _replay_builder(path: str, interval: float) -> TransportFactoryBuilder:
    frames = gridsync.pipeline.frame_replayer.load_frames(path)
    logger.info("loaded %d frames from %s", len(frames), path)

    def build(scheduler):
        return gridsync.pipeline.frame_replayer.replay_factory(frames, scheduler, interval)

    return build


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live table sync client")
    parser.add_argument(
        "--settings-path",
        type=Path,
        default=None,
        help="Settings file (default: $XDG_CONFIG_HOME/gridsync/settings.json)",
    )
    parser.add_argument("--base-url", type=str, default=None, help="Server base URL, e.g. ws://host:6060")
    parser.add_argument("--route", type=str, default=None, help="Route appended to the base URL")
    parser.add_argument("--user", type=str, default=None, help="user query value")
    parser.add_argument("--company", type=str, default=None, help="company query value")
    parser.add_argument("--products", type=str, default=None, help="products query value")
    parser.add_argument("--companies", type=str, default=None, help="companies query value")
    parser.add_argument(
        "--table",
        dest="table_address",
        type=str,
        default=None,
        help="Single-table mode: frames carry no address and apply to this table",
    )
    parser.add_argument("--max-backoff-ms", type=int, default=None, help="Reconnect delay cap (default: 30000)")
    parser.add_argument(
        "--passes",
        dest="interpolation_passes",
        type=int,
        default=None,
        help="Template interpolation passes (default: 2)",
    )
    parser.add_argument("--inbox-limit", type=int, default=None, help="Queued frames before coalescing (default: 256)")

    source = parser.add_mutually_exclusive_group()
    source.add_argument("--replay", type=str, default=None, help="Replay a frame log instead of connecting")
    source.add_argument(
        "--transport",
        type=str,
        default=None,
        help="Live transport factory builder as module:attribute",
    )
    parser.add_argument(
        "--interval",
        type=float,
        default=0.0,
        help="Seconds between replayed frames (default: 0)",
    )
    parser.add_argument("--once", action="store_true", help="Exit when the connection first closes")
    parser.add_argument("--save-settings", action="store_true", help="Persist the resolved connection settings")
    parser.add_argument("--print-url", action="store_true", help="Print the handshake URL and exit")
    return parser


_SETTING_ARGS = (
    "base_url",
    "route",
    "user",
    "company",
    "products",
    "companies",
    "table_address",
    "max_backoff_ms",
    "interpolation_passes",
    "inbox_limit",
)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = gridsync.io.settings.load_connection_settings(
        {name: getattr(args, name) for name in _SETTING_ARGS},
        path=args.settings_path,
    )
    if args.save_settings:
        gridsync.io.settings.save_connection_settings(settings, args.settings_path)

    if args.print_url:
        print(gridsync.io.settings.connection_url(settings))
        return 0

    if not args.replay and not args.transport:
        parser.error("one of --replay or --transport is required")

    # [LAW:single-enforcer] Runtime logger configuration is centralized in io.logging_setup.
    log_runtime = gridsync.io.logging_setup.configure(settings.table_address or "gridsync")
    logger.info("logging configured level=%s file=%s", log_runtime.level_name, log_runtime.file_path)

    try:
        if args.replay:
            builder = _replay_builder(args.replay, args.interval)
        else:
            builder = load_transport_builder(args.transport)
    except (OSError, ImportError, ValueError) as e:
        print(f"gridsync: {e}", file=sys.stderr)
        return 1

    app = GridSyncApp(settings, builder, exit_on_close=args.once)
    app.run()
    print(f"Log file: {log_runtime.file_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
