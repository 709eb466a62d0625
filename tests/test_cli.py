"""Tests for the gridsync command line."""

import json

import pytest

from gridsync.cli import build_parser, load_transport_builder, main


def transport_builder(scheduler):
    return lambda url, listener: None


not_callable = 42


@pytest.fixture
def cli_env(tmp_path, monkeypatch, clean_logging):
    monkeypatch.setenv("GRIDSYNC_LOG_FILE", str(tmp_path / "cli.log"))
    for var in ("GRIDSYNC_USER", "GRIDSYNC_BASE_URL", "GRIDSYNC_TABLE"):
        monkeypatch.delenv(var, raising=False)
    return tmp_path


def test_parser_maps_flags_to_settings_names():
    args = build_parser().parse_args(["--table", "main", "--passes", "3", "--replay", "f"])
    assert args.table_address == "main"
    assert args.interpolation_passes == 3
    assert args.replay == "f"


def test_replay_and_transport_are_exclusive():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--replay", "f", "--transport", "m:f"])


def test_print_url(cli_env, capsys):
    settings_path = cli_env / "settings.json"
    code = main(["--settings-path", str(settings_path), "--user", "bob", "--print-url"])
    assert code == 0
    assert capsys.readouterr().out.strip() == (
        "ws://localhost:6060/update?user=bob&company=&products=&companies="
    )


def test_save_settings(cli_env):
    settings_path = cli_env / "settings.json"
    main(["--settings-path", str(settings_path), "--company", "acme", "--save-settings", "--print-url"])
    assert json.loads(settings_path.read_text())["connection"]["company"] == "acme"


def test_source_required(cli_env):
    with pytest.raises(SystemExit) as excinfo:
        main(["--settings-path", str(cli_env / "s.json")])
    assert excinfo.value.code == 2


def test_missing_replay_file(cli_env, capsys):
    code = main(["--settings-path", str(cli_env / "s.json"), "--replay", str(cli_env / "none")])
    assert code == 1
    assert "gridsync:" in capsys.readouterr().err


class TestLoadTransportBuilder:
    def test_resolves_attribute(self):
        assert load_transport_builder("tests.test_cli:transport_builder") is transport_builder

    @pytest.mark.parametrize(
        "target",
        ["tests.test_cli", "tests.test_cli:", ":x", "tests.test_cli:missing", "tests.test_cli:not_callable"],
    )
    def test_rejects_bad_targets(self, target):
        with pytest.raises(ValueError):
            load_transport_builder(target)

    def test_missing_module(self):
        with pytest.raises(ImportError):
            load_transport_builder("gridsync_no_such_module:factory")
