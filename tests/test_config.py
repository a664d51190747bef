"""Tests for eq_tracker.config INI loading and environment overrides."""

import configparser

import pytest

from eq_tracker.config import (
    BackscanSettings,
    ConsiderSettings,
    ScanSettings,
    TrackerConfig,
    _load_from_ini,
    config,
    get_config_status,
    load_config,
    print_config_summary,
    use_test_data_dir,
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "EQT_LOGS_DIR",
        "EQT_BASE_DIR",
        "EQT_DATA_DIR",
        "EQT_SCAN_INTERVAL_SEC",
        "EQT_ACCEPT_ALL_CONSIDERS",
        "EQT_STRICT_UNSTABLE",
        "EQT_INVIS_MAX_MINUTES",
        "EQT_COMBAT_RECENT_MINUTES",
        "EQT_BACKSCAN_MAX_MB",
        "EQT_BACKSCAN_RETRY_MINUTES",
        "EQT_WEBHOOK_URL",
        "EQT_WEBHOOK_SECRET",
        "EQT_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.mark.unit
def test_ini_sections(tmp_path, clean_env):
    path = tmp_path / "tracker.ini"
    path.write_text(
        "[paths]\nlogs_dir = /games/eq/Logs\n"
        "[consider]\nstrict_unstable = yes\ninvis_max_minutes = 15\n"
        "[backscan]\nmax_mb = 8\nretry_minutes = 0\n"
        "[entities]\nadditions = a storm giant, Dain Frostreaver IV\n"
        "[export]\nfavorites = Zeke,Bob\nfavorites_only = true\n"
        "[logging]\nlevel = debug\nformat = json\n",
        encoding="utf-8",
    )

    cfg = load_config(path)

    assert cfg.paths.logs_dir == "/games/eq/Logs"
    assert cfg.consider.strict_unstable is True
    assert cfg.consider.invis_max_minutes == 15
    assert cfg.consider.lookbehind_lines == 10
    assert cfg.backscan.budget_bytes == 8 * 1024 * 1024
    assert cfg.backscan.retry_seconds == 0
    assert cfg.entities.additions == ["a storm giant", "Dain Frostreaver IV"]
    assert cfg.export.favorites == ["Zeke", "Bob"]
    assert cfg.export.favorites_only is True
    assert cfg.logging.level == "DEBUG"
    assert cfg.logging.format == "json"


@pytest.mark.unit
def test_unknown_log_format_is_ignored():
    parser = configparser.ConfigParser()
    parser.read_string("[logging]\nformat = xml\n")
    cfg = TrackerConfig()

    _load_from_ini(parser, cfg)

    assert cfg.logging.format == "detailed"


@pytest.mark.unit
def test_env_overrides_win(tmp_path, monkeypatch, clean_env):
    path = tmp_path / "tracker.ini"
    path.write_text("[paths]\nlogs_dir = /from/ini\n[scan]\ninterval_sec = 90\n", encoding="utf-8")
    monkeypatch.setenv("EQT_LOGS_DIR", "/from/env")
    monkeypatch.setenv("EQT_ACCEPT_ALL_CONSIDERS", "true")
    monkeypatch.setenv("EQT_COMBAT_RECENT_MINUTES", "2")
    monkeypatch.setenv("EQT_BACKSCAN_MAX_MB", "50")
    monkeypatch.setenv("EQT_WEBHOOK_URL", "https://script.google.com/macros/s/abc/exec")
    monkeypatch.setenv("EQT_LOG_LEVEL", "warning")

    cfg = load_config(path)

    assert cfg.paths.logs_dir == "/from/env"
    assert cfg.scan.interval_sec == 90
    assert cfg.consider.accept_all_considers is True
    assert cfg.consider.combat_recent_seconds == 120
    assert cfg.backscan.budget_bytes == 20 * 1024 * 1024
    assert cfg.webhook.url.endswith("/exec")
    assert cfg.logging.level == "WARNING"


@pytest.mark.unit
@pytest.mark.parametrize(
    ("max_mb", "expected_mb"),
    [(0, 0), (-3, 0), (float("nan"), 0), (1, 5), (12.5, 12.5), (500, 20)],
)
def test_backscan_budget_clamped(max_mb, expected_mb):
    assert BackscanSettings(max_mb=max_mb).budget_bytes == int(expected_mb * 1024 * 1024)


@pytest.mark.unit
def test_heuristic_floors():
    assert ScanSettings(interval_sec=1).interval_seconds == 5.0
    assert ConsiderSettings(invis_max_minutes=0).invis_max_seconds == 60.0
    assert ConsiderSettings().lookbehind_lines == 3


@pytest.mark.unit
def test_derived_paths(tmp_path):
    cfg = TrackerConfig()
    cfg.paths.data_dir = str(tmp_path / "data")

    assert cfg.paths.state_file == tmp_path / "data" / "state.json"
    assert cfg.paths.override_path == tmp_path / "data" / "cov_list.txt"
    assert cfg.sheets_dir == tmp_path / "data" / "sheets"
    assert cfg.entity_settings().override_file == tmp_path / "data" / "cov_list.txt"


@pytest.mark.unit
def test_use_test_data_dir_restores(tmp_path):
    original = config.paths.data_dir
    with use_test_data_dir(tmp_path / "data") as path:
        assert config.paths.data_path == path
    assert config.paths.data_dir == original


@pytest.mark.unit
def test_status_and_summary(capsys):
    cfg = TrackerConfig()
    cfg.paths.logs_dir = "/games/eq/Logs"

    status = get_config_status(cfg)
    print_config_summary(cfg)

    assert status["logs_dir_set"] is True
    assert status["webhook_configured"] is False
    out = capsys.readouterr().out
    assert "/games/eq/Logs" in out
    assert "Backscan:     unbounded" in out
