"""Tests for the per-source scanner and its backscan schedule."""

import pytest

import eq_tracker.ingest.scanner as scanner_module
from eq_tracker.ingest.scanner import DAILY_RETRY_SECONDS, LogScanner
from eq_tracker.logparse.standings import Standing
from tests.constants import append_log, log_line, write_log

ALLY = "Sontalak regards you as an ally -- looks like he would wipe the floor with you!"
PAD = "x" * 80


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _chatter(start: int, count: int) -> list[str]:
    return [log_line(start + i, f"Zeke tells the guild, '{i:05d} {PAD}'") for i in range(count)]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scanner(state, tracker_config, clock) -> LogScanner:
    return LogScanner(state, tracker_config, clock=clock)


@pytest.mark.ingest
class TestZoneFacts:
    def test_zone_fact_per_source(self, scanner, state, log_dir, entity_set):
        zeke = write_log(
            log_dir / "eqlog_Zeke_project1999.txt", [log_line(0, "You have entered Plane of Sky.")]
        )
        alt = write_log(
            log_dir / "eqlog_Zeke_green.txt", [log_line(5, "You have entered East Commonlands.")]
        )

        report = scanner.scan_logs(log_dir, entity_set)

        assert report.sources == 2
        assert state.zones_by_source[str(zeke)].zone == "Plane of Sky"
        assert state.zones_by_source[str(alt)].zone == "East Commonlands"
        assert state.zones_by_source[str(zeke)].character == "Zeke"
        assert report.backscanned == []

    def test_latest_zone_in_read_wins(self, scanner, state, log_dir, entity_set):
        path = write_log(
            log_dir / "eqlog_Zeke_project1999.txt",
            [
                log_line(0, "You have entered East Commonlands."),
                log_line(60, "You have entered Plane of Sky."),
            ],
        )

        scanner.scan_logs(log_dir, entity_set)

        assert state.zones_by_source[str(path)].zone == "Plane of Sky"

    def test_appended_text_only(self, scanner, state, log_dir, entity_set):
        path = write_log(
            log_dir / "eqlog_Zeke_project1999.txt", [log_line(0, "You have entered Plane of Sky.")]
        )
        scanner.scan_logs(log_dir, entity_set)

        append_log(path, [log_line(60, "You have entered Plane of Hate.")])
        report = scanner.scan_logs(log_dir, entity_set)

        assert state.zones_by_source[str(path)].zone == "Plane of Hate"
        assert report.lines == 1

    def test_standing_written_to_state(self, scanner, state, log_dir, entity_set):
        write_log(log_dir / "eqlog_Zeke_project1999.txt", [log_line(0, ALLY)])

        report = scanner.scan_logs(log_dir, entity_set)

        assert state.standings["Zeke"].standing is Standing.ALLY
        assert len(report.decisions) == 1

    def test_missing_directory_is_empty_pass(self, scanner, tmp_path, entity_set):
        report = scanner.scan_logs(tmp_path / "nope", entity_set)
        assert report.sources == 0


@pytest.mark.ingest
class TestBackscanSchedule:
    def test_first_sight_backscan_recovers_old_zone(self, scanner, state, log_dir, entity_set):
        lines = [log_line(0, "You have entered Plane of Sky."), *_chatter(1, 2600)]
        path = write_log(log_dir / "eqlog_Zeke_project1999.txt", lines)

        report = scanner.scan_logs(log_dir, entity_set)

        assert report.backscanned == [str(path)]
        assert state.zones_by_source[str(path)].zone == "Plane of Sky"
        assert str(path) not in state.backscan_next_at

    def test_miss_schedules_retry(self, scanner, state, log_dir, entity_set, clock):
        path = write_log(log_dir / "eqlog_Zeke_project1999.txt", _chatter(0, 5))

        scanner.scan_logs(log_dir, entity_set)

        assert str(path) not in state.zones_by_source
        assert state.backscan_next_at[str(path)] == clock.now + 600

    def test_retry_waits_for_schedule(self, scanner, state, log_dir, entity_set, clock, monkeypatch):
        path = write_log(log_dir / "eqlog_Zeke_project1999.txt", _chatter(0, 5))
        scanner.scan_logs(log_dir, entity_set)

        calls = []
        real = scanner_module.find_last_zone

        def counting(*args, **kwargs):
            calls.append(args[0])
            return real(*args, **kwargs)

        monkeypatch.setattr(scanner_module, "find_last_zone", counting)

        clock.now += 300
        append_log(path, _chatter(10, 1))
        scanner.scan_logs(log_dir, entity_set)
        assert calls == []

        clock.now += 301
        append_log(path, _chatter(20, 1))
        scanner.scan_logs(log_dir, entity_set)
        assert len(calls) == 1
        assert state.backscan_next_at[str(path)] == clock.now + 600

    def test_zero_retry_means_daily(self, state, tracker_config, log_dir, entity_set, clock):
        tracker_config.backscan.retry_minutes = 0
        path = write_log(log_dir / "eqlog_Zeke_project1999.txt", _chatter(0, 5))

        LogScanner(state, tracker_config, clock=clock).scan_logs(log_dir, entity_set)

        assert state.backscan_next_at[str(path)] == clock.now + DAILY_RETRY_SECONDS

    def test_seen_zone_clears_schedule(self, scanner, state, log_dir, entity_set):
        path = write_log(log_dir / "eqlog_Zeke_project1999.txt", _chatter(0, 5))
        scanner.scan_logs(log_dir, entity_set)
        assert str(path) in state.backscan_next_at

        append_log(path, [log_line(60, "You have entered Plane of Sky.")])
        scanner.scan_logs(log_dir, entity_set)

        assert str(path) not in state.backscan_next_at
        assert state.zones_by_source[str(path)].zone == "Plane of Sky"

    def test_force_backscan_ignores_schedule(self, scanner, state, log_dir, entity_set, clock):
        lines = [log_line(0, "You have entered Plane of Sky."), *_chatter(1, 2600)]
        path = write_log(log_dir / "eqlog_Zeke_project1999.txt", lines)
        state.offsets[str(path)] = path.stat().st_size
        state.backscan_next_at[str(path)] = clock.now + 10_000

        found = scanner.force_backscan(log_dir)

        assert found == [str(path)]
        assert state.zones_by_source[str(path)].zone == "Plane of Sky"

    def test_force_backscan_skips_sources_with_facts(self, scanner, state, log_dir, entity_set):
        write_log(
            log_dir / "eqlog_Zeke_project1999.txt", [log_line(0, "You have entered Plane of Sky.")]
        )
        scanner.scan_logs(log_dir, entity_set)

        assert scanner.force_backscan(log_dir) == []


@pytest.mark.ingest
def test_failure_on_one_source_does_not_stop_others(
    scanner, state, log_dir, entity_set, monkeypatch
):
    bad = write_log(log_dir / "eqlog_Bad_project1999.txt", [log_line(0, "x")])
    good = write_log(
        log_dir / "eqlog_Zeke_project1999.txt", [log_line(0, "You have entered Plane of Sky.")]
    )
    real = scanner_module.read_appended

    def flaky(path, *args, **kwargs):
        if path == bad:
            raise RuntimeError("boom")
        return real(path, *args, **kwargs)

    monkeypatch.setattr(scanner_module, "read_appended", flaky)

    report = scanner.scan_logs(log_dir, entity_set)

    assert report.errors == [str(bad)]
    assert state.zones_by_source[str(good)].zone == "Plane of Sky"
    assert str(bad) not in state.offsets
