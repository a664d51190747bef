"""
Command-line interface for EQ Character Tracker.

Provides CLI commands for running and inspecting the tracker:
- scan: Run one scan cycle and exit
- run: Scan continuously at the configured interval
- backscan: Search older log text for sources with no known zone
- entities: Print the merged Entity Set
- status: Print the saved zones and standings
- config: Print the effective configuration

Usage:
    eq-tracker scan [--logs-dir DIR] [--base-dir DIR] [--data-dir DIR]
    eq-tracker run [--interval SECONDS] [--cycles N]
    eq-tracker backscan
    eq-tracker entities
    eq-tracker status
    eq-tracker config

Every command accepts --config PATH to read a specific INI file, and
--log-level to override the configured level. Environment variables
(EQT_LOGS_DIR, EQT_DATA_DIR, ...) still win over the INI file.
"""

import argparse
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from eq_tracker import __version__
from eq_tracker.config import LoggingSettings, TrackerConfig, load_config, print_config_summary
from eq_tracker.cycle import CycleReport, ScanLoop, run_scan_cycle
from eq_tracker.entities.builder import build_entity_set
from eq_tracker.ingest.scanner import LogScanner
from eq_tracker.state.store import StateWriteError, load_state, save_state

logger = logging.getLogger(__name__)

_FORMATS = {
    "simple": "%(levelname)s: %(message)s",
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
}


class JsonLogFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def _formatter(fmt: str) -> logging.Formatter:
    if fmt == "json":
        return JsonLogFormatter()
    return logging.Formatter(_FORMATS.get(fmt, _FORMATS["detailed"]))


def configure_logging(settings: LoggingSettings, log_file: Path | None = None) -> None:
    """
    Configure the root logger from the [logging] config section.

    Console output goes to stderr. When ``log_file`` is given the same records
    are appended there too; a log file that cannot be opened only costs the
    file output.
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    level = logging.getLevelName(settings.level.upper())
    root.setLevel(level if isinstance(level, int) else logging.INFO)

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_formatter(settings.format))
    root.addHandler(console)

    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
        except OSError as e:
            logger.warning("Cannot open log file %s: %s", log_file, e)
        else:
            file_handler.setFormatter(_formatter(settings.format))
            root.addHandler(file_handler)


def _load_settings(args: argparse.Namespace) -> TrackerConfig:
    """Load config and apply command-line overrides."""
    cfg = load_config(args.config)
    for attr in ("logs_dir", "base_dir", "data_dir"):
        value = getattr(args, attr, None)
        if value:
            setattr(cfg.paths, attr, value)
    if args.log_level:
        cfg.logging.level = args.log_level.upper()
    return cfg


def _print_cycle(report: CycleReport) -> None:
    scan = report.scan
    if scan is not None:
        print(
            f"Scanned {scan.sources} log(s), {scan.lines} new line(s); "
            f"{len(scan.zones_updated)} zone update(s), {len(scan.decisions)} consider(s), "
            f"{len(scan.backscanned)} backscan hit(s)"
        )
        for key in scan.errors:
            print(f"  error: {key}", file=sys.stderr)
    if report.reconciled:
        print(f"Recomputed standing adopted for: {', '.join(report.reconciled)}")
    if report.inventories:
        print(f"Parsed {report.inventories} inventory file(s)")
    if report.sheets:
        print(f"Wrote {len(report.sheets)} sheet(s)")
    if report.delivery is not None:
        print(f"Webhook: {report.delivery.status} {report.delivery.detail}".rstrip())
    if report.failed_steps:
        print(f"Failed steps: {', '.join(report.failed_steps)}", file=sys.stderr)


def cmd_scan(args: argparse.Namespace) -> int:
    """
    Run one scan cycle.

    Returns:
        0 on success, 1 if any step failed
    """
    cfg = _load_settings(args)
    configure_logging(cfg.logging, cfg.paths.tracker_log_file)
    if not cfg.paths.logs_dir:
        print("Warning: no logs directory configured (set [paths] logs_dir or EQT_LOGS_DIR)")

    state = load_state(cfg.paths.state_file)
    report = run_scan_cycle(state, cfg)
    _print_cycle(report)
    return 1 if report.failed_steps else 0


def cmd_run(args: argparse.Namespace) -> int:
    """
    Scan continuously until interrupted.

    Returns:
        0 on clean shutdown, 1 on configuration error
    """
    cfg = _load_settings(args)
    if args.interval is not None:
        cfg.scan.interval_sec = args.interval
    configure_logging(cfg.logging, cfg.paths.tracker_log_file)
    if not cfg.paths.logs_dir:
        print("Error: no logs directory configured", file=sys.stderr)
        return 1

    state = load_state(cfg.paths.state_file)
    loop = ScanLoop(state, cfg)
    logger.info(
        "Tracking %s every %.0fs (Ctrl+C to stop)", cfg.paths.logs_dir, loop.interval
    )
    try:
        loop.run(max_cycles=args.cycles)
    except KeyboardInterrupt:
        loop.stop()
        print("\nStopped.")
    return 0


def cmd_backscan(args: argparse.Namespace) -> int:
    """
    Backscan every source that has no zone yet, ignoring the retry schedule.

    Returns:
        0 on success, 1 on error
    """
    cfg = _load_settings(args)
    configure_logging(cfg.logging, cfg.paths.tracker_log_file)
    if not cfg.paths.logs_dir:
        print("Error: no logs directory configured", file=sys.stderr)
        return 1

    state = load_state(cfg.paths.state_file)
    found = LogScanner(state, cfg).force_backscan(cfg.paths.logs_dir)
    for key in found:
        fact = state.zones_by_source[key]
        print(f"{fact.character:<16} {fact.zone:<32} {Path(key).name}")
    print(f"Backscan found {len(found)} zone(s).")

    try:
        save_state(state, cfg.paths.state_file)
    except StateWriteError as e:
        print(f"Error saving state: {e}", file=sys.stderr)
        return 1
    return 0


def cmd_entities(args: argparse.Namespace) -> int:
    """Print the merged, normalized Entity Set."""
    cfg = _load_settings(args)
    configure_logging(cfg.logging)
    entities = build_entity_set(cfg.entity_settings())
    for name in sorted(entities):
        print(name)
    print(f"({len(entities)} entities)", file=sys.stderr)
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    """Print the saved zones and standings."""
    cfg = _load_settings(args)
    configure_logging(cfg.logging)
    state = load_state(cfg.paths.state_file)

    print("\n" + "=" * 60)
    print("ZONES")
    print("=" * 60)
    if not state.zones_by_source:
        print("(none)")
    for fact in sorted(state.zones_by_source.values(), key=lambda f: f.character.lower()):
        print(f"{fact.character:<16} {fact.zone:<32} {fact.detected_local}")

    print("\n" + "=" * 60)
    print("STANDINGS")
    print("=" * 60)
    if not state.standings:
        print("(none)")
    for character in sorted(state.standings, key=str.lower):
        record = state.standings[character]
        print(f"{character:<16} {record.display_label:<32} {record.entity}")
    print()
    return 0


def cmd_config(args: argparse.Namespace) -> int:
    """Print the effective configuration."""
    print_config_summary(_load_settings(args))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="eq-tracker",
        description="EQ Character Tracker - zones and faction standings from EverQuest logs",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config", type=Path, help="INI file to read instead of config/tracker.ini"
    )
    parser.add_argument("--log-level", type=str, help="Override the configured log level")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_path_options(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--logs-dir", type=str, help="Folder holding eqlog_*.txt files")
        sub.add_argument("--base-dir", type=str, help="Folder holding *-Inventory.txt dumps")
        sub.add_argument("--data-dir", type=str, help="Folder for state and exports")

    scan_parser = subparsers.add_parser(
        "scan",
        help="Run one scan cycle",
        description="Read new log text, update zones and standings, export, then exit.",
    )
    add_path_options(scan_parser)
    scan_parser.set_defaults(func=cmd_scan)

    run_parser = subparsers.add_parser(
        "run",
        help="Scan continuously",
        description="Run scan cycles back to back until interrupted.",
    )
    add_path_options(run_parser)
    run_parser.add_argument(
        "--interval", type=int, help="Seconds between cycles (minimum 5; default from config)"
    )
    run_parser.add_argument("--cycles", type=int, help="Stop after this many cycles")
    run_parser.set_defaults(func=cmd_run)

    backscan_parser = subparsers.add_parser(
        "backscan",
        help="Find zones for logs that have none",
        description="Search older log text for every source with no known zone, right now.",
    )
    add_path_options(backscan_parser)
    backscan_parser.set_defaults(func=cmd_backscan)

    entities_parser = subparsers.add_parser("entities", help="Print the merged Entity Set")
    add_path_options(entities_parser)
    entities_parser.set_defaults(func=cmd_entities)

    status_parser = subparsers.add_parser("status", help="Print saved zones and standings")
    add_path_options(status_parser)
    status_parser.set_defaults(func=cmd_status)

    config_parser = subparsers.add_parser("config", help="Print the effective configuration")
    add_path_options(config_parser)
    config_parser.set_defaults(func=cmd_config)

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
