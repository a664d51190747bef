"""
Tracker configuration management.

This module handles loading and accessing tracker configuration from multiple
sources with a clear priority order:

    1. Environment variables (highest priority) - for scripted/headless runs
    2. Config file (config/tracker.ini) - for a desktop install
    3. Built-in defaults (lowest priority) - sensible fallbacks

Configuration is loaded once at module import time and cached. The
TrackerConfig dataclass provides typed access to all settings. The ingestion
engine never reads the singleton directly: the scan cycle receives the config
object it should use, so tests can build one by hand.

Usage:
    from eq_tracker.config import config

    print(config.paths.logs_dir)
    print(config.consider.invis_max_minutes)
    print(config.backscan.budget_bytes)

Environment Variable Mapping:
    EQT_LOGS_DIR              -> paths.logs_dir
    EQT_BASE_DIR              -> paths.base_dir
    EQT_DATA_DIR              -> paths.data_dir
    EQT_SCAN_INTERVAL_SEC     -> scan.interval_sec
    EQT_ACCEPT_ALL_CONSIDERS  -> consider.accept_all_considers
    EQT_STRICT_UNSTABLE       -> consider.strict_unstable
    EQT_INVIS_MAX_MINUTES     -> consider.invis_max_minutes
    EQT_COMBAT_RECENT_MINUTES -> consider.combat_recent_minutes
    EQT_BACKSCAN_MAX_MB       -> backscan.max_mb
    EQT_BACKSCAN_RETRY_MINUTES -> backscan.retry_minutes
    EQT_WEBHOOK_URL           -> webhook.url
    EQT_WEBHOOK_SECRET        -> webhook.secret
    EQT_LOG_LEVEL             -> logging.level
"""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

# =============================================================================
# PATH CONFIGURATION
# =============================================================================

# Project root directory (contains src/, config/, data/)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Config file paths
CONFIG_DIR = PROJECT_ROOT / "config"
CONFIG_FILE = CONFIG_DIR / "tracker.ini"
CONFIG_EXAMPLE = CONFIG_DIR / "tracker.example.ini"

_MIB = 1024 * 1024

# Backscan budget is clamped to this range (MB) whenever it is non-zero.
BACKSCAN_MIN_MB = 5
BACKSCAN_MAX_MB = 20


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================


def _resolve(path: str) -> Path:
    """Resolve a configured path; relative paths hang off the project root."""
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return PROJECT_ROOT / p


@dataclass
class PathSettings:
    """Where logs, inventory dumps and tracker data live."""

    logs_dir: str = ""
    base_dir: str = ""
    data_dir: str = "data"
    override_file: str = ""  # empty = <data_dir>/cov_list.txt

    @property
    def data_path(self) -> Path:
        """Absolute directory for state, tracker log and exports."""
        return _resolve(self.data_dir)

    @property
    def state_file(self) -> Path:
        return self.data_path / "state.json"

    @property
    def tracker_log_file(self) -> Path:
        return self.data_path / "eqwatcher.log"

    @property
    def override_path(self) -> Path:
        """User-editable entity list, one name per line."""
        if self.override_file:
            return _resolve(self.override_file)
        return self.data_path / "cov_list.txt"


@dataclass
class ScanSettings:
    """Scan cadence."""

    interval_sec: int = 60

    @property
    def interval_seconds(self) -> float:
        """Polling interval, never faster than every 5 seconds."""
        return float(max(5, self.interval_sec))


@dataclass
class ConsiderSettings:
    """Heuristics for trusting a consider (standing) reading."""

    accept_all_considers: bool = False
    strict_unstable: bool = False
    invis_max_minutes: int = 20
    combat_recent_minutes: int = 5

    @property
    def invis_max_seconds(self) -> float:
        return max(1, self.invis_max_minutes) * 60.0

    @property
    def combat_recent_seconds(self) -> float:
        return max(1, self.combat_recent_minutes) * 60.0

    @property
    def lookbehind_lines(self) -> int:
        """Number of preceding lines checked for invis/sneak/attack markers."""
        return 10 if self.strict_unstable else 3


@dataclass
class BackscanSettings:
    """Reverse zone search limits."""

    max_mb: float = 0  # 0 = whole file; otherwise clamped to 5-20 MB
    retry_minutes: int = 10  # 0 = retry once a day only

    @property
    def budget_bytes(self) -> int:
        """Byte budget for one backscan; 0 means unbounded."""
        try:
            raw = float(self.max_mb or 0)
        except (TypeError, ValueError):
            return 0
        if raw != raw or raw <= 0:  # NaN or disabled
            return 0
        mb = max(BACKSCAN_MIN_MB, min(BACKSCAN_MAX_MB, raw))
        return int(mb * _MIB)

    @property
    def retry_seconds(self) -> float:
        return max(0, self.retry_minutes) * 60.0


@dataclass
class EntitySettings:
    """User adjustments to the curated entity list."""

    names: list[str] = field(default_factory=list)
    additions: list[str] = field(default_factory=list)
    removals: list[str] = field(default_factory=list)
    override_file: Path | None = None


@dataclass
class ExportSettings:
    """Local CSV "sheets" output."""

    local_sheets_enabled: bool = True
    local_sheets_dir: str = ""  # empty = <data_dir>/sheets
    favorites: list[str] = field(default_factory=list)
    favorites_only: bool = False


@dataclass
class WebhookSettings:
    """Outbound delivery to a spreadsheet Apps Script endpoint."""

    enabled: bool = True
    url: str = ""
    secret: str = ""
    timeout_seconds: float = 15.0


@dataclass
class LoggingSettings:
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["simple", "detailed", "json"] = "detailed"


@dataclass
class TrackerConfig:
    """
    Complete tracker configuration.

    This is the main configuration object that aggregates all settings sections.
    Access via the module-level `config` singleton.
    """

    paths: PathSettings = field(default_factory=PathSettings)
    scan: ScanSettings = field(default_factory=ScanSettings)
    consider: ConsiderSettings = field(default_factory=ConsiderSettings)
    backscan: BackscanSettings = field(default_factory=BackscanSettings)
    entities: EntitySettings = field(default_factory=EntitySettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    webhook: WebhookSettings = field(default_factory=WebhookSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)

    @property
    def sheets_dir(self) -> Path:
        """Directory the CSV exports are written to."""
        if self.export.local_sheets_dir.strip():
            return _resolve(self.export.local_sheets_dir.strip())
        return self.paths.data_path / "sheets"

    def entity_settings(self) -> EntitySettings:
        """Entity settings with the override file path filled in."""
        return EntitySettings(
            names=list(self.entities.names),
            additions=list(self.entities.additions),
            removals=list(self.entities.removals),
            override_file=self.paths.override_path,
        )


# =============================================================================
# CONFIGURATION LOADING
# =============================================================================


def _parse_bool(value: str) -> bool:
    """Parse a string value to boolean."""
    return value.lower() in ("true", "yes", "1", "on", "enabled")


def _parse_list(value: str) -> list[str]:
    """Parse a comma-separated string to list, stripping whitespace."""
    if not value or value.strip() == "":
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _load_from_ini(parser: configparser.ConfigParser, cfg: TrackerConfig) -> None:
    """Load configuration from parsed INI file into TrackerConfig."""
    # Paths section
    if parser.has_section("paths"):
        for key in ("logs_dir", "base_dir", "data_dir", "override_file"):
            if parser.has_option("paths", key):
                setattr(cfg.paths, key, parser.get("paths", key).strip())

    # Scan section
    if parser.has_section("scan"):
        if parser.has_option("scan", "interval_sec"):
            cfg.scan.interval_sec = parser.getint("scan", "interval_sec")

    # Consider section
    if parser.has_section("consider"):
        if parser.has_option("consider", "accept_all_considers"):
            cfg.consider.accept_all_considers = _parse_bool(
                parser.get("consider", "accept_all_considers")
            )
        if parser.has_option("consider", "strict_unstable"):
            cfg.consider.strict_unstable = _parse_bool(parser.get("consider", "strict_unstable"))
        if parser.has_option("consider", "invis_max_minutes"):
            cfg.consider.invis_max_minutes = parser.getint("consider", "invis_max_minutes")
        if parser.has_option("consider", "combat_recent_minutes"):
            cfg.consider.combat_recent_minutes = parser.getint(
                "consider", "combat_recent_minutes"
            )

    # Backscan section
    if parser.has_section("backscan"):
        if parser.has_option("backscan", "max_mb"):
            cfg.backscan.max_mb = parser.getfloat("backscan", "max_mb")
        if parser.has_option("backscan", "retry_minutes"):
            cfg.backscan.retry_minutes = parser.getint("backscan", "retry_minutes")

    # Entities section
    if parser.has_section("entities"):
        if parser.has_option("entities", "names"):
            cfg.entities.names = _parse_list(parser.get("entities", "names"))
        if parser.has_option("entities", "additions"):
            cfg.entities.additions = _parse_list(parser.get("entities", "additions"))
        if parser.has_option("entities", "removals"):
            cfg.entities.removals = _parse_list(parser.get("entities", "removals"))

    # Export section
    if parser.has_section("export"):
        if parser.has_option("export", "local_sheets_enabled"):
            cfg.export.local_sheets_enabled = _parse_bool(
                parser.get("export", "local_sheets_enabled")
            )
        if parser.has_option("export", "local_sheets_dir"):
            cfg.export.local_sheets_dir = parser.get("export", "local_sheets_dir").strip()
        if parser.has_option("export", "favorites"):
            cfg.export.favorites = _parse_list(parser.get("export", "favorites"))
        if parser.has_option("export", "favorites_only"):
            cfg.export.favorites_only = _parse_bool(parser.get("export", "favorites_only"))

    # Webhook section
    if parser.has_section("webhook"):
        if parser.has_option("webhook", "enabled"):
            cfg.webhook.enabled = _parse_bool(parser.get("webhook", "enabled"))
        if parser.has_option("webhook", "url"):
            cfg.webhook.url = parser.get("webhook", "url").strip()
        if parser.has_option("webhook", "secret"):
            cfg.webhook.secret = parser.get("webhook", "secret").strip()
        if parser.has_option("webhook", "timeout_seconds"):
            cfg.webhook.timeout_seconds = parser.getfloat("webhook", "timeout_seconds")

    # Logging section
    if parser.has_section("logging"):
        if parser.has_option("logging", "level"):
            cfg.logging.level = parser.get("logging", "level").upper()
        if parser.has_option("logging", "format"):
            val = parser.get("logging", "format").lower()
            if val in ("simple", "detailed", "json"):
                cfg.logging.format = val  # type: ignore[assignment]


def _apply_env_overrides(cfg: TrackerConfig) -> None:
    """Apply environment variable overrides to configuration."""
    # Path settings
    if env_logs := os.getenv("EQT_LOGS_DIR"):
        cfg.paths.logs_dir = env_logs
    if env_base := os.getenv("EQT_BASE_DIR"):
        cfg.paths.base_dir = env_base
    if env_data := os.getenv("EQT_DATA_DIR"):
        cfg.paths.data_dir = env_data

    # Scan settings
    if env_interval := os.getenv("EQT_SCAN_INTERVAL_SEC"):
        cfg.scan.interval_sec = int(env_interval)

    # Consider heuristics
    if env_accept := os.getenv("EQT_ACCEPT_ALL_CONSIDERS"):
        cfg.consider.accept_all_considers = _parse_bool(env_accept)
    if env_strict := os.getenv("EQT_STRICT_UNSTABLE"):
        cfg.consider.strict_unstable = _parse_bool(env_strict)
    if env_invis := os.getenv("EQT_INVIS_MAX_MINUTES"):
        cfg.consider.invis_max_minutes = int(env_invis)
    if env_combat := os.getenv("EQT_COMBAT_RECENT_MINUTES"):
        cfg.consider.combat_recent_minutes = int(env_combat)

    # Backscan settings
    if env_mb := os.getenv("EQT_BACKSCAN_MAX_MB"):
        cfg.backscan.max_mb = float(env_mb)
    if env_retry := os.getenv("EQT_BACKSCAN_RETRY_MINUTES"):
        cfg.backscan.retry_minutes = int(env_retry)

    # Webhook settings
    if env_url := os.getenv("EQT_WEBHOOK_URL"):
        cfg.webhook.url = env_url
    if env_secret := os.getenv("EQT_WEBHOOK_SECRET"):
        cfg.webhook.secret = env_secret

    # Logging settings
    if env_log := os.getenv("EQT_LOG_LEVEL"):
        cfg.logging.level = env_log.upper()


def load_config(config_path: Path | str | None = None) -> TrackerConfig:
    """
    Load configuration from all sources with proper priority.

    Priority (highest wins):
        1. Environment variables
        2. ``config_path`` when given, else config/tracker.ini
        3. config/tracker.example.ini (fallback for development)
        4. Built-in defaults

    Returns:
        TrackerConfig: Fully populated configuration object.
    """
    cfg = TrackerConfig()

    # Determine which config file to use
    config_file: Path | None = None
    if config_path is not None:
        config_file = Path(config_path)
    elif CONFIG_FILE.exists():
        config_file = CONFIG_FILE
    elif CONFIG_EXAMPLE.exists():
        config_file = CONFIG_EXAMPLE

    # Load from INI file if available
    if config_file and config_file.exists():
        parser = configparser.ConfigParser(interpolation=None)
        parser.read(config_file, encoding="utf-8")
        _load_from_ini(parser, cfg)

    # Apply environment variable overrides (highest priority)
    _apply_env_overrides(cfg)

    return cfg


# =============================================================================
# MODULE-LEVEL SINGLETON
# =============================================================================

# Load configuration once at module import time
config = load_config()


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================


def get_config_status(cfg: TrackerConfig | None = None) -> dict:
    """
    Get configuration status for diagnostics.

    Returns a dictionary with configuration source information,
    useful for debugging from the CLI.
    """
    cfg = cfg or config
    return {
        "config_file_exists": CONFIG_FILE.exists(),
        "config_file_path": str(CONFIG_FILE),
        "using_example": not CONFIG_FILE.exists() and CONFIG_EXAMPLE.exists(),
        "logs_dir_set": bool(cfg.paths.logs_dir),
        "backscan_budget_bytes": cfg.backscan.budget_bytes,
        "webhook_configured": bool(cfg.webhook.url),
    }


def print_config_summary(cfg: TrackerConfig | None = None) -> None:
    """Print a summary of current configuration to stdout."""
    cfg = cfg or config
    status = get_config_status(cfg)
    budget = status["backscan_budget_bytes"]
    print("\n" + "=" * 60)
    print("TRACKER CONFIGURATION")
    print("=" * 60)
    print(f"Config file: {status['config_file_path']}")
    print(f"File exists: {status['config_file_exists']}")
    if status["using_example"]:
        print("WARNING: Using example config (copy to tracker.ini for your install)")
    print("-" * 60)
    print(f"Logs dir:     {cfg.paths.logs_dir or '(not set)'}")
    print(f"Base dir:     {cfg.paths.base_dir or '(not set)'}")
    print(f"Data dir:     {cfg.paths.data_path}")
    print(f"Scan every:   {cfg.scan.interval_seconds:.0f}s")
    print(
        f"Consider:     invis<= {cfg.consider.invis_max_minutes}m, "
        f"combat<= {cfg.consider.combat_recent_minutes}m, "
        f"strict={cfg.consider.strict_unstable}"
    )
    print(f"Backscan:     {'unbounded' if budget == 0 else f'{budget // _MIB} MB'}")
    print(f"Webhook:      {'configured' if status['webhook_configured'] else 'off'}")
    print(f"Log level:    {cfg.logging.level}")
    print("=" * 60 + "\n")


# =============================================================================
# TEST HELPERS
# =============================================================================


class use_test_data_dir:
    """
    Context manager for pointing the singleton at a temporary data directory.

    Usage:
        from eq_tracker.config import use_test_data_dir

        def test_something(tmp_path):
            with use_test_data_dir(tmp_path / "data"):
                ...

    Args:
        data_dir: Path to the temporary data directory
    """

    def __init__(self, data_dir: Path | str):
        self.data_dir = Path(data_dir)
        self.original_dir: str | None = None

    def __enter__(self) -> Path:
        """Point the config at the test data directory."""
        self.original_dir = config.paths.data_dir
        config.paths.data_dir = str(self.data_dir)
        return self.data_dir

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        """Restore the original data directory."""
        if self.original_dir is not None:
            config.paths.data_dir = self.original_dir
        return None
