"""Outputs: local CSV sheets and webhook delivery."""

from eq_tracker.export.sheets import build_tables, write_csv, write_sheets
from eq_tracker.export.webhook import (
    DeliveryResult,
    build_payload,
    deliver,
    is_apps_script_exec_url,
    payload_hash,
)

__all__ = [
    "build_tables",
    "write_csv",
    "write_sheets",
    "DeliveryResult",
    "build_payload",
    "deliver",
    "is_apps_script_exec_url",
    "payload_hash",
]
