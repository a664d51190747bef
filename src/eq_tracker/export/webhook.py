"""Webhook delivery to a spreadsheet Apps Script endpoint.

The payload carries the same tables as the CSV sheets as "upserts" keyed by
character; the receiving script merges them into its sheets.  Only a
deployed Apps Script web app URL (``https://script.google.com/macros/s/<id>/exec``
or its ``googleusercontent.com`` redirect target) is accepted.

Delivery never raises: every outcome, including network failures, is
reported as a :class:`DeliveryResult`.  A payload identical to the last one
the endpoint accepted is not sent again.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Literal
from urllib.parse import urlparse

import requests

from eq_tracker.config import WebhookSettings
from eq_tracker.export.rows import (
    faction_rows,
    inventory_detail_rows,
    inventory_rows,
    zone_rows,
)
from eq_tracker.ingest.types import TrackerState

logger = logging.getLogger(__name__)

_DEPLOYMENT_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of :func:`deliver`.

    Attributes:
        status:        ``"sent"``, ``"skipped"`` or ``"failed"``.
        payload_hash:  Hash of the payload that was (or would have been) sent.
        status_code:   HTTP status, when a response was received.
        detail:        Short human-readable reason.
    """

    status: Literal["sent", "skipped", "failed"]
    payload_hash: str
    status_code: int | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "sent"


def is_apps_script_exec_url(url: str) -> bool:
    """True for a deployed Apps Script ``/exec`` URL over HTTPS."""
    try:
        parsed = urlparse((url or "").strip())
    except ValueError:
        return False
    if parsed.scheme != "https" or not parsed.hostname:
        return False
    if parsed.hostname == "script.google.com":
        parts = [p for p in parsed.path.split("/") if p]
        return (
            len(parts) >= 4
            and parts[0] == "macros"
            and parts[1] == "s"
            and bool(_DEPLOYMENT_ID_RE.match(parts[2]))
            and parts[3] == "exec"
        )
    if parsed.hostname.endswith("googleusercontent.com"):
        return "/macros/" in parsed.path
    return False


def build_payload(state: TrackerState, secret: str = "") -> dict[str, Any]:
    return {
        "secret": secret,
        "upserts": {
            "zones": zone_rows(state),
            "factions": faction_rows(state),
            "inventory": inventory_rows(state),
            "inventoryDetails": inventory_detail_rows(state),
        },
    }


def payload_hash(payload: dict[str, Any]) -> str:
    """SHA-256 of the canonical payload, ignoring the volatile ``tz`` field."""
    upserts = dict(payload.get("upserts") or {})
    upserts["zones"] = [
        {k: v for k, v in row.items() if k != "tz"} for row in upserts.get("zones") or []
    ]
    body = json.dumps(
        {**payload, "upserts": upserts}, ensure_ascii=False, sort_keys=True, default=str
    )
    return hashlib.sha256(body.encode("utf-8")).hexdigest()


def deliver(
    payload: dict[str, Any],
    settings: WebhookSettings,
    *,
    last_hash: str | None = None,
) -> DeliveryResult:
    """POST ``payload`` to the configured endpoint.

    Args:
        payload:   Body built by :func:`build_payload`.
        settings:  Webhook section of the config.
        last_hash: Hash of the last payload the endpoint accepted.

    Returns:
        A :class:`DeliveryResult`; never raises.
    """
    digest = payload_hash(payload)
    url = (settings.url or "").strip()

    if not settings.enabled or not url:
        return DeliveryResult("skipped", digest, detail="webhook disabled")
    if not is_apps_script_exec_url(url):
        logger.warning("webhook: not attempted, URL does not look like an Apps Script /exec endpoint")
        return DeliveryResult("skipped", digest, detail="invalid endpoint URL")
    if last_hash is not None and digest == last_hash:
        logger.debug("webhook: payload unchanged since last delivery, skipping")
        return DeliveryResult("skipped", digest, detail="unchanged")

    try:
        response = requests.post(url, json=payload, timeout=settings.timeout_seconds)
    except requests.exceptions.Timeout:
        logger.warning("webhook: request timed out after %.1fs", settings.timeout_seconds)
        return DeliveryResult("failed", digest, detail="timeout")
    except requests.exceptions.ConnectionError:
        logger.warning("webhook: cannot connect to %s", urlparse(url).hostname)
        return DeliveryResult("failed", digest, detail="connection error")
    except requests.exceptions.RequestException as exc:
        logger.error("webhook: request failed: %s", exc)
        return DeliveryResult("failed", digest, detail=str(exc))

    if not 200 <= response.status_code < 300:
        logger.warning(
            "webhook: endpoint answered %d: %s", response.status_code, (response.text or "")[:180]
        )
        return DeliveryResult(
            "failed", digest, status_code=response.status_code, detail="non-2xx response"
        )

    logger.info("webhook: delivered (%d)", response.status_code)
    return DeliveryResult("sent", digest, status_code=response.status_code)
