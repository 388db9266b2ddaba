"""Websocket state helpers."""

from __future__ import annotations

from typing import Any

from homeassistant.util import dt as dt_util


def runtime_payload() -> dict[str, Any]:
    return {"today": dt_util.now().date().isoformat()}


def public_state(
    *,
    days: list[dict[str, Any]],
    active: dict[str, Any],
    stats: dict[str, Any],
    rotation: dict[str, Any],
    sync: dict[str, Any],
) -> dict[str, Any]:
    """Return a stable public payload for the UI."""
    return {
        "schema": 1,
        "days": days,
        "active": active,
        "stats": stats,
        "rotation": rotation,
        "sync": sync,
        "runtime": runtime_payload(),
    }
