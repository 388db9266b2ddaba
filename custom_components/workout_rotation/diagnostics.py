"""Diagnostics support for Workout Rotation.

This file is picked up by Home Assistant automatically when present.
"""

from __future__ import annotations

from typing import Any

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.loader import async_get_integration

from .const import DOMAIN


def _redact(value: Any) -> Any:
    if value is None:
        return None
    raw = str(value)
    if not raw:
        return ""
    if len(raw) <= 4:
        return "***"
    return f"{raw[:2]}***{raw[-2:]}"


async def async_get_config_entry_diagnostics(
    hass: HomeAssistant,
    entry: ConfigEntry,
) -> dict[str, Any]:
    """Return diagnostics for a config entry (sync identifier redacted)."""
    coordinator = hass.data.get(DOMAIN, {}).get(entry.entry_id)
    integration = await async_get_integration(hass, DOMAIN)

    payload: dict[str, Any] = {
        "entry": {
            "entry_id": entry.entry_id,
            "title": entry.title,
            "version": entry.version,
            "data": dict(entry.data),
            "options": dict(entry.options),
        },
        "integration_version": str(integration.version or ""),
    }

    if coordinator is not None:
        data = dict(getattr(coordinator, "data", None) or {})
        sync = dict(data.get("sync") or {})
        if "sync_id" in sync:
            sync["sync_id"] = _redact(sync.get("sync_id"))
        data["sync"] = sync
        payload["coordinator"] = {
            "last_update_success": bool(getattr(coordinator, "last_update_success", False)),
            "last_exception": repr(getattr(coordinator, "last_exception", None)),
            "store_namespace": coordinator.kv.namespace,
            "data": data,
        }

    return payload
