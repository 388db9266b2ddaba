"""Entity helpers for Workout Rotation."""

from __future__ import annotations

from homeassistant.config_entries import ConfigEntry
from homeassistant.helpers.device_registry import DeviceEntryType, DeviceInfo

from .const import CONF_NAME, DEFAULT_NAME, DOMAIN


def device_info_from_entry(entry: ConfigEntry, sw_version: str | None = None) -> DeviceInfo:
    """One service device per rotation, versioned from the manifest."""
    name = entry.options.get(CONF_NAME, entry.data.get(CONF_NAME, DEFAULT_NAME))
    return DeviceInfo(
        identifiers={(DOMAIN, entry.entry_id)},
        name=str(name),
        manufacturer="Workout Rotation",
        model="Weekly rotation",
        sw_version=sw_version,
        entry_type=DeviceEntryType.SERVICE,
    )
