"""Storage for Workout Rotation (.storage).

The persisted state is a flat mapping of string keys to JSON text:
- ``workout:<day>``: the workout occupying day slot 1..7
- ``rotation``: current day, install date, last sync timestamp, rev
- ``completions``: sorted ISO dates on which a day was completed

The mapping lives in one ``Store`` file per namespace. A small pointer file
names the active namespace, so a full restore can be staged in a fresh
namespace and made visible by a single pointer write.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Mapping
from typing import Any
from uuid import uuid4

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.storage import Store

from .const import DOMAIN
from .exceptions import StorageError, ValidationError

_LOGGER = logging.getLogger(__name__)

_STORAGE_VERSION = 1

KEY_ROTATION = "rotation"
KEY_COMPLETIONS = "completions"
WORKOUT_KEY_PREFIX = "workout:"

Mutator = Callable[[Mapping[str, str]], Mapping[str, str | None] | None]


def workout_key(day: int) -> str:
    return f"{WORKOUT_KEY_PREFIX}{int(day)}"


def encode_record(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), sort_keys=True)


def decode_record(key: str, raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError as err:
        raise StorageError(f"Stored value for {key!r} is not valid JSON") from err


def _new_namespace() -> str:
    return f"ns_{uuid4().hex[:8]}"


def _coerce_items(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        return {}
    return {str(k): v for k, v in raw.items() if isinstance(v, str)}


def validate_snapshot(snapshot: Any) -> dict[str, str]:
    """Return a copy of a snapshot, rejecting anything but str -> str."""
    if not isinstance(snapshot, Mapping):
        raise ValidationError("Snapshot must be a mapping of strings")
    items: dict[str, str] = {}
    for key, value in snapshot.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise ValidationError(f"Snapshot entry {key!r} is not a string pair")
        items[key] = value
    return items


async def async_load_store(store: Store[dict[str, Any]]) -> dict[str, Any]:
    try:
        loaded = await store.async_load()
    except (OSError, HomeAssistantError) as err:
        raise StorageError(f"Failed to read {store.key}") from err
    return loaded if isinstance(loaded, dict) else {}


async def async_save_store(store: Store[dict[str, Any]], data: dict[str, Any]) -> None:
    try:
        await store.async_save(data)
    except (OSError, HomeAssistantError) as err:
        raise StorageError(f"Failed to write {store.key}") from err


class KeyValueStore:
    """Per-config-entry key-value store with a single writer."""

    def __init__(self, hass: HomeAssistant, entry_id: str) -> None:
        self._hass = hass
        self._prefix = f"{DOMAIN}.{entry_id}"
        self._pointer: Store[dict[str, Any]] = Store(hass, _STORAGE_VERSION, self._prefix)
        self._namespace: str | None = None
        self._active: Store[dict[str, Any]] | None = None
        self._data: dict[str, str] | None = None
        self._lock = asyncio.Lock()

    def _store_for(self, namespace: str) -> Store[dict[str, Any]]:
        return Store(self._hass, _STORAGE_VERSION, f"{self._prefix}.{namespace}")

    @property
    def namespace(self) -> str | None:
        return self._namespace

    async def _async_read(self, store: Store[dict[str, Any]]) -> dict[str, Any]:
        return await async_load_store(store)

    async def _async_write(self, store: Store[dict[str, Any]], data: dict[str, Any]) -> None:
        await async_save_store(store, data)

    async def _async_write_pointer(self, *, active: str, staging: str | None) -> None:
        await self._async_write(self._pointer, {"active": active, "staging": staging})

    async def _async_discard(self, namespace: str) -> None:
        try:
            await self._store_for(namespace).async_remove()
        except OSError as err:
            # The pointer no longer references it; a leftover file is harmless.
            _LOGGER.warning("Could not remove namespace %s: %s", namespace, err)

    async def async_load(self) -> dict[str, str]:
        """Load the active namespace once and return the live mapping."""
        if self._data is not None:
            return self._data
        async with self._lock:
            if self._data is not None:
                return self._data

            pointer = await self._async_read(self._pointer)
            active = str(pointer.get("active") or "").strip()
            staging = str(pointer.get("staging") or "").strip()
            if not active:
                active = _new_namespace()
                await self._async_write_pointer(active=active, staging=None)

            store = self._store_for(active)
            loaded = await self._async_read(store)
            data = _coerce_items(loaded.get("items"))

            # A restore that never reached the swap leaves its staging namespace behind.
            if staging and staging != active:
                _LOGGER.warning("Discarding interrupted restore in namespace %s", staging)
                await self._async_discard(staging)
                await self._async_write_pointer(active=active, staging=None)

            self._namespace = active
            self._active = store
            self._data = data
            _LOGGER.debug("Loaded %s keys from namespace %s", len(data), active)
        return self._data

    async def async_get(self, key: str) -> str | None:
        data = await self.async_load()
        return data.get(key)

    async def async_keys(self, prefix: str = "") -> list[str]:
        data = await self.async_load()
        return sorted(k for k in data if k.startswith(prefix))

    async def async_snapshot(self) -> dict[str, str]:
        """Return a detached copy of every key."""
        data = await self.async_load()
        return dict(data)

    async def async_transaction(self, mutator: Mutator) -> dict[str, str]:
        """Apply one all-or-nothing change under the writer lock.

        ``mutator`` sees the current mapping and returns the keys to change;
        a ``None`` value deletes the key. Returning nothing skips the write.
        """
        await self.async_load()
        async with self._lock:
            if self._data is None or self._active is None:
                raise StorageError("Store was unloaded during a write")
            current = self._data
            updates = mutator(current)
            if not updates:
                return dict(current)
            next_data = dict(current)
            for key, value in updates.items():
                if value is None:
                    next_data.pop(key, None)
                else:
                    next_data[key] = str(value)
            await self._async_write(self._active, {"items": next_data})
            self._data = next_data
            return dict(next_data)

    async def async_set(self, key: str, value: str | None) -> None:
        await self.async_transaction(lambda _current: {key: value})

    async def async_replace_all(self, snapshot: Mapping[str, str]) -> None:
        """Replace every key with ``snapshot`` using stage-then-swap.

        Readers keep seeing the old namespace until the pointer write; an
        interruption before that point leaves the old data untouched.
        """
        items = validate_snapshot(snapshot)
        await self.async_load()
        async with self._lock:
            if self._namespace is None:
                raise StorageError("Store was unloaded during a restore")
            old = self._namespace
            staging = _new_namespace()

            await self._async_write_pointer(active=old, staging=staging)
            staged = self._store_for(staging)
            await self._async_write(staged, {"items": items})

            verified = await self._async_read(self._store_for(staging))
            if _coerce_items(verified.get("items")) != items:
                await self._async_discard(staging)
                await self._async_write_pointer(active=old, staging=None)
                raise StorageError("Staged snapshot did not verify; store left unchanged")

            await self._async_write_pointer(active=staging, staging=None)
            self._namespace = staging
            self._active = staged
            self._data = items
            await self._async_discard(old)
            _LOGGER.debug("Swapped store to namespace %s (%s keys)", staging, len(items))
