"""Cloud snapshot sync for Workout Rotation.

The remote side is a JSON blob service: ``POST <base>`` creates a blob and
answers with its location, ``PUT <base>/<id>`` overwrites it and
``GET <base>/<id>`` returns it. The blob body is the whole key-value store.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

import aiohttp

from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession
from homeassistant.helpers.storage import Store
from homeassistant.util import dt as dt_util

from .assets import AssetCache, image_refs
from .const import DOMAIN, SYNC_TIMEOUT
from .exceptions import NetworkError, NotFoundError, SyncInProgressError, ValidationError
from .stats import read_rotation
from .storage import (
    KEY_ROTATION,
    KeyValueStore,
    async_load_store,
    async_save_store,
    encode_record,
    validate_snapshot,
)
from .workouts import WorkoutStore

_LOGGER = logging.getLogger(__name__)

_DEVICE_STORAGE_VERSION = 1
_JSON_HEADERS = {"Accept": "application/json", "Content-Type": "application/json"}


def sync_id_from_response(resp: aiohttp.ClientResponse) -> str | None:
    blob_id = str(resp.headers.get("X-jsonblob-id") or "").strip()
    if blob_id:
        return blob_id
    location = str(resp.headers.get("Location") or "").strip().rstrip("/")
    if location:
        return location.rsplit("/", 1)[-1] or None
    return None


def with_last_sync(snapshot: Mapping[str, str], stamp: str) -> dict[str, str]:
    out = dict(snapshot)
    state = read_rotation(out)
    if state is not None:
        out[KEY_ROTATION] = encode_record(state.bump(last_sync_at=stamp).as_dict())
    return out


class SyncClient:
    """Uploads and restores full-store snapshots, one operation at a time."""

    def __init__(
        self,
        hass: HomeAssistant,
        entry_id: str,
        kv: KeyValueStore,
        workouts: WorkoutStore,
        assets: AssetCache,
        *,
        base_url: str,
        timeout: float = SYNC_TIMEOUT,
        now: Callable[[], datetime] | None = None,
        mutation_lock: asyncio.Lock | None = None,
    ) -> None:
        self._hass = hass
        self._kv = kv
        self._workouts = workouts
        self._assets = assets
        self.base_url = str(base_url).rstrip("/")
        self._timeout = timeout
        self._now = now or dt_util.utcnow
        # Device-local; never part of a snapshot.
        self._device: Store[dict[str, Any]] = Store(hass, _DEVICE_STORAGE_VERSION, f"{DOMAIN}.{entry_id}.device")
        self._device_data: dict[str, Any] | None = None
        self._lock = asyncio.Lock()
        self._mutation_lock = mutation_lock or asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def _async_device(self) -> dict[str, Any]:
        if self._device_data is None:
            self._device_data = await async_load_store(self._device)
        return self._device_data

    async def async_get_local_sync_id(self) -> str | None:
        data = await self._async_device()
        return str(data.get("sync_id") or "").strip() or None

    async def _async_set_local_sync_id(self, sync_id: str) -> None:
        data = dict(await self._async_device())
        data["sync_id"] = sync_id
        await async_save_store(self._device, data)
        self._device_data = data

    def _blob_url(self, sync_id: str) -> str:
        return f"{self.base_url}/{sync_id}"

    async def async_upload(self, snapshot: Mapping[str, str], *, sync_id: str | None = None) -> str:
        """Send the snapshot as-is; returns the identifier to fetch it by."""
        session = async_get_clientsession(self._hass)
        payload = dict(snapshot)
        try:
            async with asyncio.timeout(self._timeout):
                if sync_id:
                    async with session.put(self._blob_url(sync_id), json=payload, headers=_JSON_HEADERS) as resp:
                        if resp.status in (200, 201, 204):
                            return sync_id
                        if resp.status != 404:
                            raise NetworkError(f"Upload failed with HTTP {resp.status}")
                        _LOGGER.debug("Snapshot %s expired remotely; creating a new one", sync_id)
                async with session.post(self.base_url, json=payload, headers=_JSON_HEADERS) as resp:
                    if resp.status not in (200, 201):
                        raise NetworkError(f"Upload failed with HTTP {resp.status}")
                    new_id = sync_id_from_response(resp)
        except (aiohttp.ClientError, TimeoutError) as err:
            raise NetworkError(f"Upload failed: {err}") from err
        if not new_id:
            raise NetworkError("Snapshot service did not return an identifier")
        return new_id

    async def async_download(self, sync_id: str) -> dict[str, str]:
        """Fetch a whole snapshot or raise; never returns partial data."""
        session = async_get_clientsession(self._hass)
        try:
            async with asyncio.timeout(self._timeout):
                async with session.get(self._blob_url(sync_id), headers=_JSON_HEADERS) as resp:
                    if resp.status == 404:
                        raise NotFoundError(f"No snapshot found for sync id {sync_id}")
                    if resp.status != 200:
                        raise NetworkError(f"Download failed with HTTP {resp.status}")
                    payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError, ValueError) as err:
            raise NetworkError(f"Download failed: {err}") from err
        try:
            return validate_snapshot(payload)
        except ValidationError as err:
            raise NetworkError(f"Snapshot {sync_id} is malformed: {err}") from err

    async def async_apply_download(self, snapshot: Mapping[str, str]) -> int:
        """Swap the local store for ``snapshot``, then rebuild the image cache.

        Files only the replaced store referenced are removed afterwards.
        """
        async with self._mutation_lock:
            before = image_refs((await self._workouts.async_list_days()).values())
            # Shielded so an abandoned caller cannot stop the swap halfway.
            await asyncio.shield(self._kv.async_replace_all(snapshot))
        restored = await self._assets.async_restore_all(self._workouts)
        after = image_refs((await self._workouts.async_list_days()).values())
        await self._assets.async_discard_all(before - after)
        return restored

    async def async_request_upload(self) -> dict[str, Any]:
        if self.busy:
            raise SyncInProgressError("A sync is already running")
        async with self._lock:
            stamp = self._now().isoformat()
            snapshot = with_last_sync(await self._kv.async_snapshot(), stamp)
            sync_id = await self.async_upload(snapshot, sync_id=await self.async_get_local_sync_id())
            await self._async_set_local_sync_id(sync_id)

            def _mutate(current: Mapping[str, str]) -> dict[str, str] | None:
                state = read_rotation(current)
                if state is None:
                    return None
                return {KEY_ROTATION: encode_record(state.bump(last_sync_at=stamp).as_dict())}

            await self._kv.async_transaction(_mutate)
            _LOGGER.info("Uploaded snapshot %s (%s keys)", sync_id, len(snapshot))
            return {"sync_id": sync_id, "keys": len(snapshot), "last_sync_at": stamp}

    async def async_request_download(self, sync_id: str | None = None) -> dict[str, Any]:
        if self.busy:
            raise SyncInProgressError("A sync is already running")
        async with self._lock:
            target = str(sync_id or "").strip() or await self.async_get_local_sync_id()
            if not target:
                raise ValidationError("No sync id given and this device has never synced")
            snapshot = await self.async_download(target)
            restored = await self.async_apply_download(snapshot)
            await self._async_set_local_sync_id(target)
            _LOGGER.info("Restored snapshot %s (%s keys, %s images)", target, len(snapshot), restored)
            return {"sync_id": target, "keys": len(snapshot), "images_restored": restored}
