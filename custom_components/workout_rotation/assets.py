"""Local cache for exercise images."""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import urlparse

import aiohttp

from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .const import DOMAIN, IMAGE_DIR, IMAGE_TIMEOUT
from .models import Exercise, Workout, is_remote_url
from .workouts import WorkoutStore

_LOGGER = logging.getLogger(__name__)

_IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png", ".gif", ".webp"}


def cache_filename(remote_url: str) -> str:
    """Timestamp plus random suffix; unlikely, not guaranteed, to collide."""
    suffix = Path(urlparse(remote_url).path).suffix.lower()
    if suffix not in _IMAGE_SUFFIXES:
        suffix = ".jpg"
    return f"{int(time.time() * 1000)}_{secrets.token_hex(4)}{suffix}"


def image_refs(workouts: Iterable[Workout | None]) -> set[str]:
    """Every image reference held by the given workouts."""
    return {e.image for w in workouts if w is not None for e in w.exercises if e.image}


def _write_file(path: Path, body: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_bytes(body)
    tmp.replace(path)


def _remove_file(path: Path) -> None:
    path.unlink(missing_ok=True)


class AssetCache:
    """Downloads remote images once and hands out local references.

    The remote URL stays on the exercise as ``original_image``; local files
    are a derived artifact that ``async_restore_all`` can rebuild.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        *,
        directory: Path | None = None,
        timeout: float = IMAGE_TIMEOUT,
    ) -> None:
        self._hass = hass
        self.directory = directory or Path(hass.config.path(DOMAIN, IMAGE_DIR))
        self._timeout = timeout

    def owns(self, ref: str | None) -> bool:
        if not ref or is_remote_url(ref):
            return False
        return Path(ref).parent == self.directory

    async def async_is_resolvable(self, ref: str | None) -> bool:
        if not self.owns(ref):
            return False
        return await self._hass.async_add_executor_job(Path(str(ref)).is_file)

    async def async_materialize(self, remote_url: str) -> str | None:
        """Fetch ``remote_url`` into the cache; None on any failure."""
        if not is_remote_url(remote_url):
            return None
        session = async_get_clientsession(self._hass)
        try:
            async with asyncio.timeout(self._timeout):
                async with session.get(remote_url) as resp:
                    if resp.status != 200:
                        _LOGGER.warning("Image download %s returned HTTP %s", remote_url, resp.status)
                        return None
                    body = await resp.read()
        except (aiohttp.ClientError, TimeoutError) as err:
            _LOGGER.warning("Image download %s failed: %s", remote_url, err)
            return None
        if not body:
            _LOGGER.warning("Image download %s returned no data", remote_url)
            return None

        path = self.directory / cache_filename(remote_url)
        try:
            await self._hass.async_add_executor_job(_write_file, path, body)
        except OSError as err:
            _LOGGER.warning("Could not store image %s: %s", path, err)
            return None
        return str(path)

    async def async_discard(self, ref: str | None) -> None:
        if not self.owns(ref):
            return
        try:
            await self._hass.async_add_executor_job(_remove_file, Path(str(ref)))
        except OSError as err:
            _LOGGER.warning("Could not remove cached image %s: %s", ref, err)

    async def async_discard_all(self, refs: Iterable[str | None]) -> int:
        """Remove every cached file among ``refs``; returns how many were owned."""
        owned = sorted(r for r in set(refs) if r and self.owns(r))
        for ref in owned:
            await self.async_discard(ref)
        if owned:
            _LOGGER.debug("Discarded %s cached images", len(owned))
        return len(owned)

    async def async_cache_exercise(self, exercise: Exercise) -> Exercise:
        """Cache a freshly entered remote image, keeping the URL for re-sync.

        When the download fails the remote URL stays as the display image.
        """
        if not is_remote_url(exercise.image):
            return exercise
        remote = str(exercise.image)
        local = await self.async_materialize(remote)
        return Exercise(
            id=exercise.id,
            name=exercise.name,
            image=local or remote,
            original_image=remote,
            completed=exercise.completed,
        )

    async def async_restore_all(self, store: WorkoutStore) -> int:
        """Re-download images whose local file is gone; returns how many."""
        pending: list[tuple[int, Exercise]] = []
        for day, workout in (await store.async_list_days()).items():
            if workout is None:
                continue
            for exercise in workout.exercises:
                if not exercise.original_image:
                    continue
                if await self.async_is_resolvable(exercise.image):
                    continue
                pending.append((day, exercise))

        async def _restore(day: int, exercise: Exercise) -> bool:
            local = await self.async_materialize(str(exercise.original_image))
            if local is None:
                return False
            updated = await store.async_update_exercise(
                day,
                exercise.id,
                expected={"original_image": exercise.original_image},
                image=local,
            )
            if updated is None:
                await self.async_discard(local)
                return False
            return True

        results = await asyncio.gather(*(_restore(d, e) for d, e in pending), return_exceptions=True)
        restored = 0
        for (day, exercise), outcome in zip(pending, results, strict=True):
            if isinstance(outcome, BaseException):
                _LOGGER.warning("Image restore for %s (day %s) failed: %s", exercise.name, day, outcome)
            elif outcome:
                restored += 1
        _LOGGER.debug("Restored %s of %s images", restored, len(pending))
        return restored
