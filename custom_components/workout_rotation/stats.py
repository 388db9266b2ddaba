"""Consistency statistics for Workout Rotation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime

from homeassistant.util import dt as dt_util

from .exceptions import StorageError
from .models import RotationState, StatsSnapshot
from .storage import KEY_COMPLETIONS, KEY_ROTATION, KeyValueStore, decode_record, encode_record

_LOGGER = logging.getLogger(__name__)


def local_date(value: datetime) -> date:
    return dt_util.as_local(value).date()


def parse_install_date(value: str) -> date | None:
    parsed = dt_util.parse_datetime(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_util.UTC)
    return local_date(parsed)


def read_rotation(current: Mapping[str, str]) -> RotationState | None:
    payload = decode_record(KEY_ROTATION, current.get(KEY_ROTATION))
    if not isinstance(payload, dict):
        return None
    return RotationState.from_dict(payload)


def read_completions(current: Mapping[str, str]) -> list[str]:
    payload = decode_record(KEY_COMPLETIONS, current.get(KEY_COMPLETIONS))
    if not isinstance(payload, list):
        return []
    return sorted({str(d) for d in payload if str(d or "").strip()})


def completion_update(current: Mapping[str, str], day: str) -> dict[str, str] | None:
    """Change that adds ``day`` to the completion log, or None if present."""
    log = read_completions(current)
    if day in log:
        return None
    return {KEY_COMPLETIONS: encode_record(sorted([*log, day]))}


def days_between(start: date, end: date) -> int:
    return (end - start).days


class StatsEngine:
    """Install date, completion log and the derived consistency ratio."""

    def __init__(self, kv: KeyValueStore, *, now: Callable[[], datetime] | None = None) -> None:
        self._kv = kv
        self._now = now or dt_util.now

    def today(self) -> date:
        return local_date(self._now())

    def new_rotation(self) -> RotationState:
        return RotationState(current_day=1, install_date=self._now().isoformat())

    async def async_ensure_rotation(self) -> RotationState:
        """Return the rotation record, creating it on first run.

        Creation happens under the store's writer lock, so concurrent first
        callers agree on one install date.
        """
        state: RotationState | None = None

        def _mutate(current: Mapping[str, str]) -> dict[str, str] | None:
            nonlocal state
            state = read_rotation(current)
            if state is not None:
                return None
            state = self.new_rotation()
            _LOGGER.debug("Initializing install date %s", state.install_date)
            return {KEY_ROTATION: encode_record(state.as_dict())}

        await self._kv.async_transaction(_mutate)
        if state is None:
            raise StorageError("Rotation record could not be initialized")
        return state

    async def async_record_day_complete(self) -> bool:
        """Add today to the completion log; False if today is already there."""
        today = self.today().isoformat()
        added = False

        def _mutate(current: Mapping[str, str]) -> dict[str, str] | None:
            nonlocal added
            changes = completion_update(current, today)
            added = changes is not None
            return changes

        await self._kv.async_transaction(_mutate)
        if added:
            _LOGGER.debug("Recorded completed day %s", today)
        return added

    async def async_completion_log(self) -> list[str]:
        return read_completions(await self._kv.async_snapshot())

    async def async_get_stats(self) -> StatsSnapshot:
        state = await self.async_ensure_rotation()
        installed = parse_install_date(state.install_date) or self.today()
        total = max(1, days_between(installed, self.today()) + 1)
        return StatsSnapshot(total_days=total, completed_days=len(await self.async_completion_log()))
