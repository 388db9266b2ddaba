"""Services for Workout Rotation."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import voluptuous as vol

from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse

from .const import DOMAIN
from .exceptions import WorkoutRotationError

_LOGGER = logging.getLogger(__name__)

SERVICE_GET_STATE = "get_state"
SERVICE_ADD_WORKOUT = "add_workout"
SERVICE_COMPLETE_EXERCISE = "complete_exercise"
SERVICE_ADVANCE_DAY = "advance_day"
SERVICE_RENAME_EXERCISE = "rename_exercise"
SERVICE_FETCH_IMAGE = "fetch_exercise_image"
SERVICE_UPLOAD = "upload_snapshot"
SERVICE_DOWNLOAD = "download_snapshot"
SERVICE_RESTORE_IMAGES = "restore_images"

_EXERCISE_SCHEMA = vol.Any(
    str,
    vol.Schema(
        {
            vol.Optional("id"): str,
            vol.Required("name"): str,
            vol.Optional("image"): vol.Any(None, str),
            vol.Optional("original_image"): vol.Any(None, str),
            vol.Optional("completed", default=False): bool,
        }
    ),
)

_ENTRY_SCHEMA = vol.Schema({vol.Required("entry_id"): str})
_ADD_WORKOUT_SCHEMA = vol.Schema(
    {
        vol.Required("entry_id"): str,
        vol.Required("day"): vol.Coerce(int),
        vol.Required("title"): str,
        vol.Required("exercises"): [_EXERCISE_SCHEMA],
        vol.Optional("lookup_images"): bool,
    }
)
_EXERCISE_REF_SCHEMA = vol.Schema(
    {
        vol.Required("entry_id"): str,
        vol.Required("day"): vol.Coerce(int),
        vol.Required("exercise_id"): str,
    }
)
_RENAME_SCHEMA = _EXERCISE_REF_SCHEMA.extend({vol.Required("name"): str})
_DOWNLOAD_SCHEMA = vol.Schema({vol.Required("entry_id"): str, vol.Optional("sync_id"): str})

Handler = Callable[[Any, ServiceCall], Awaitable[dict[str, Any]]]


def _normalize_exercises(raw: list[Any]) -> list[dict[str, Any]]:
    return [{"name": item} if isinstance(item, str) else dict(item) for item in raw]


async def async_register(hass: HomeAssistant) -> None:
    def _wrap(handler: Handler) -> Callable[[ServiceCall], Awaitable[ServiceResponse]]:
        async def _call(call: ServiceCall) -> ServiceResponse:
            entry_id = str(call.data["entry_id"])
            coordinator = hass.data.get(DOMAIN, {}).get(entry_id)
            if coordinator is None:
                return {"ok": False, "error": "entry_not_found"}
            try:
                result = await handler(coordinator, call)
            except WorkoutRotationError as err:
                _LOGGER.debug("Service %s failed: %s", call.service, err)
                return {"ok": False, "entry_id": entry_id, "error": err.code, "message": str(err)}
            return {"ok": True, "entry_id": entry_id, **result}

        return _call

    async def _async_get_state(coordinator, call: ServiceCall) -> dict[str, Any]:
        return {"state": await coordinator.async_public_state()}

    async def _async_add_workout(coordinator, call: ServiceCall) -> dict[str, Any]:
        workout = await coordinator.async_add_or_replace_workout(
            day=int(call.data["day"]),
            title=str(call.data["title"]),
            exercises=_normalize_exercises(call.data["exercises"]),
            lookup_images=call.data.get("lookup_images"),
        )
        return {"workout": workout}

    async def _async_complete_exercise(coordinator, call: ServiceCall) -> dict[str, Any]:
        return await coordinator.async_complete_exercise(int(call.data["day"]), str(call.data["exercise_id"]))

    async def _async_advance_day(coordinator, call: ServiceCall) -> dict[str, Any]:
        return {"rotation": await coordinator.async_advance_day()}

    async def _async_rename_exercise(coordinator, call: ServiceCall) -> dict[str, Any]:
        workout = await coordinator.async_rename_exercise(
            int(call.data["day"]), str(call.data["exercise_id"]), str(call.data["name"])
        )
        return {"workout": workout}

    async def _async_fetch_image(coordinator, call: ServiceCall) -> dict[str, Any]:
        return await coordinator.async_fetch_exercise_image(int(call.data["day"]), str(call.data["exercise_id"]))

    async def _async_upload(coordinator, call: ServiceCall) -> dict[str, Any]:
        return await coordinator.async_request_upload()

    async def _async_download(coordinator, call: ServiceCall) -> dict[str, Any]:
        return await coordinator.async_request_download(call.data.get("sync_id"))

    async def _async_restore_images(coordinator, call: ServiceCall) -> dict[str, Any]:
        return {"images_restored": await coordinator.async_restore_images()}

    services: list[tuple[str, Handler, vol.Schema]] = [
        (SERVICE_GET_STATE, _async_get_state, _ENTRY_SCHEMA),
        (SERVICE_ADD_WORKOUT, _async_add_workout, _ADD_WORKOUT_SCHEMA),
        (SERVICE_COMPLETE_EXERCISE, _async_complete_exercise, _EXERCISE_REF_SCHEMA),
        (SERVICE_ADVANCE_DAY, _async_advance_day, _ENTRY_SCHEMA),
        (SERVICE_RENAME_EXERCISE, _async_rename_exercise, _RENAME_SCHEMA),
        (SERVICE_FETCH_IMAGE, _async_fetch_image, _EXERCISE_REF_SCHEMA),
        (SERVICE_UPLOAD, _async_upload, _ENTRY_SCHEMA),
        (SERVICE_DOWNLOAD, _async_download, _DOWNLOAD_SCHEMA),
        (SERVICE_RESTORE_IMAGES, _async_restore_images, _ENTRY_SCHEMA),
    ]
    for name, handler, schema in services:
        if hass.services.has_service(DOMAIN, name):
            continue
        hass.services.async_register(
            DOMAIN,
            name,
            _wrap(handler),
            schema=schema,
            supports_response=SupportsResponse.ONLY,
        )
