"""Websocket API for Workout Rotation."""

from __future__ import annotations

from typing import Any

import voluptuous as vol

from homeassistant.components import websocket_api
from homeassistant.core import HomeAssistant

from .const import DOMAIN
from .exceptions import WorkoutRotationError


def _coordinator_or_error(hass: HomeAssistant, connection: websocket_api.ActiveConnection, msg: dict[str, Any]):
    entry_id = msg["entry_id"]
    coordinator = hass.data.get(DOMAIN, {}).get(entry_id)
    if coordinator is None:
        connection.send_error(msg["id"], "entry_not_found", f"No entry found for entry_id={entry_id}")
    return coordinator


@websocket_api.websocket_command({vol.Required("type"): "workout_rotation/list_entries"})
@websocket_api.async_response
async def ws_list_entries(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    entries = hass.config_entries.async_entries(DOMAIN)
    payload = [{"entry_id": entry.entry_id, "title": entry.title} for entry in entries]
    connection.send_result(msg["id"], {"entries": payload})


@websocket_api.websocket_command(
    {
        vol.Required("type"): "workout_rotation/get_state",
        vol.Required("entry_id"): str,
    }
)
@websocket_api.async_response
async def ws_get_state(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    coordinator = _coordinator_or_error(hass, connection, msg)
    if coordinator is None:
        return
    try:
        state = await coordinator.async_public_state()
    except WorkoutRotationError as e:
        connection.send_error(msg["id"], e.code, str(e))
        return
    connection.send_result(msg["id"], {"entry_id": msg["entry_id"], "state": state})


@websocket_api.websocket_command(
    {
        vol.Required("type"): "workout_rotation/add_workout",
        vol.Required("entry_id"): str,
        vol.Required("day"): vol.Coerce(int),
        vol.Required("title"): str,
        vol.Required("exercises"): [dict],
        vol.Optional("lookup_images"): bool,
    }
)
@websocket_api.async_response
async def ws_add_workout(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    coordinator = _coordinator_or_error(hass, connection, msg)
    if coordinator is None:
        return
    try:
        workout = await coordinator.async_add_or_replace_workout(
            day=msg["day"],
            title=msg["title"],
            exercises=msg["exercises"],
            lookup_images=msg.get("lookup_images"),
        )
    except WorkoutRotationError as e:
        connection.send_error(msg["id"], e.code, str(e))
        return
    connection.send_result(msg["id"], {"entry_id": msg["entry_id"], "workout": workout})


@websocket_api.websocket_command(
    {
        vol.Required("type"): "workout_rotation/complete_exercise",
        vol.Required("entry_id"): str,
        vol.Required("day"): vol.Coerce(int),
        vol.Required("exercise_id"): str,
    }
)
@websocket_api.async_response
async def ws_complete_exercise(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    coordinator = _coordinator_or_error(hass, connection, msg)
    if coordinator is None:
        return
    try:
        result = await coordinator.async_complete_exercise(msg["day"], msg["exercise_id"])
    except WorkoutRotationError as e:
        connection.send_error(msg["id"], e.code, str(e))
        return
    connection.send_result(msg["id"], {"entry_id": msg["entry_id"], **result})


@websocket_api.websocket_command(
    {
        vol.Required("type"): "workout_rotation/fetch_exercise_image",
        vol.Required("entry_id"): str,
        vol.Required("day"): vol.Coerce(int),
        vol.Required("exercise_id"): str,
    }
)
@websocket_api.async_response
async def ws_fetch_exercise_image(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    coordinator = _coordinator_or_error(hass, connection, msg)
    if coordinator is None:
        return
    try:
        result = await coordinator.async_fetch_exercise_image(msg["day"], msg["exercise_id"])
    except WorkoutRotationError as e:
        connection.send_error(msg["id"], e.code, str(e))
        return
    connection.send_result(msg["id"], {"entry_id": msg["entry_id"], **result})


@websocket_api.websocket_command(
    {
        vol.Required("type"): "workout_rotation/sync",
        vol.Required("entry_id"): str,
        vol.Required("direction"): vol.In(["upload", "download"]),
        vol.Optional("sync_id"): str,
    }
)
@websocket_api.async_response
async def ws_sync(
    hass: HomeAssistant,
    connection: websocket_api.ActiveConnection,
    msg: dict[str, Any],
) -> None:
    coordinator = _coordinator_or_error(hass, connection, msg)
    if coordinator is None:
        return
    try:
        if msg["direction"] == "upload":
            result = await coordinator.async_request_upload()
        else:
            result = await coordinator.async_request_download(msg.get("sync_id"))
    except WorkoutRotationError as e:
        connection.send_error(msg["id"], e.code, str(e))
        return
    connection.send_result(msg["id"], {"entry_id": msg["entry_id"], **result})


def async_register(hass: HomeAssistant) -> None:
    websocket_api.async_register_command(hass, ws_list_entries)
    websocket_api.async_register_command(hass, ws_get_state)
    websocket_api.async_register_command(hass, ws_add_workout)
    websocket_api.async_register_command(hass, ws_complete_exercise)
    websocket_api.async_register_command(hass, ws_fetch_exercise_image)
    websocket_api.async_register_command(hass, ws_sync)
