"""Config flow for Workout Rotation."""

from __future__ import annotations

from typing import Any

import voluptuous as vol

from homeassistant import config_entries
from homeassistant.core import callback

from .const import (
    ADVANCE_POLICIES,
    CONF_ADVANCE_POLICY,
    CONF_IMAGE_LOOKUP,
    CONF_NAME,
    CONF_SYNC_URL,
    DEFAULT_ADVANCE_POLICY,
    DEFAULT_IMAGE_LOOKUP,
    DEFAULT_NAME,
    DEFAULT_SYNC_URL,
    DOMAIN,
)


def _clean_url(value: Any) -> str:
    url = str(value or "").strip().rstrip("/")
    return url or DEFAULT_SYNC_URL


def _valid_url(url: str) -> bool:
    return url.startswith(("http://", "https://"))


class WorkoutRotationConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """Handle a config flow for Workout Rotation."""

    VERSION = 1

    async def async_step_user(self, user_input: dict[str, Any] | None = None):
        errors: dict[str, str] = {}
        if user_input is not None:
            name = str(user_input.get(CONF_NAME, DEFAULT_NAME)).strip() or DEFAULT_NAME
            sync_url = _clean_url(user_input.get(CONF_SYNC_URL))
            if not _valid_url(sync_url):
                errors[CONF_SYNC_URL] = "invalid_url"
            else:
                await self.async_set_unique_id(name.lower())
                self._abort_if_unique_id_configured()
                return self.async_create_entry(
                    title=name,
                    data={
                        CONF_NAME: name,
                        CONF_SYNC_URL: sync_url,
                        CONF_ADVANCE_POLICY: user_input.get(CONF_ADVANCE_POLICY, DEFAULT_ADVANCE_POLICY),
                    },
                )

        schema = vol.Schema(
            {
                vol.Required(CONF_NAME, default=DEFAULT_NAME): str,
                vol.Required(CONF_SYNC_URL, default=DEFAULT_SYNC_URL): str,
                vol.Required(CONF_ADVANCE_POLICY, default=DEFAULT_ADVANCE_POLICY): vol.In(ADVANCE_POLICIES),
            }
        )
        return self.async_show_form(step_id="user", data_schema=schema, errors=errors)

    @staticmethod
    @callback
    def async_get_options_flow(config_entry):
        return WorkoutRotationOptionsFlow()


class WorkoutRotationOptionsFlow(config_entries.OptionsFlow):
    """Handle options for Workout Rotation."""

    async def async_step_init(self, user_input: dict[str, Any] | None = None):
        errors: dict[str, str] = {}
        if user_input is not None:
            sync_url = _clean_url(user_input.get(CONF_SYNC_URL))
            if not _valid_url(sync_url):
                errors[CONF_SYNC_URL] = "invalid_url"
            else:
                return self.async_create_entry(
                    title="",
                    data={
                        CONF_NAME: str(user_input.get(CONF_NAME, DEFAULT_NAME)).strip() or DEFAULT_NAME,
                        CONF_SYNC_URL: sync_url,
                        CONF_ADVANCE_POLICY: user_input.get(CONF_ADVANCE_POLICY, DEFAULT_ADVANCE_POLICY),
                        CONF_IMAGE_LOOKUP: bool(user_input.get(CONF_IMAGE_LOOKUP, DEFAULT_IMAGE_LOOKUP)),
                    },
                )

        def _current(key: str, default: Any) -> Any:
            return self.config_entry.options.get(key, self.config_entry.data.get(key, default))

        schema = vol.Schema(
            {
                vol.Required(CONF_NAME, default=str(_current(CONF_NAME, DEFAULT_NAME))): str,
                vol.Required(CONF_SYNC_URL, default=str(_current(CONF_SYNC_URL, DEFAULT_SYNC_URL))): str,
                vol.Required(
                    CONF_ADVANCE_POLICY, default=_current(CONF_ADVANCE_POLICY, DEFAULT_ADVANCE_POLICY)
                ): vol.In(ADVANCE_POLICIES),
                vol.Required(CONF_IMAGE_LOOKUP, default=bool(_current(CONF_IMAGE_LOOKUP, DEFAULT_IMAGE_LOOKUP))): bool,
            }
        )
        return self.async_show_form(step_id="init", data_schema=schema, errors=errors)
