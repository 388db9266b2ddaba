"""Exercise image search against the wger exercise database."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import aiohttp

from homeassistant.core import HomeAssistant
from homeassistant.helpers.aiohttp_client import async_get_clientsession

from .const import IMAGE_SEARCH_HOST, IMAGE_SEARCH_URL, IMAGE_TIMEOUT, MIN_LOOKUP_NAME_LENGTH

_LOGGER = logging.getLogger(__name__)


def pick_image(payload: Any) -> str | None:
    """First suggestion carrying an image, as an absolute URL."""
    if not isinstance(payload, dict):
        return None
    suggestions = payload.get("suggestions")
    if not isinstance(suggestions, list):
        return None
    for s in suggestions:
        data = s.get("data") if isinstance(s, dict) else None
        image = str((data or {}).get("image") or "").strip() if isinstance(data, dict) else ""
        if not image:
            continue
        if image.startswith(("http://", "https://")):
            return image
        # Search results carry site-relative media paths.
        return f"{IMAGE_SEARCH_HOST}{image}"
    return None


class ImageLookup:
    """Best-effort name -> image URL lookup; absence is not an error."""

    def __init__(self, hass: HomeAssistant, *, timeout: float = IMAGE_TIMEOUT) -> None:
        self._hass = hass
        self._timeout = timeout

    async def async_find_image(self, name: str) -> str | None:
        term = str(name or "").strip()
        if len(term) < MIN_LOOKUP_NAME_LENGTH:
            return None
        session = async_get_clientsession(self._hass)
        try:
            async with asyncio.timeout(self._timeout):
                async with session.get(
                    IMAGE_SEARCH_URL,
                    params={"term": term},
                    headers={"Accept": "application/json"},
                ) as resp:
                    if resp.status != 200:
                        _LOGGER.debug("Image search for %r returned HTTP %s", term, resp.status)
                        return None
                    payload = await resp.json(content_type=None)
        except (aiohttp.ClientError, TimeoutError, ValueError) as err:
            _LOGGER.warning("Image search for %r failed: %s", term, err)
            return None
        return pick_image(payload)
