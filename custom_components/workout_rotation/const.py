"""Constants for Workout Rotation integration."""

from __future__ import annotations

from homeassistant.const import Platform

DOMAIN = "workout_rotation"

PLATFORMS: list[Platform] = [
    Platform.BUTTON,
    Platform.SENSOR,
]

CONF_NAME = "name"
CONF_SYNC_URL = "sync_url"
CONF_ADVANCE_POLICY = "advance_policy"
CONF_IMAGE_LOOKUP = "image_lookup"

DEFAULT_NAME = "Workout Rotation"
DEFAULT_SYNC_URL = "https://jsonblob.com/api/jsonBlob"
DEFAULT_IMAGE_LOOKUP = True

ADVANCE_MANUAL = "manual"
ADVANCE_ON_COMPLETE = "on_complete"
ADVANCE_NEXT_DAY = "next_day"
ADVANCE_POLICIES = [ADVANCE_MANUAL, ADVANCE_ON_COMPLETE, ADVANCE_NEXT_DAY]
DEFAULT_ADVANCE_POLICY = ADVANCE_MANUAL

MIN_DAY = 1
MAX_DAY = 7
MIN_EXERCISES = 1
MAX_EXERCISES = 7
MIN_LOOKUP_NAME_LENGTH = 3

IMAGE_SEARCH_URL = "https://wger.de/api/v2/exercise/search/"
IMAGE_SEARCH_HOST = "https://wger.de"
IMAGE_DIR = "images"

IMAGE_TIMEOUT = 10
SYNC_TIMEOUT = 20

NO_WORKOUT_TITLE = "No Workouts"

SIGNAL_STATE_UPDATED = f"{DOMAIN}_state_updated"
