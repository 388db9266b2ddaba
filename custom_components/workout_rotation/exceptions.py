"""Errors raised by the Workout Rotation engine."""

from __future__ import annotations

from homeassistant.exceptions import HomeAssistantError


class WorkoutRotationError(HomeAssistantError):
    """Base error for the integration."""

    code = "unknown_error"


class ValidationError(WorkoutRotationError):
    """Malformed workout input (title, day, exercises)."""

    code = "invalid_workout"


class StorageError(WorkoutRotationError):
    """Local persistence failed; nothing was written."""

    code = "storage_error"


class NetworkError(WorkoutRotationError):
    """Remote call failed or timed out."""

    code = "network_error"


class NotFoundError(WorkoutRotationError):
    """No remote snapshot exists for the sync identifier."""

    code = "not_found"


class SyncInProgressError(WorkoutRotationError):
    """Another upload/download is still running."""

    code = "sync_in_progress"
