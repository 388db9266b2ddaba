from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from custom_components.workout_rotation.const import (
    ADVANCE_MANUAL,
    CONF_ADVANCE_POLICY,
    CONF_IMAGE_LOOKUP,
    CONF_NAME,
    CONF_SYNC_URL,
    DOMAIN,
    IMAGE_SEARCH_URL,
)
from custom_components.workout_rotation.coordinator import WorkoutRotationCoordinator

SQUAT_IMAGE = "https://wger.de/media/squat.png"
FRONT_SQUAT_IMAGE = "https://wger.de/media/front-squat.png"


def _mock_search(aioclient_mock, term: str, image: str | None) -> None:
    suggestions = [{"value": term, "data": {"image": image}}] if image else []
    aioclient_mock.get(IMAGE_SEARCH_URL, params={"term": term}, json={"suggestions": suggestions})


@pytest.fixture
async def coordinator(hass, tmp_path):
    entry = MockConfigEntry(
        domain=DOMAIN,
        data={CONF_NAME: "Gym", CONF_SYNC_URL: "https://blobs.example/api", CONF_ADVANCE_POLICY: ADVANCE_MANUAL},
        options={CONF_IMAGE_LOOKUP: True},
    )
    entry.add_to_hass(hass)
    coordinator = WorkoutRotationCoordinator(hass, entry)
    coordinator.assets.directory = tmp_path / "images"
    yield coordinator
    await coordinator.async_shutdown()


async def test_add_looks_up_and_caches_images(coordinator, aioclient_mock) -> None:
    _mock_search(aioclient_mock, "Squat", "/media/squat.png")
    aioclient_mock.get(SQUAT_IMAGE, content=b"squat")

    workout = await coordinator.async_add_or_replace_workout(day=1, title="Legs", exercises=[{"name": "Squat"}])

    exercise = workout["exercises"][0]
    assert exercise["original_image"] == SQUAT_IMAGE
    assert coordinator.assets.owns(exercise["image"])
    assert Path(exercise["image"]).read_bytes() == b"squat"


async def test_lookup_miss_leaves_image_empty(coordinator, aioclient_mock) -> None:
    _mock_search(aioclient_mock, "Mystery move", None)

    workout = await coordinator.async_add_or_replace_workout(
        day=1, title="Odd", exercises=[{"name": "Mystery move"}]
    )

    assert workout["exercises"][0]["image"] is None
    assert workout["exercises"][0]["original_image"] is None


async def test_replacing_a_workout_discards_its_images(coordinator, aioclient_mock) -> None:
    _mock_search(aioclient_mock, "Squat", "/media/squat.png")
    aioclient_mock.get(SQUAT_IMAGE, content=b"squat")
    first = await coordinator.async_add_or_replace_workout(day=1, title="Legs", exercises=[{"name": "Squat"}])
    old_file = Path(first["exercises"][0]["image"])

    await coordinator.async_add_or_replace_workout(
        day=1, title="Core", exercises=[{"name": "Plank"}], lookup_images=False
    )

    assert not old_file.exists()


async def test_replacing_keeps_images_still_in_use(coordinator, aioclient_mock) -> None:
    _mock_search(aioclient_mock, "Squat", "/media/squat.png")
    aioclient_mock.get(SQUAT_IMAGE, content=b"squat")
    first = await coordinator.async_add_or_replace_workout(day=1, title="Legs", exercises=[{"name": "Squat"}])
    kept = first["exercises"][0]

    await coordinator.async_add_or_replace_workout(
        day=1, title="Legs again", exercises=[kept, {"name": "Plank"}], lookup_images=False
    )

    assert Path(kept["image"]).exists()


async def test_rename_then_fetch_uses_a_new_file(coordinator, aioclient_mock) -> None:
    _mock_search(aioclient_mock, "Squat", "/media/squat.png")
    _mock_search(aioclient_mock, "Front squat", "/media/front-squat.png")
    aioclient_mock.get(SQUAT_IMAGE, content=b"squat")
    aioclient_mock.get(FRONT_SQUAT_IMAGE, content=b"front")
    added = await coordinator.async_add_or_replace_workout(day=1, title="Legs", exercises=[{"name": "Squat"}])
    exercise_id = added["exercises"][0]["id"]
    old_file = Path(added["exercises"][0]["image"])

    renamed = await coordinator.async_rename_exercise(1, exercise_id, "Front squat")
    assert renamed["exercises"][0]["image"] is None
    assert not old_file.exists()

    result = await coordinator.async_fetch_exercise_image(1, exercise_id)

    assert result["fetched"] is True
    exercise = result["workout"]["exercises"][0]
    new_file = Path(exercise["image"])
    assert new_file != old_file
    assert new_file.read_bytes() == b"front"
    assert exercise["original_image"] == FRONT_SQUAT_IMAGE


async def test_fetch_is_noop_when_image_present(coordinator, aioclient_mock) -> None:
    added = await coordinator.async_add_or_replace_workout(
        day=2,
        title="Core",
        exercises=[{"name": "Plank", "image": "/local/plank.png"}],
        lookup_images=False,
    )

    result = await coordinator.async_fetch_exercise_image(2, added["exercises"][0]["id"])

    assert result["fetched"] is False
    assert result["workout"]["exercises"][0]["image"] == "/local/plank.png"
    assert aioclient_mock.call_count == 0


async def test_fetch_discards_download_when_renamed_meanwhile(coordinator, aioclient_mock) -> None:
    added = await coordinator.async_add_or_replace_workout(
        day=3, title="Core", exercises=[{"name": "Plank"}], lookup_images=False
    )
    exercise_id = added["exercises"][0]["id"]
    aioclient_mock.get("https://wger.de/media/plank.png", content=b"plank")

    async def _find_and_rename(name: str) -> str:
        await coordinator.rotation.async_edit_exercise(3, exercise_id, name="Side plank")
        return "https://wger.de/media/plank.png"

    with patch.object(coordinator.images, "async_find_image", side_effect=_find_and_rename):
        result = await coordinator.async_fetch_exercise_image(3, exercise_id)

    assert result["fetched"] is False
    exercise = result["workout"]["exercises"][0]
    assert exercise["name"] == "Side plank"
    assert exercise["image"] is None
    assert not any(coordinator.assets.directory.iterdir())
