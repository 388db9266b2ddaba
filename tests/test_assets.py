from __future__ import annotations

from pathlib import Path

import aiohttp
import pytest

from custom_components.workout_rotation.assets import AssetCache, cache_filename
from custom_components.workout_rotation.models import Exercise, Workout

SQUAT_URL = "https://img.example/squat.png"
ROW_URL = "https://img.example/row.jpg"


@pytest.fixture
def cache(hass, tmp_path) -> AssetCache:
    return AssetCache(hass, directory=tmp_path / "images", timeout=1)


def test_cache_filename_keeps_image_suffix() -> None:
    assert cache_filename(SQUAT_URL).endswith(".png")
    assert cache_filename("https://img.example/render?id=4").endswith(".jpg")


def test_cache_filenames_do_not_repeat() -> None:
    names = {cache_filename(SQUAT_URL) for _ in range(50)}
    assert len(names) == 50


async def test_materialize_writes_local_file(cache, aioclient_mock) -> None:
    aioclient_mock.get(SQUAT_URL, content=b"png-bytes")

    ref = await cache.async_materialize(SQUAT_URL)

    assert ref is not None
    assert Path(ref).parent == cache.directory
    assert Path(ref).read_bytes() == b"png-bytes"
    assert await cache.async_is_resolvable(ref)


@pytest.mark.parametrize(
    "mock_kwargs",
    [
        {"status": 404},
        {"content": b""},
        {"exc": aiohttp.ClientError("boom")},
        {"exc": TimeoutError()},
    ],
)
async def test_materialize_failures_return_none(cache, aioclient_mock, mock_kwargs) -> None:
    aioclient_mock.get(SQUAT_URL, **mock_kwargs)

    assert await cache.async_materialize(SQUAT_URL) is None
    assert not cache.directory.exists() or not any(cache.directory.iterdir())


async def test_materialize_ignores_local_refs(cache, aioclient_mock) -> None:
    assert await cache.async_materialize("/config/www/squat.png") is None
    assert aioclient_mock.call_count == 0


async def test_cache_exercise_keeps_remote_url(cache, aioclient_mock) -> None:
    aioclient_mock.get(SQUAT_URL, content=b"png-bytes")

    cached = await cache.async_cache_exercise(Exercise(id="ex_1", name="Squat", image=SQUAT_URL))

    assert cached.original_image == SQUAT_URL
    assert cache.owns(cached.image)


async def test_cache_exercise_falls_back_to_remote_url(cache, aioclient_mock) -> None:
    aioclient_mock.get(SQUAT_URL, status=500)

    cached = await cache.async_cache_exercise(Exercise(id="ex_1", name="Squat", image=SQUAT_URL))

    assert cached.image == SQUAT_URL
    assert cached.original_image == SQUAT_URL


async def test_discard_only_touches_owned_files(cache, aioclient_mock, tmp_path) -> None:
    aioclient_mock.get(SQUAT_URL, content=b"png-bytes")
    ref = await cache.async_materialize(SQUAT_URL)
    outside = tmp_path / "keep.png"
    outside.write_bytes(b"x")

    await cache.async_discard(ref)
    await cache.async_discard(str(outside))

    assert not Path(ref).exists()
    assert outside.exists()


async def test_restore_all_survives_single_failure(cache, workouts, aioclient_mock) -> None:
    aioclient_mock.get(SQUAT_URL, content=b"png-bytes")
    aioclient_mock.get(ROW_URL, status=404)
    missing = str(cache.directory / "gone.png")
    await workouts.async_put_workout(
        Workout(
            id="wk_1",
            day=1,
            title="Mixed",
            exercises=(
                Exercise(id="ex_a", name="Squat", image=missing, original_image=SQUAT_URL),
                Exercise(id="ex_b", name="Row", image=missing, original_image=ROW_URL),
                Exercise(id="ex_c", name="Plank"),
            ),
        )
    )

    restored = await cache.async_restore_all(workouts)

    assert restored == 1
    workout = await workouts.async_get_workout(1)
    squat, row, plank = workout.exercises
    assert squat.image != missing and await cache.async_is_resolvable(squat.image)
    assert row.image == missing
    assert row.original_image == ROW_URL
    assert plank.image is None


async def test_restore_all_skips_present_files(cache, workouts, aioclient_mock) -> None:
    aioclient_mock.get(SQUAT_URL, content=b"png-bytes")
    local = await cache.async_materialize(SQUAT_URL)
    await workouts.async_put_workout(
        Workout(
            id="wk_2",
            day=2,
            title="Legs",
            exercises=(Exercise(id="ex_a", name="Squat", image=local, original_image=SQUAT_URL),),
        )
    )

    assert await cache.async_restore_all(workouts) == 0
    assert aioclient_mock.call_count == 1
