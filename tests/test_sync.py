from __future__ import annotations

import asyncio
import json
from pathlib import Path
from unittest.mock import patch

import aiohttp
import pytest

from custom_components.workout_rotation.assets import AssetCache
from custom_components.workout_rotation.exceptions import (
    NetworkError,
    NotFoundError,
    StorageError,
    SyncInProgressError,
    ValidationError,
)
from custom_components.workout_rotation.models import Exercise, RotationState, Workout
from custom_components.workout_rotation.stats import read_rotation
from custom_components.workout_rotation.storage import KEY_ROTATION, encode_record, workout_key
from custom_components.workout_rotation.sync import SyncClient

from .common import ENTRY_ID, make_workout

BASE = "https://blobs.example/api/jsonBlob"
SQUAT_URL = "https://img.example/squat.png"


@pytest.fixture
def assets(hass, tmp_path) -> AssetCache:
    return AssetCache(hass, directory=tmp_path / "images", timeout=1)


@pytest.fixture
def client(hass, kv, workouts, assets, controller, clock) -> SyncClient:
    return SyncClient(
        hass,
        ENTRY_ID,
        kv,
        workouts,
        assets,
        base_url=BASE,
        timeout=1,
        now=clock,
        mutation_lock=controller.lock,
    )


def _remote_snapshot() -> dict[str, str]:
    workout = Workout(
        id="wk_remote",
        day=2,
        title="Pull",
        exercises=(
            Exercise(id="ex_r1", name="Row"),
            Exercise(id="ex_r2", name="Squat", image="/gone/squat.png", original_image=SQUAT_URL),
        ),
    )
    rotation = RotationState(current_day=2, install_date="2026-01-01T12:00:00+00:00", rev=7)
    return {
        workout_key(2): encode_record(workout.as_dict()),
        KEY_ROTATION: encode_record(rotation.as_dict()),
    }


async def test_first_upload_creates_blob(client, kv, workouts, stats, clock, aioclient_mock) -> None:
    await workouts.async_put_workout(make_workout(1, ["Squat"]))
    await stats.async_ensure_rotation()
    aioclient_mock.post(BASE, status=201, headers={"Location": f"{BASE}/blob-123"})

    result = await client.async_request_upload()

    assert result["sync_id"] == "blob-123"
    assert await client.async_get_local_sync_id() == "blob-123"
    method, _url, sent, _headers = aioclient_mock.mock_calls[-1]
    assert method.upper() == "POST"
    assert workout_key(1) in sent
    assert json.loads(sent[KEY_ROTATION])["last_sync_at"] == clock().isoformat()
    assert read_rotation(await kv.async_snapshot()).last_sync_at == clock().isoformat()


async def test_later_uploads_overwrite_blob(client, stats, aioclient_mock) -> None:
    await stats.async_ensure_rotation()
    aioclient_mock.post(BASE, status=201, headers={"X-jsonblob-id": "blob-123"})
    aioclient_mock.put(f"{BASE}/blob-123", status=200)

    await client.async_request_upload()
    result = await client.async_request_upload()

    assert result["sync_id"] == "blob-123"
    assert [call[0].upper() for call in aioclient_mock.mock_calls] == ["POST", "PUT"]


async def test_expired_blob_is_recreated(client, aioclient_mock) -> None:
    aioclient_mock.put(f"{BASE}/old", status=404)
    aioclient_mock.post(BASE, status=201, headers={"Location": f"{BASE}/new/"})

    assert await client.async_upload({"k": "v"}, sync_id="old") == "new"


@pytest.mark.parametrize("mock_kwargs", [{"status": 500}, {"exc": aiohttp.ClientError("down")}])
async def test_failed_upload_changes_nothing(client, kv, stats, aioclient_mock, mock_kwargs) -> None:
    await stats.async_ensure_rotation()
    before = await kv.async_snapshot()
    aioclient_mock.post(BASE, **mock_kwargs)

    with pytest.raises(NetworkError):
        await client.async_request_upload()

    assert await client.async_get_local_sync_id() is None
    assert await kv.async_snapshot() == before


async def test_upload_without_identifier_fails(client, aioclient_mock) -> None:
    aioclient_mock.post(BASE, status=201)
    with pytest.raises(NetworkError):
        await client.async_upload({"k": "v"})


async def test_download_missing_blob(client, kv, workouts, aioclient_mock) -> None:
    await workouts.async_put_workout(make_workout(1, ["Squat"]))
    before = await kv.async_snapshot()
    aioclient_mock.get(f"{BASE}/nope", status=404)

    with pytest.raises(NotFoundError):
        await client.async_request_download("nope")

    assert await kv.async_snapshot() == before
    assert await client.async_get_local_sync_id() is None


@pytest.mark.parametrize(
    "mock_kwargs",
    [
        {"json": {"rotation": 1}},
        {"json": ["not", "a", "map"]},
        {"text": "<html>oops</html>"},
        {"status": 502},
    ],
)
async def test_download_bad_response_changes_nothing(client, kv, workouts, aioclient_mock, mock_kwargs) -> None:
    await workouts.async_put_workout(make_workout(1, ["Squat"]))
    before = await kv.async_snapshot()
    aioclient_mock.get(f"{BASE}/blob-1", **mock_kwargs)

    with pytest.raises(NetworkError):
        await client.async_request_download("blob-1")

    assert await kv.async_snapshot() == before


async def test_download_replaces_store(client, kv, workouts, aioclient_mock) -> None:
    await workouts.async_put_workout(make_workout(1, ["Squat"]))
    aioclient_mock.get(f"{BASE}/blob-9", json=_remote_snapshot())
    aioclient_mock.get(SQUAT_URL, content=b"png-bytes")

    result = await client.async_request_download("blob-9")

    assert result == {"sync_id": "blob-9", "keys": 2, "images_restored": 1}
    assert await workouts.async_get_workout(1) is None
    pulled = await workouts.async_get_workout(2)
    assert pulled.title == "Pull"
    assert pulled.exercises[1].image != "/gone/squat.png"
    assert read_rotation(await kv.async_snapshot()).rev == 7
    assert await client.async_get_local_sync_id() == "blob-9"


async def test_download_defaults_to_local_id(client, stats, aioclient_mock) -> None:
    await stats.async_ensure_rotation()
    aioclient_mock.post(BASE, status=201, headers={"X-jsonblob-id": "mine"})
    aioclient_mock.get(f"{BASE}/mine", json=_remote_snapshot())
    aioclient_mock.get(SQUAT_URL, status=404)
    await client.async_request_upload()

    result = await client.async_request_download()

    assert result["sync_id"] == "mine"
    assert result["images_restored"] == 0


async def test_download_needs_an_id(client) -> None:
    with pytest.raises(ValidationError):
        await client.async_request_download()


async def test_only_one_sync_at_a_time(client) -> None:
    async with client._lock:
        assert client.busy
        with pytest.raises(SyncInProgressError):
            await client.async_request_upload()
        with pytest.raises(SyncInProgressError):
            await client.async_request_download("blob-1")
    assert not client.busy


async def test_restore_waits_for_running_mutation(client, kv, controller, aioclient_mock) -> None:
    aioclient_mock.get(SQUAT_URL, status=404)
    async with controller.lock:
        task = asyncio.create_task(client.async_apply_download(_remote_snapshot()))
        await asyncio.sleep(0)
        await asyncio.sleep(0)
        assert not task.done()
        assert workout_key(2) not in await kv.async_snapshot()

    await task
    assert workout_key(2) in await kv.async_snapshot()


async def test_restore_discards_images_of_replaced_store(client, workouts, assets, aioclient_mock) -> None:
    aioclient_mock.get("https://img.example/bench.png", content=b"bench")
    aioclient_mock.get(SQUAT_URL, content=b"squat")
    local = await assets.async_materialize("https://img.example/bench.png")
    await workouts.async_put_workout(
        Workout(
            id="wk_local",
            day=1,
            title="Push",
            exercises=(
                Exercise(id="ex_l1", name="Bench", image=local, original_image="https://img.example/bench.png"),
            ),
        )
    )

    await client.async_apply_download(_remote_snapshot())

    assert not Path(local).exists()
    restored = (await workouts.async_get_workout(2)).exercises[1].image
    assert Path(restored).exists()


async def test_device_store_failures_are_storage_errors(client, stats, aioclient_mock) -> None:
    await stats.async_ensure_rotation()
    aioclient_mock.post(BASE, status=201, headers={"X-jsonblob-id": "blob-1"})

    with patch.object(client._device, "async_save", side_effect=OSError("read-only")):
        with pytest.raises(StorageError):
            await client.async_request_upload()

    assert not client.busy


async def test_unreadable_device_store_is_a_storage_error(hass, kv, workouts, assets) -> None:
    client = SyncClient(hass, ENTRY_ID, kv, workouts, assets, base_url=BASE)

    with patch.object(client._device, "async_load", side_effect=OSError("corrupt")):
        with pytest.raises(StorageError):
            await client.async_get_local_sync_id()
