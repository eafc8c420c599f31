import asyncio

import pytest

from claim_service.adapter.services.mosquitto_credential_store import MosquittoPasswordFileStore
from claim_service.app.services.credential_store import CredentialStoreError


class FakeProcess:
    def __init__(self, returncode=0, stderr=b""):
        self.returncode = returncode
        self._stderr = stderr

    async def communicate(self):
        return b"", self._stderr


@pytest.fixture
def store():
    return MosquittoPasswordFileStore(
        "/etc/mosquitto/passwd",
        reload_command=["pkill", "-HUP", "mosquitto"],
        debounce_seconds=60,
    )


@pytest.mark.asyncio
async def test_sync_device_writes_entry(monkeypatch, store):
    recorded = []

    async def fake_exec(*args, **kwargs):
        recorded.append(list(args))
        return FakeProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)

    await store.sync_device("AABBCCDDEEFF", "s3cret")

    assert recorded == [
        ["mosquitto_passwd", "-b", "/etc/mosquitto/passwd", "AABBCCDDEEFF", "s3cret"]
    ]
    assert store.debouncer.pending == {"AABBCCDDEEFF"}

    await store.aclose()

    assert recorded[-1] == ["pkill", "-HUP", "mosquitto"]


@pytest.mark.asyncio
async def test_sync_without_reload_does_not_schedule(monkeypatch, store):
    async def fake_exec(*args, **kwargs):
        return FakeProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)

    await store.sync_device("AABBCCDDEEFF", "s3cret", trigger_reload=False)

    assert store.debouncer.pending == set()


@pytest.mark.asyncio
async def test_remove_device_deletes_entry(monkeypatch, store):
    recorded = []

    async def fake_exec(*args, **kwargs):
        recorded.append(list(args))
        return FakeProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)

    await store.remove_device("AABBCCDDEEFF")

    assert recorded == [["mosquitto_passwd", "-D", "/etc/mosquitto/passwd", "AABBCCDDEEFF"]]
    assert store.debouncer.pending == {"AABBCCDDEEFF"}
    await store.aclose()


@pytest.mark.asyncio
async def test_nonzero_exit_raises(monkeypatch, store):
    async def fake_exec(*args, **kwargs):
        return FakeProcess(returncode=1, stderr=b"Error: Unable to open password file.\n")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)

    with pytest.raises(CredentialStoreError) as exc_info:
        await store.sync_device("AABBCCDDEEFF", "s3cret")

    assert "status 1" in str(exc_info.value)
    assert "Unable to open password file" in str(exc_info.value)
    assert store.debouncer.pending == set()


@pytest.mark.asyncio
async def test_missing_binary_raises(monkeypatch, store):
    async def fake_exec(*args, **kwargs):
        raise FileNotFoundError(2, "No such file or directory")

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)

    with pytest.raises(CredentialStoreError):
        await store.remove_device("AABBCCDDEEFF")


@pytest.mark.asyncio
async def test_empty_password_rejected(store):
    with pytest.raises(CredentialStoreError):
        await store.sync_device("AABBCCDDEEFF", "")


class SlowProcess(FakeProcess):
    """Tracks how many mosquitto_passwd runs overlap"""

    active = 0
    max_active = 0

    async def communicate(self):
        SlowProcess.active += 1
        SlowProcess.max_active = max(SlowProcess.max_active, SlowProcess.active)
        await asyncio.sleep(0.05)
        SlowProcess.active -= 1
        return b"", b""


@pytest.mark.asyncio
async def test_concurrent_edits_run_one_at_a_time(monkeypatch, store):
    """
    Given three devices being claimed at the same moment
    When their credentials are synced concurrently
    Then mosquitto_passwd never runs twice at once
    And every entry is written
    """
    recorded = []
    SlowProcess.active = 0
    SlowProcess.max_active = 0

    async def fake_exec(*args, **kwargs):
        recorded.append(list(args))
        return SlowProcess()

    monkeypatch.setattr(asyncio, "create_subprocess_exec", fake_exec)

    await asyncio.gather(
        store.sync_device("AABBCCDDEE01", "one"),
        store.sync_device("AABBCCDDEE02", "two"),
        store.remove_device("AABBCCDDEE03"),
    )

    assert SlowProcess.max_active == 1
    assert sorted(args[3] for args in recorded) == [
        "AABBCCDDEE01",
        "AABBCCDDEE02",
        "AABBCCDDEE03",
    ]
    assert store.debouncer.pending == {"AABBCCDDEE01", "AABBCCDDEE02", "AABBCCDDEE03"}
