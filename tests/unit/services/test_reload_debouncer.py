import asyncio
import logging

import pytest

from claim_service.adapter.services.reload_debouncer import ReloadDebouncer
from claim_service.app.services.credential_store import CredentialStoreError


class CountingReload:
    def __init__(self, fail=False):
        self.calls = 0
        self.fail = fail

    async def __call__(self):
        self.calls += 1
        if self.fail:
            raise CredentialStoreError("pkill exited with status 1")


@pytest.mark.asyncio
async def test_burst_of_changes_reloads_once():
    """
    Given five credential writes in quick succession
    When the quiet period elapses
    Then the broker is reloaded exactly once
    """
    reload = CountingReload()
    debouncer = ReloadDebouncer(reload, delay=0.05)

    for i in range(5):
        debouncer.schedule(f"DEVICE{i}")
        await asyncio.sleep(0.01)

    assert reload.calls == 0
    assert len(debouncer.pending) == 5

    await asyncio.sleep(0.15)
    await debouncer.flush()

    assert reload.calls == 1
    assert debouncer.reload_count == 1
    assert debouncer.pending == set()


@pytest.mark.asyncio
async def test_flush_runs_pending_reload_immediately():
    reload = CountingReload()
    debouncer = ReloadDebouncer(reload, delay=60)
    debouncer.schedule("AABBCCDDEEFF")

    await debouncer.flush()

    assert reload.calls == 1


@pytest.mark.asyncio
async def test_flush_without_pending_is_noop():
    reload = CountingReload()
    debouncer = ReloadDebouncer(reload, delay=60)

    await debouncer.flush()

    assert reload.calls == 0


@pytest.mark.asyncio
async def test_failed_reload_is_logged(caplog):
    reload = CountingReload(fail=True)
    debouncer = ReloadDebouncer(reload, delay=60)
    debouncer.schedule("AABBCCDDEEFF")

    with caplog.at_level(logging.ERROR):
        await debouncer.flush()

    assert reload.calls == 1
    assert debouncer.reload_count == 0
    assert "Broker reload failed" in caplog.text


class SlowReload(CountingReload):
    def __init__(self, delay):
        super().__init__()
        self.delay = delay
        self.finished = 0

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(self.delay)
        self.finished += 1


@pytest.mark.asyncio
async def test_flush_waits_for_every_in_flight_reload():
    """
    Given a slow reload already running when a second quiet period ends
    When the store flushes on shutdown
    Then flush returns only after both reloads have finished
    """
    reload = SlowReload(delay=0.1)
    debouncer = ReloadDebouncer(reload, delay=0.01)

    debouncer.schedule("DEVICE1")
    await asyncio.sleep(0.03)
    debouncer.schedule("DEVICE2")
    await asyncio.sleep(0.03)

    assert reload.calls == 2
    assert reload.finished == 0

    await debouncer.flush()

    assert reload.finished == 2
    assert debouncer.reload_count == 2
