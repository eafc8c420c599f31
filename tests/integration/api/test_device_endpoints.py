import pytest
from httpx import AsyncClient
from sqlmodel import select

from claim_service.domain.entities import ClaimingQueueEntry, Device
from tests.fixtures.seed import seed_device, seed_tenant


@pytest.mark.asyncio
async def test_claim_status_for_live_device(client: AsyncClient, db_session):
    tenant_id = await seed_tenant(db_session, "Home")
    await seed_device(db_session, tenant_id, "AABBCCDDEEFF")

    response = await client.get("/api/device/claim-status", params={"mac": "AA:BB:CC:DD:EE:FF"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "claimed": True}


@pytest.mark.asyncio
async def test_claim_status_for_unclaimed_device(client: AsyncClient, db_session):
    """Revoked device

    Given the device's record was soft-deleted
    When it polls claim-status
    Then it gets 410 Gone with claimed=false and the revocation time
    """
    tenant_id = await seed_tenant(db_session, "Home")
    await seed_device(db_session, tenant_id, "AABBCCDDEEFF", unclaimed=True)

    response = await client.get("/api/device/claim-status", params={"mac": "AA:BB:CC:DD:EE:FF"})

    assert response.status_code == 410
    body = response.json()
    assert body["success"] is False
    assert body["code"] == "DEVICE_REVOKED"
    assert body["claimed"] is False
    assert body["revokedAt"]
    assert "details" not in body


@pytest.mark.asyncio
async def test_claim_status_unknown_device(client: AsyncClient):
    response = await client.get("/api/device/claim-status", params={"mac": "AA:BB:CC:DD:EE:FF"})

    assert response.status_code == 404
    assert response.json()["code"] == "DEVICE_NOT_FOUND"


@pytest.mark.asyncio
async def test_claim_status_requires_mac(client: AsyncClient):
    response = await client.get("/api/device/claim-status")

    assert response.status_code == 400
    assert response.json()["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_claiming_mode_then_check_claim(client: AsyncClient, db_session):
    """Claiming-mode polling

    Given a device announces claiming mode
    When it polls check-claim before and after being claimed
    Then it first sees claimed=false and then its credential bundle
    """
    response = await client.post(
        "/api/device/claiming-mode",
        json={"mac": "AA:BB:CC:DD:EE:FF", "serial": "MT-0001", "ip": "192.168.1.50"},
    )
    assert response.status_code == 200
    assert response.json()["data"]["expiresAt"]

    entry = (await db_session.exec(select(ClaimingQueueEntry))).one()
    assert entry.serial_number == "MT-0001"

    waiting = await client.get("/api/device/check-claim/AA:BB:CC:DD:EE:FF")
    assert waiting.status_code == 200
    assert waiting.json() == {
        "success": True,
        "claimed": False,
        "message": "Waiting for claim to complete",
    }

    tenant_id = await seed_tenant(db_session, "Home")
    await seed_device(db_session, tenant_id, "AABBCCDDEEFF", name="Kitchen")

    claimed = await client.get("/api/device/check-claim/AA:BB:CC:DD:EE:FF")
    body = claimed.json()
    assert body["claimed"] is True
    assert body["data"]["mqttClientId"] == "AABBCCDDEEFF"
    assert body["data"]["deviceName"] == "Kitchen"


@pytest.mark.asyncio
async def test_unclaim_notify_soft_deletes(client: AsyncClient, db_session, credential_store):
    tenant_id = await seed_tenant(db_session, "Home")
    await seed_device(db_session, tenant_id, "AABBCCDDEEFF")

    response = await client.post(
        "/api/device/unclaim-notify", json={"mac": "AA:BB:CC:DD:EE:FF", "source": "factory_reset"}
    )

    assert response.status_code == 200
    assert response.json()["data"]["message"] == "Device unclaimed successfully"
    assert credential_store.removed == ["AABBCCDDEEFF"]

    device = (await db_session.exec(select(Device))).one()
    assert device.unclaimed_at is not None
    assert device.online is False

    again = await client.post("/api/device/unclaim-notify", json={"mac": "AA:BB:CC:DD:EE:FF"})
    assert again.status_code == 200
    assert again.json()["data"]["message"] == "Device already unclaimed"


@pytest.mark.asyncio
async def test_recover_claim_unknown_device(client: AsyncClient):
    response = await client.post("/api/setup/recover-claim", json={"mac": "AA:BB:CC:DD:EE:FF"})

    assert response.status_code == 404
    body = response.json()
    assert body["code"] == "DEVICE_NOT_CLAIMED"
    assert body["needsRegistration"] is True


@pytest.mark.asyncio
async def test_recover_claim_reactivates_device(client: AsyncClient, db_session, credential_store):
    """Given an unclaimed device, recover-claim revives it in its last tenant"""
    tenant_id = await seed_tenant(db_session, "Home")
    device_id = await seed_device(db_session, tenant_id, "AABBCCDDEEFF", unclaimed=True)

    response = await client.post("/api/setup/recover-claim", json={"mac": "aabbccddeeff"})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["deviceId"] == str(device_id)
    assert data["tenantId"] == str(tenant_id)
    assert credential_store.entries["AABBCCDDEEFF"] == data["mqttCredentials"]["password"]

    device = (await db_session.exec(select(Device))).one()
    assert device.unclaimed_at is None


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
