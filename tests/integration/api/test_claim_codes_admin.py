import pytest
from httpx import AsyncClient

from claim_service.domain.entities import MembershipRole
from tests.fixtures.seed import auth_header, seed_tenant, seed_user


@pytest.mark.asyncio
async def test_issue_and_list_claim_codes(client: AsyncClient, db_session):
    """Claim code issuance

    Given an admin of T1
    When they issue a claim code for "Kitchen"
    Then an 8 character active code is returned
    And it shows up in their claim code list
    """
    tenant_id = await seed_tenant(db_session, "Home")
    admin_id = await seed_user(db_session, "admin@example.com", tenant_id)
    headers = auth_header(admin_id, tenant_id)

    response = await client.post(
        "/api/admin/claim-codes",
        json={"deviceName": "Kitchen", "tenantId": str(tenant_id)},
        headers=headers,
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert len(data["claimCode"]) == 8
    assert data["status"] == "active"
    assert data["deviceName"] == "Kitchen"

    listed = await client.get("/api/admin/claim-codes", headers=headers)
    assert listed.status_code == 200
    codes = listed.json()["data"]["claimCodes"]
    assert [c["claimCode"] for c in codes] == [data["claimCode"]]


@pytest.mark.asyncio
async def test_viewer_cannot_issue_claim_code(client: AsyncClient, db_session):
    tenant_id = await seed_tenant(db_session, "Home")
    viewer_id = await seed_user(
        db_session, "viewer@example.com", tenant_id, role=MembershipRole.viewer
    )

    response = await client.post(
        "/api/admin/claim-codes",
        json={"deviceName": "Kitchen", "tenantId": str(tenant_id)},
        headers=auth_header(viewer_id, tenant_id, "viewer"),
    )

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"
