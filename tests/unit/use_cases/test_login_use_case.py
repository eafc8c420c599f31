from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import bcrypt
import pytest

from claim_service.api.utils.jwt import verify_jwt
from claim_service.app.use_cases.auth import LoginUseCase, RefreshTokenUseCase
from claim_service.domain.clock import utcnow
from claim_service.domain.entities import Membership, MembershipRole, Session, Tenant, User


@pytest.fixture
def uow(mock_uow):
    mock_uow.users = MagicMock()
    mock_uow.users.get_by_email = AsyncMock(return_value=None)
    mock_uow.users.update = AsyncMock()

    mock_uow.memberships = MagicMock()
    mock_uow.memberships.get_by_user_id = AsyncMock(return_value=[])
    mock_uow.memberships.get_by_user_and_tenant = AsyncMock(return_value=None)

    mock_uow.tenants = MagicMock()
    mock_uow.tenants.get_by_id = AsyncMock(return_value=None)

    mock_uow.sessions = MagicMock()
    mock_uow.sessions.create = AsyncMock(side_effect=lambda s: s)
    mock_uow.sessions.update = AsyncMock(side_effect=lambda s: s)
    mock_uow.sessions.find_by_refresh_token = AsyncMock(return_value=None)
    return mock_uow


def make_user(password="SecurePass123!", **overrides):
    fields = dict(
        id=uuid4(),
        email="user@acme.com",
        password_hash=bcrypt.hashpw(password.encode(), bcrypt.gensalt(4)).decode(),
    )
    fields.update(overrides)
    return User(**fields)


@pytest.mark.asyncio
async def test_successful_login(uow):
    """Test successful login flow"""
    # Arrange
    user = make_user()
    home = Tenant(id=uuid4(), name="Home")
    office = Tenant(id=uuid4(), name="Office")
    uow.users.get_by_email.return_value = user
    uow.memberships.get_by_user_id.return_value = [
        Membership(user_id=user.id, tenant_id=home.id, role=MembershipRole.admin),
        Membership(user_id=user.id, tenant_id=office.id, role=MembershipRole.viewer),
    ]
    uow.tenants.get_by_id.side_effect = lambda tid: {home.id: home, office.id: office}[tid]

    # Act
    result = await LoginUseCase(uow).execute("User@Acme.com", "SecurePass123!")

    # Assert
    assert result.is_ok()
    data = result.value
    assert data.active_tenant.name == "Home"
    assert data.active_tenant.role == "admin"
    assert [t.name for t in data.other_tenants] == ["Office"]
    assert verify_jwt(data.access_token)["tenant_id"] == str(home.id)

    uow.users.get_by_email.assert_awaited_once_with("user@acme.com")
    uow.sessions.create.assert_awaited_once()
    assert user.last_active_tenant_id == home.id
    assert user.last_login_at is not None
    uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_login_prefers_last_active_tenant(uow):
    home = Tenant(id=uuid4(), name="Home")
    office = Tenant(id=uuid4(), name="Office")
    user = make_user(last_active_tenant_id=office.id)
    uow.users.get_by_email.return_value = user
    uow.memberships.get_by_user_id.return_value = [
        Membership(user_id=user.id, tenant_id=home.id, role=MembershipRole.admin),
        Membership(user_id=user.id, tenant_id=office.id, role=MembershipRole.viewer),
    ]
    uow.tenants.get_by_id.side_effect = lambda tid: {home.id: home, office.id: office}[tid]

    result = await LoginUseCase(uow).execute("user@acme.com", "SecurePass123!")

    assert result.value.active_tenant.name == "Office"
    assert result.value.active_tenant.role == "viewer"


@pytest.mark.asyncio
async def test_login_wrong_password(uow):
    uow.users.get_by_email.return_value = make_user()

    result = await LoginUseCase(uow).execute("user@acme.com", "WrongPassword!")

    assert result.is_err()
    assert result.error.code == "INVALID_CREDENTIALS"
    uow.sessions.create.assert_not_called()
    uow.commit.assert_not_called()


@pytest.mark.asyncio
async def test_login_unknown_user(uow):
    result = await LoginUseCase(uow).execute("nobody@acme.com", "SecurePass123!")

    assert result.error.code == "INVALID_CREDENTIALS"
    assert result.error.message == "Invalid email or password"


@pytest.mark.asyncio
async def test_login_inactive_user(uow):
    uow.users.get_by_email.return_value = make_user(is_active=False)

    result = await LoginUseCase(uow).execute("user@acme.com", "SecurePass123!")

    assert result.error.code == "USER_DISABLED"


@pytest.mark.asyncio
async def test_login_without_live_tenant(uow):
    user = make_user()
    deleted = Tenant(id=uuid4(), name="Old", deleted_at=utcnow())
    uow.users.get_by_email.return_value = user
    uow.memberships.get_by_user_id.return_value = [
        Membership(user_id=user.id, tenant_id=deleted.id, role=MembershipRole.admin)
    ]
    uow.tenants.get_by_id.return_value = deleted

    result = await LoginUseCase(uow).execute("user@acme.com", "SecurePass123!")

    assert result.error.code == "NO_ACTIVE_MEMBERSHIP"


@pytest.mark.asyncio
async def test_refresh_rotates_token(uow):
    session = Session(
        id=uuid4(),
        user_id=uuid4(),
        tenant_id=uuid4(),
        refresh_token_hash="old",
        expires_at=utcnow() + timedelta(days=1),
    )
    uow.sessions.find_by_refresh_token.return_value = session
    uow.memberships.get_by_user_and_tenant.return_value = Membership(
        user_id=session.user_id, tenant_id=session.tenant_id, role=MembershipRole.operator
    )

    result = await RefreshTokenUseCase(uow).execute("presented-token")

    assert result.is_ok()
    assert result.value.session_id == str(session.id)
    assert bcrypt.checkpw(result.value.refresh_token.encode(), session.refresh_token_hash.encode())
    assert verify_jwt(result.value.access_token)["role"] == "operator"
    uow.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_refresh_expired_session(uow):
    uow.sessions.find_by_refresh_token.return_value = Session(
        user_id=uuid4(),
        tenant_id=uuid4(),
        refresh_token_hash="old",
        expires_at=utcnow() - timedelta(minutes=1),
    )

    result = await RefreshTokenUseCase(uow).execute("presented-token")

    assert result.error.code == "SESSION_EXPIRED"


@pytest.mark.asyncio
async def test_refresh_unknown_token(uow):
    result = await RefreshTokenUseCase(uow).execute("presented-token")

    assert result.error.code == "INVALID_TOKEN"
