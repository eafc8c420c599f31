import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from claim_service.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from claim_service.app.services.revocation_tokens import RevocationTokenStore
from claim_service.depends import (
    get_credential_store,
    get_device_messenger,
    get_revocation_tokens,
    get_unit_of_work,
)
from tests.fixtures.fakes import FakeCredentialStore, FakeDeviceMessenger


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite:///./test.db")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with Session() as session:
        yield session


@pytest.fixture
def credential_store():
    return FakeCredentialStore()


@pytest.fixture
def messenger():
    return FakeDeviceMessenger()


@pytest.fixture
def revocation_tokens():
    return RevocationTokenStore()


@pytest_asyncio.fixture
async def client(db_session, credential_store, messenger, revocation_tokens):
    from claim_service.api.app import create_app
    from config import ApplicationConfig

    app = create_app(ApplicationConfig)

    async def override_get_unit_of_work():
        yield SqlAlchemyUnitOfWork(db_session)

    app.dependency_overrides[get_unit_of_work] = override_get_unit_of_work
    app.dependency_overrides[get_credential_store] = lambda: credential_store
    app.dependency_overrides[get_device_messenger] = lambda: messenger
    app.dependency_overrides[get_revocation_tokens] = lambda: revocation_tokens

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
