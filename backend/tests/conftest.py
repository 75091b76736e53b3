"""Test fixtures for the MediControl backend."""
from __future__ import annotations

import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from medicontrol.core.config import get_settings
from medicontrol.core.security import get_password_hash
from medicontrol.db.base import Base
from medicontrol.db.session import dispose_engine, get_sessionmaker
from medicontrol.main import app
from medicontrol.models import User, UserProfile, UserStatus


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def app_context(
    reset_database: AsyncIterator[None], db_url: str
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client plus a seeded patient and caregiver account."""
    sessionmaker = get_sessionmaker(db_url)
    patient_password = "Passw0rd!"
    caregiver_password = "Car3giver!"

    async with sessionmaker() as session:
        patient = User(
            email="maria@example.com",
            hashed_password=get_password_hash(patient_password),
            name="Maria Garcia",
            phone="+34612345678",
            status=UserStatus.ACTIVE,
        )
        caregiver = User(
            email="carlos@example.com",
            hashed_password=get_password_hash(caregiver_password),
            name="Carlos Garcia",
            phone="+34611111111",
            status=UserStatus.ACTIVE,
        )
        session.add_all([patient, caregiver])
        await session.flush()
        session.add_all(
            [
                UserProfile(user_id=patient.id, allergies=["penicillin"], conditions=[]),
                UserProfile(user_id=caregiver.id, allergies=[], conditions=[]),
            ]
        )
        await session.commit()

        context: dict[str, object] = {
            "db_url": db_url,
            "patient_id": patient.id,
            "patient_email": patient.email,
            "patient_password": patient_password,
            "caregiver_id": caregiver.id,
            "caregiver_email": caregiver.email,
            "caregiver_password": caregiver_password,
        }

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        context["client"] = client
        yield context
