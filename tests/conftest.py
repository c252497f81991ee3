"""
Pytest configuration and shared fixtures.
"""
import os

# Must be set before licensing.config is imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SESSION_SECRET"] = "test-session-secret-that-is-long-enough-for-hs256"
os.environ["ENVIRONMENT"] = "test"

import httpx
import pytest
import pytest_asyncio

from licensing.db.connection import close_db, get_session_maker, init_db
from licensing.infrastructure.cache_service import revoked_sessions


@pytest.fixture
def application_payload():
    """A form that passes every field constraint"""
    return {
        "license_type": "Trade License",
        "business_name": "Acme Hardware",
        "registration_number": "REG-2024-001",
        "business_address": "12 Market Street, Springfield",
        "contact_person": "Jane Doe",
        "contact_email": "jane@acme.example",
        "phone_number": "+1 555 0100 200",
        "business_type": "Retail",
        "business_description": "Hardware and tools store serving local contractors.",
    }


@pytest_asyncio.fixture(scope="function")
async def db():
    """Fresh in-memory database per test; yields the session factory"""
    await init_db("sqlite+aiosqlite:///:memory:")
    await revoked_sessions.clear()

    yield get_session_maker()

    await close_db()


@pytest_asyncio.fixture
async def client(db):
    """HTTP client bound to the ASGI app (lifespan not run; ``db`` initialises the store)"""
    from licensing.main import app

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client

