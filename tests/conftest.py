# tests/conftest.py
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

import os
import uuid

import pytest
import pytest_asyncio
import httpx
from sqlalchemy.ext.asyncio import AsyncSession

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-bakery-storefront")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("ASYNC_DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")
os.environ.setdefault("EMAILS_ENABLED", "false")

from app.main import app
from app.core.security import create_access_token
from app.db.session import Base, engine as sync_engine
from app.db.session_async import AsyncSessionLocal

API = "/api/v1"


# ---------- Fixtures ----------
@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Crea las tablas en SQLite solo una vez por sesión de tests."""
    import app.models.cart   # noqa: F401
    import app.models.order  # noqa: F401

    Base.metadata.create_all(bind=sync_engine)
    yield
    Base.metadata.drop_all(bind=sync_engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    with sync_engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest_asyncio.fixture(scope="function")
async def client():
    """Provee un AsyncClient enlazado a la app sin overrides adicionales."""
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def async_db_session() -> AsyncSession:
    """Provee una AsyncSession para pruebas asíncronas directas."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.rollback()


# --- Tokens: mismo formato que firma el proveedor de identidad ---

def make_token(subject: str, *, admin: bool = False) -> str:
    scopes = ["cart:write", "orders:write"] + (["admin"] if admin else [])
    return create_access_token(subject, extra={"scopes": scopes, "is_admin": admin})


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def user_id() -> str:
    return f"user-{uuid.uuid4().hex[:12]}"


@pytest.fixture(scope="function")
def user_token(user_id: str) -> str:
    return make_token(user_id)


@pytest.fixture(scope="function")
def other_user_token() -> str:
    return make_token(f"user-{uuid.uuid4().hex[:12]}")


@pytest.fixture(scope="function")
def admin_token() -> str:
    return make_token(f"admin-{uuid.uuid4().hex[:12]}", admin=True)
