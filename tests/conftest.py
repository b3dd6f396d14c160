"""
Test configuration and shared fixtures.
Uses an in-memory SQLite database per test and an in-memory object store
that records every call and can be told to fail specific operations.
"""
from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SUPABASE_URL", "https://project.supabase.test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import uuid  # noqa: E402
from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

import mytasks.models  # noqa: E402,F401
from mytasks.core.config import settings  # noqa: E402
from mytasks.core.dependencies import get_storage  # noqa: E402
from mytasks.core.exceptions import ObjectNotFoundError, ResolutionFailure, StorageError  # noqa: E402
from mytasks.core.security import UserSession, create_access_token  # noqa: E402
from mytasks.db.base import Base  # noqa: E402
from mytasks.db.session import get_db  # noqa: E402
from mytasks.main import app  # noqa: E402
from mytasks.services.storage_service import PDF_CONTENT_TYPE, ObjectStore, build_public_url  # noqa: E402

PDF_BYTES = b"%PDF-1.7\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"


class InMemoryObjectStore(ObjectStore):
    """Dict-backed ObjectStore with call recording and failure injection."""

    def __init__(self, base_url: str = settings.SUPABASE_URL) -> None:
        self.base_url = base_url
        self.objects: dict[tuple[str, str], bytes] = {}
        self.content_types: dict[tuple[str, str], str] = {}
        self.calls: list[tuple[str, str, str]] = []
        self.failures: dict[str, StorageError] = {}

    def fail(self, operation: str, error: StorageError | None = None) -> None:
        self.failures[operation] = error or StorageError(f"injected {operation} failure")

    def _enter(self, operation: str, bucket: str, path: str) -> None:
        self.calls.append((operation, bucket, path))
        if operation in self.failures:
            raise self.failures[operation]

    def has(self, bucket: str, path: str) -> bool:
        return (bucket, path) in self.objects

    async def upload(
        self,
        bucket: str,
        path: str,
        content: bytes,
        content_type: str = PDF_CONTENT_TYPE,
    ) -> None:
        self._enter("upload", bucket, path)
        if (bucket, path) in self.objects:
            raise StorageError(f"The resource already exists: {bucket}/{path}")
        self.objects[(bucket, path)] = content
        self.content_types[(bucket, path)] = content_type

    async def download(self, bucket: str, path: str) -> bytes:
        self._enter("download", bucket, path)
        try:
            return self.objects[(bucket, path)]
        except KeyError:
            raise ObjectNotFoundError(bucket, path) from None

    async def remove(self, bucket: str, path: str) -> None:
        self._enter("remove", bucket, path)
        if self.objects.pop((bucket, path), None) is None:
            raise ObjectNotFoundError(bucket, path)
        self.content_types.pop((bucket, path), None)

    async def create_signed_url(self, bucket: str, path: str, expires_in: int) -> str:
        self.calls.append(("sign", bucket, path))
        if "sign" in self.failures:
            raise ResolutionFailure("injected signing failure")
        token = uuid.uuid4().hex
        return f"{self.base_url}/storage/v1/object/sign/{bucket}/{path}?token={token}&ttl={expires_in}"

    def public_url(self, bucket: str, path: str) -> str:
        return build_public_url(self.base_url, bucket, path)


# ── Database ──────────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """Fresh in-memory database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(
        bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_factory() as session:
        yield session
        await session.rollback()
    await engine.dispose()


# ── Storage & sessions ────────────────────────────────────────────────────────

@pytest.fixture
def storage() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def owner() -> UserSession:
    return UserSession(user_id=uuid.uuid4())


@pytest.fixture
def intruder() -> UserSession:
    return UserSession(user_id=uuid.uuid4())


def bearer(session: UserSession) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(str(session.user_id))}"}


@pytest.fixture
def auth_headers(owner: UserSession) -> dict[str, str]:
    return bearer(owner)


@pytest.fixture
def intruder_headers(intruder: UserSession) -> dict[str, str]:
    return bearer(intruder)


# ── HTTP client ───────────────────────────────────────────────────────────────

@pytest_asyncio.fixture
async def client(
    db: AsyncSession, storage: InMemoryObjectStore
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client with the test DB and object store injected."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()
