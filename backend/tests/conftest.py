"""
Agora Backend: Test Configuration (conftest.py)
================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every test gets a fresh in-memory SQLite database (aiosqlite, one
       shared connection through StaticPool) and a fresh upload root under
       pytest's tmp_path. Services are constructed against both, exactly as
       the application singletons are constructed against the real ones.

Fixture Hierarchy (all function-scoped):
    engine ─▶ session_factory ─┬─▶ association_service
                               ├─▶ cascade_service
    storage_config ─▶ resolver ─▶ file_service ─┼─▶ orphan_sweeper
                               ├─▶ social_service
                               ├─▶ user_service
                               └─▶ seed (rows + physical files)
    test_client: httpx AsyncClient on the app with every dependency overridden
"""

import os
import tempfile

# Must run BEFORE any `app` import: Settings and the module-level engine are
# created at import time
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="agora_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["SWEEP_ON_STARTUP"] = "false"

from typing import AsyncGenerator, Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.pool import StaticPool

from app.database import Base, create_engine, create_session_factory
from app.models import Comment, File, Like, Post, User
from app.services.association_service import AssociationService
from app.services.cascade_service import CascadeDeletionService
from app.services.file_service import FileService
from app.services.social_service import SocialService
from app.services.storage_paths import FileCategory, StorageConfig, StoragePathResolver
from app.services.sweeper import OrphanSweeper
from app.services.user_service import UserService

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01\x01\x00\x00\x01\x00\x01\x00\x00\xff\xd9"


def sniff_image(content: bytes) -> str:
    """Stand-in for libmagic: recognizes the PNG and JPEG signatures only."""
    if content.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if content.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    return "application/octet-stream"


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def jpeg_bytes():
    return JPEG_BYTES


@pytest.fixture
def mime_detector():
    return sniff_image


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def engine():
    test_engine = create_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


# ══════════════════════════════════════════════════════════════════════════
# Storage
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def storage_config(tmp_path):
    return StorageConfig(upload_root=str(tmp_path / "uploads"))


@pytest.fixture
def resolver(storage_config):
    path_resolver = StoragePathResolver(storage_config)
    path_resolver.ensure_directories()
    return path_resolver


@pytest.fixture
def file_service(resolver):
    return FileService(resolver, mime_detector=sniff_image)


# ══════════════════════════════════════════════════════════════════════════
# Services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def association_service(session_factory, file_service):
    return AssociationService(session_factory, file_service)


@pytest.fixture
def cascade_service(session_factory, file_service):
    return CascadeDeletionService(
        session_factory,
        file_service,
        transaction_timeout=5.0,
        retry_max_attempts=3,
        retry_min_wait=0,
        retry_max_wait=0,
    )


@pytest.fixture
def orphan_sweeper(session_factory, file_service):
    return OrphanSweeper(session_factory, file_service, unassociated_max_age_hours=24)


@pytest.fixture
def social_service(association_service):
    return SocialService(association_service)


@pytest.fixture
def user_service(session_factory, file_service):
    return UserService(session_factory, file_service)


# ══════════════════════════════════════════════════════════════════════════
# Seeding
# ══════════════════════════════════════════════════════════════════════════

class Seeder:
    """Creates committed rows and their physical files for a test."""

    def __init__(self, session_factory, files: FileService):
        self.session_factory = session_factory
        self.files = files

    def attachment_path(self, filename: str):
        return self.files.resolver.resolve(FileCategory.POST_ATTACHMENT, filename)

    def avatar_path(self, filename: str):
        return self.files.resolver.resolve(FileCategory.AVATAR, filename)

    def write_attachment(self, filename: str) -> None:
        self.attachment_path(filename).write_bytes(PNG_BYTES)

    async def user(self, with_avatar: bool = False, is_admin: bool = False) -> User:
        name = f"user_{uuid4().hex[:8]}"
        avatar = None
        if with_avatar:
            avatar = await self.files.write_file(FileCategory.AVATAR, PNG_BYTES, "image/png")
        async with self.session_factory() as db, db.begin():
            user = User(account_name=name, email=f"{name}@example.com", is_admin=is_admin, avatar=avatar)
            db.add(user)
        return user

    async def post(self, owner: User, filename: Optional[str] = None) -> Post:
        """A post by `owner`; with `filename`, an attached File row and file on disk."""
        async with self.session_factory() as db, db.begin():
            post = Post(user_id=owner.id, content="hello")
            db.add(post)
            await db.flush()
            if filename is not None:
                self.write_attachment(filename)
                db.add(File(filename=filename, file_type="image/png", post_id=post.id))
        return post

    async def upload(self, filename: str) -> File:
        """An unassociated upload (row + file)."""
        self.write_attachment(filename)
        async with self.session_factory() as db, db.begin():
            record = File(filename=filename, file_type="image/png")
            db.add(record)
        return record

    async def comment(self, post: Post, author: User, content: str = "nice") -> Comment:
        async with self.session_factory() as db, db.begin():
            comment = Comment(post_id=post.id, user_id=author.id, content=content)
            db.add(comment)
        return comment

    async def like(self, post: Post, user: User) -> Like:
        async with self.session_factory() as db, db.begin():
            like = Like(post_id=post.id, user_id=user.id)
            db.add(like)
        return like

    async def file_for(self, post: Post) -> Optional[File]:
        async with self.session_factory() as db:
            result = await db.execute(select(File).where(File.post_id == post.id))
            return result.scalar_one_or_none()

    async def count(self, model, *criteria) -> int:
        async with self.session_factory() as db:
            result = await db.execute(select(func.count()).select_from(model).where(*criteria))
            return result.scalar_one()


@pytest.fixture
def seed(session_factory, file_service):
    return Seeder(session_factory, file_service)


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(
    session_factory,
    file_service,
    association_service,
    cascade_service,
    orphan_sweeper,
    social_service,
    user_service,
) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX AsyncClient talking to the app through ASGITransport.

    Lifespan does not run; every service and the request session are
    replaced by the per-test instances above.
    """
    from app import dependencies
    from app.database import get_db_session
    from app.main import app

    async def override_db_session():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides.update({
        get_db_session: override_db_session,
        dependencies.get_session_factory: lambda: session_factory,
        dependencies.get_file_service: lambda: file_service,
        dependencies.get_association_service: lambda: association_service,
        dependencies.get_cascade_service: lambda: cascade_service,
        dependencies.get_orphan_sweeper: lambda: orphan_sweeper,
        dependencies.get_social_service: lambda: social_service,
        dependencies.get_user_service: lambda: user_service,
    })

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
