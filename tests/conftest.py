import io
import os

import pytest
from PIL import Image as PILImage
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Configure before any imagevariants module reads the environment
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORAGE_BACKEND", "local")

from imagevariants.database import Base, enforce_foreign_keys  # noqa: E402
from imagevariants import models  # noqa: E402,F401
from imagevariants.repository import ImageRepository  # noqa: E402
from imagevariants.resolver import VariantResolver  # noqa: E402
from imagevariants.utils.storage import LocalStorage  # noqa: E402


@pytest.fixture()
def engine():
    eng = enforce_foreign_keys(create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ))
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture()
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture()
def repository(session) -> ImageRepository:
    return ImageRepository(session)


@pytest.fixture()
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(tmp_path / "storage")


@pytest.fixture()
def resolver(repository, storage) -> VariantResolver:
    return VariantResolver(repository, storage)


@pytest.fixture()
def image_bytes():
    """Factory: encoded solid-colour image of the given size and format."""
    def make(width: int, height: int, fmt: str = "PNG", mode: str = "RGB", color=None) -> bytes:
        if color is None:
            color = (200, 30, 60, 255)[: len(mode)] if mode in ("RGB", "RGBA") else 128
        img = PILImage.new(mode, (width, height), color)
        buf = io.BytesIO()
        img.save(buf, format=fmt)
        return buf.getvalue()
    return make


@pytest.fixture()
def original(resolver, image_bytes):
    """An 800x600 PNG original, file-backed."""
    return resolver.ingest(image_bytes(800, 600), suffix="orig")


@pytest.fixture()
def client(session_factory, storage):
    from fastapi.testclient import TestClient

    from imagevariants.deps import get_db, get_storage
    from imagevariants.main import create_app

    app = create_app()

    def override_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db]      = override_db
    app.dependency_overrides[get_storage] = lambda: storage
    return TestClient(app)
