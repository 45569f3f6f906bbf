from typing import Iterator

from fastapi import Depends
from sqlalchemy.orm import Session

from imagevariants.config import logger
from imagevariants.database import SessionLocal
from imagevariants.repository import ImageRepository
from imagevariants.resolver import VariantResolver
from imagevariants.utils.storage import build_storage

_storage = None


def get_db() -> Iterator[Session]:
    """One session per request; a failed request leaves nothing behind."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception as exc:
        logger.debug("Rolling back request session after %s", type(exc).__name__)
        db.rollback()
        raise
    finally:
        db.close()


def get_storage():
    global _storage
    if _storage is None:
        _storage = build_storage()
    return _storage


def get_resolver(db: Session = Depends(get_db), storage=Depends(get_storage)) -> VariantResolver:
    return VariantResolver(ImageRepository(db), storage)
