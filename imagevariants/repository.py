from typing import Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from imagevariants.errors import PersistenceFailure
from imagevariants.models import Image, NewImage


class ImageRepository:
    """Image record queries over a caller-owned session."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, image_id: int) -> Optional[Image]:
        try:
            return self.session.get(Image, image_id, populate_existing=True)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"lookup of image {image_id} failed: {exc}") from exc

    def find_child(self, parent_id: int, width: int, height: int) -> Optional[Image]:
        """Largest variant of ``parent_id`` that lines up with the request.

        A variant matches when either of its wanted dimensions equals the
        requested one, or, for variants recorded without wanted dimensions,
        when either actual dimension does. One matching axis is enough.
        """
        stmt = (
            select(Image)
            .where(Image.parent_id == parent_id)
            .where(
                or_(
                    and_(
                        Image.wanted_width.is_(None),
                        or_(Image.width == width, Image.height == height),
                    ),
                    or_(Image.wanted_width == width, Image.wanted_height == height),
                )
            )
            .order_by(Image.width.desc(), Image.height.desc())
            .limit(1)
        )
        try:
            return self.session.scalars(stmt).first()
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"variant lookup for image {parent_id} failed: {exc}") from exc

    def children_of(self, parent_id: int) -> list[Image]:
        stmt = (
            select(Image)
            .where(Image.parent_id == parent_id)
            .order_by(Image.width.desc(), Image.height.desc(), Image.id.asc())
        )
        try:
            return list(self.session.scalars(stmt))
        except SQLAlchemyError as exc:
            raise PersistenceFailure(f"listing variants of image {parent_id} failed: {exc}") from exc

    def insert(self, new: NewImage) -> int:
        new.validate()
        row = Image(
            host_type     = int(new.storage_kind),
            path          = new.path,
            width         = new.width,
            height        = new.height,
            parent_id     = new.parent_id,
            wanted_width  = new.wanted_width,
            wanted_height = new.wanted_height,
            format        = int(new.format),
        )
        try:
            self.session.add(row)
            self.session.flush()          # ← get auto-ID
        except SQLAlchemyError as exc:
            self.session.rollback()
            raise PersistenceFailure(f"insert failed: {exc}") from exc
        return row.id
