import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, Text

from imagevariants.database import Base
from imagevariants.errors import DecodeFailure, PersistenceFailure


_PIL_ALIASES = {"MPO": "JPEG"}


class StorageKind(enum.IntEnum):
    FILE_BACKED = 0
    INLINE      = 1

    @classmethod
    def from_code(cls, code: int) -> "StorageKind":
        try:
            return cls(code)
        except ValueError:
            raise PersistenceFailure(f"unknown storage kind code {code!r}") from None


class ImageFormat(enum.IntEnum):
    PNG  = 0
    GIF  = 1
    JPEG = 2

    @classmethod
    def from_code(cls, code: int) -> "ImageFormat":
        try:
            return cls(code)
        except ValueError:
            raise PersistenceFailure(f"unknown image format code {code!r}") from None

    @classmethod
    def from_pil(cls, name: Optional[str]) -> "ImageFormat":
        """Map a Pillow format name (``Image.format``) onto a supported format.

        Multi-picture JPEGs from phones and cameras open as ``MPO``; their
        first frame is a plain JPEG.
        """
        key = (name or "").upper()
        try:
            return cls[_PIL_ALIASES.get(key, key)]
        except KeyError:
            raise DecodeFailure(f"unsupported image format {name!r}") from None

    @property
    def extension(self) -> str:
        return {ImageFormat.PNG: "png", ImageFormat.GIF: "gif", ImageFormat.JPEG: "jpg"}[self]

    @property
    def pil_name(self) -> str:
        return self.name


class Image(Base):
    __tablename__ = "images"
    __table_args__ = (
        CheckConstraint("width > 0 AND height > 0", name="ck_images_positive_size"),
        CheckConstraint(
            "(wanted_width IS NULL AND wanted_height IS NULL)"
            " OR (wanted_width IS NOT NULL AND wanted_height IS NOT NULL)",
            name="ck_images_wanted_pair",
        ),
    )

    id             = Column(Integer, primary_key=True)
    created_at     = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at     = Column(DateTime, default=datetime.utcnow, nullable=False)
    host_type      = Column(Integer, nullable=False)
    path           = Column(Text, nullable=False)
    width          = Column(Integer, nullable=False)
    height         = Column(Integer, nullable=False)
    parent_id      = Column(Integer, ForeignKey("images.id", ondelete="RESTRICT"), index=True)
    wanted_width   = Column(Integer)
    wanted_height  = Column(Integer)
    format         = Column(Integer, nullable=False)

    @property
    def storage_kind(self) -> StorageKind:
        return StorageKind.from_code(self.host_type)

    @property
    def image_format(self) -> ImageFormat:
        return ImageFormat.from_code(self.format)

    def get_locator(self) -> str:
        """Render the locator for direct use in markup.

        Inline records become a PNG data URI; file-backed records are
        already a path under the uploads root.
        """
        if self.storage_kind is StorageKind.INLINE:
            return f"data:image/png;base64,{self.path}"
        return self.path

    def __repr__(self) -> str:
        return f"<Image(id={self.id}, {self.width}x{self.height}, parent_id={self.parent_id})>"

@dataclass
class NewImage:
    """Field set for a record that has not been inserted yet."""
    storage_kind:  StorageKind
    path:          str
    width:         int
    height:        int
    format:        ImageFormat
    parent_id:     Optional[int] = None
    wanted_width:  Optional[int] = None
    wanted_height: Optional[int] = None

    def validate(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise PersistenceFailure(f"refusing to persist {self.width}x{self.height} image")
        if (self.wanted_width is None) != (self.wanted_height is None):
            raise PersistenceFailure("wanted_width and wanted_height must be set together")
