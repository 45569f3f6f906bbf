from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from imagevariants.models import Image, StorageKind


class ImageOut(BaseModel):
    id:            int
    width:         int
    height:        int
    format:        str
    storage_kind:  str
    locator:       str
    parent_id:     Optional[int] = None
    wanted_width:  Optional[int] = None
    wanted_height: Optional[int] = None
    created_at:    datetime

    @classmethod
    def from_image(cls, image: Image) -> "ImageOut":
        return cls(
            id            = image.id,
            width         = image.width,
            height        = image.height,
            format        = image.image_format.extension,
            storage_kind  = "inline" if image.storage_kind is StorageKind.INLINE else "file",
            locator       = image.get_locator(),
            parent_id     = image.parent_id,
            wanted_width  = image.wanted_width,
            wanted_height = image.wanted_height,
            created_at    = image.created_at,
        )


class ErrorOut(BaseModel):
    errorType: str
    error:     str
