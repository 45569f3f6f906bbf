import base64
import time
import uuid
from dataclasses import dataclass

from PIL import Image

from imagevariants.config import INLINE_MAX_PX, UPLOADS_DIR, logger
from imagevariants.models import ImageFormat, NewImage, StorageKind
from imagevariants.utils import codec


@dataclass(frozen=True)
class Placement:
    storage_kind: StorageKind
    locator:      str
    width:        int
    height:       int
    format:       ImageFormat

    def to_new_image(self, **extra) -> NewImage:
        return NewImage(
            storage_kind=self.storage_kind,
            path=self.locator,
            width=self.width,
            height=self.height,
            format=self.format,
            **extra,
        )


def upload_path(width: int, height: int, suffix: str, fmt: ImageFormat) -> str:
    """``/assets/uploads/640_480-1760000000-orig_7-<32 hex>.jpg``

    The random token keeps same-second writes of equal size and suffix apart.
    """
    token = uuid.uuid4().hex
    return f"/{UPLOADS_DIR}/{width}_{height}-{int(time.time())}-{suffix}-{token}.{fmt.extension}"


def place(img: Image.Image, fmt: ImageFormat, suffix: str, storage,
          inline_max_px: int = INLINE_MAX_PX) -> Placement:
    """Encode ``img`` and decide where it lives.

    Images under ``inline_max_px`` on both axes are stored inline as
    base64 PNG whatever ``fmt`` asks for. Everything else is encoded as
    ``fmt`` and written to ``storage`` before this returns, so a record
    built from the result never points at a missing file.
    """
    width, height = img.size

    if width < inline_max_px and height < inline_max_px:
        payload = base64.b64encode(codec.encode(img, ImageFormat.PNG)).decode("ascii")
        return Placement(StorageKind.INLINE, payload, width, height, ImageFormat.PNG)

    data = codec.encode(img, fmt)
    path = upload_path(width, height, suffix, fmt)
    storage.write_bytes(path, data)
    logger.info("Placed %dx%d %s at %s", width, height, fmt.name, path)
    return Placement(StorageKind.FILE_BACKED, path, width, height, fmt)
