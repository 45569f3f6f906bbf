"""
Find-or-create resolution of resized image variants.

  • ``resolve`` returns the parent untouched when it already fits the
    requested box; images are never upscaled.
  • Otherwise an existing child matching the request is reused.
  • On a miss the parent is decoded, resized, placed (inline or file)
    and a new child record is inserted and re-read.

There is no locking around the find-or-create step: two concurrent
misses for the same size both insert a child, and later lookups return
whichever duplicate sorts first by size.
"""

import base64
import binascii

from PIL import Image as PILImage

from imagevariants.config import logger
from imagevariants.errors import DecodeFailure, NotFound, PersistenceFailure
from imagevariants.models import Image, StorageKind
from imagevariants.repository import ImageRepository
from imagevariants.utils import codec
from imagevariants.utils.placement import place


class VariantResolver:
    def __init__(self, repository: ImageRepository, storage):
        self.repository = repository
        self.storage    = storage

    # ── Lookup ─────────────────────────────────────────────────────────────
    def get(self, image_id: int) -> Image:
        image = self.repository.find_by_id(image_id)
        if image is None:
            raise NotFound(f"image {image_id} does not exist")
        return image

    def resolve(self, parent: Image, width: int, height: int) -> Image:
        if width <= 0 or height <= 0:
            raise ValueError(f"requested size must be positive, got {width}x{height}")

        if parent.width <= width and parent.height <= height:
            logger.debug("Image id=%s already fits %dx%d", parent.id, width, height)
            return parent

        existing = self.repository.find_child(parent.id, width, height)
        if existing is not None:
            logger.debug("Reusing variant id=%s of image id=%s for %dx%d",
                         existing.id, parent.id, width, height)
            return existing

        return self._create_variant(parent, width, height)

    def resolve_by_id(self, image_id: int, width: int, height: int) -> Image:
        return self.resolve(self.get(image_id), width, height)

    # ── Creation ───────────────────────────────────────────────────────────
    def load_pixels(self, image: Image) -> PILImage.Image:
        """Decode the stored bytes of ``image`` whichever way it is stored."""
        if image.storage_kind is StorageKind.INLINE:
            try:
                data = base64.b64decode(image.path, validate=True)
            except (binascii.Error, ValueError) as exc:
                raise DecodeFailure(f"image {image.id} has a corrupt inline payload") from exc
        else:
            try:
                data = self.storage.read_bytes(image.path)
            except OSError as exc:
                raise DecodeFailure(f"cannot read {image.path}: {exc}") from exc
        return codec.decode(data)

    def _create_variant(self, parent: Image, width: int, height: int) -> Image:
        pixels    = codec.resize(self.load_pixels(parent), width, height)
        placement = place(pixels, parent.image_format, f"orig_{parent.id}", self.storage)
        new       = placement.to_new_image(
            parent_id=parent.id, wanted_width=width, wanted_height=height,
        )
        image_id  = self._insert(new)
        logger.info("Created variant id=%s of image id=%s: wanted %dx%d, stored %dx%d %s",
                    image_id, parent.id, width, height,
                    placement.width, placement.height, placement.storage_kind.name)
        return self._reload(image_id)

    def ingest(self, data: bytes, suffix: str = "upload") -> Image:
        """Store an uploaded original; small ones are inlined like variants."""
        pixels    = codec.decode(data)
        fmt       = codec.sniff_format(pixels)
        placement = place(pixels, fmt, suffix, self.storage)
        image_id  = self._insert(placement.to_new_image())
        logger.info("Stored original id=%s %dx%d %s",
                    image_id, placement.width, placement.height, fmt.name)
        return self._reload(image_id)

    def _insert(self, new) -> int:
        try:
            return self.repository.insert(new)
        except PersistenceFailure:
            if new.storage_kind is StorageKind.FILE_BACKED:
                logger.warning("Insert failed; %s is now an orphaned file", new.path)
            raise

    def _reload(self, image_id: int) -> Image:
        image = self.repository.find_by_id(image_id)
        if image is None:
            raise PersistenceFailure(f"image {image_id} missing right after insert")
        return image


def get_with_size(image: Image, width: int, height: int,
                  repository: ImageRepository, storage) -> Image:
    return VariantResolver(repository, storage).resolve(image, width, height)


def get_locator(image: Image) -> str:
    return image.get_locator()
