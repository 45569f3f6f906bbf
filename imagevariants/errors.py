class ImageError(Exception):
    """Base for every failure surfaced by variant resolution.

    ``kind`` tags the failure for callers that dispatch on it (the HTTP
    layer maps it to a status code); ``info`` is a human readable detail.
    """

    kind        = "imageError"
    status_code = 500

    def __init__(self, info: str):
        super().__init__(info)
        self.info = info


class DecodeFailure(ImageError):
    kind        = "decodeFailure"
    status_code = 422


class EncodeFailure(ImageError):
    kind = "encodeFailure"


class StorageWriteFailure(ImageError):
    kind = "storageWriteFailure"


class PersistenceFailure(ImageError):
    kind = "persistenceFailure"


class NotFound(ImageError):
    kind        = "notFound"
    status_code = 404


class StorageReadFailure(ImageError):
    kind = "storageReadFailure"
