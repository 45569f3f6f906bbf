import logging
import os

from dotenv import load_dotenv

load_dotenv()

DB_URL          = os.getenv("DATABASE_URL", "sqlite:///images.db")
LOG_LEVEL       = os.getenv("LOG_LEVEL", "INFO").upper()

# Where encoded variants land: "local" (filesystem under STORAGE_ROOT) or "s3"
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "local").lower()
STORAGE_ROOT    = os.getenv("STORAGE_ROOT", ".")
UPLOADS_DIR     = os.getenv("UPLOADS_DIR", "assets/uploads").strip("/")

# Images smaller than this on both axes are inlined as base64 PNG
INLINE_MAX_PX   = int(os.getenv("INLINE_MAX_PX", "200"))
JPEG_QUALITY    = int(os.getenv("JPEG_QUALITY", "85"))

AWS_REGION      = os.getenv("AWS_DEFAULT_REGION", "us-west-1")
S3_BUCKET       = os.getenv("S3_BUCKET")

if STORAGE_BACKEND == "s3" and not S3_BUCKET:
    raise RuntimeError("S3_BUCKET must be set when STORAGE_BACKEND=s3")

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("image_variants")
