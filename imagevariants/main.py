from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from imagevariants import models  # noqa: F401  (registers tables on Base)
from imagevariants.api.images import router as images_router
from imagevariants.config import STORAGE_BACKEND, STORAGE_ROOT, UPLOADS_DIR, logger
from imagevariants.database import Base, engine
from imagevariants.errors import ImageError


@asynccontextmanager
async def lifespan(_: FastAPI):
    # Bootstrap tables (no-op if already present)
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title="Image Variants API", lifespan=lifespan)

    @app.exception_handler(ImageError)
    async def image_error_handler(_: Request, exc: ImageError):
        if exc.status_code >= 500:
            logger.error("%s: %s", exc.kind, exc.info)
        return JSONResponse(status_code=exc.status_code,
                            content={"errorType": exc.kind, "error": exc.info})

    app.include_router(images_router)

    # File-backed locators are paths under the uploads dir; serve them as-is
    if STORAGE_BACKEND == "local":
        app.mount(
            f"/{UPLOADS_DIR}",
            StaticFiles(directory=Path(STORAGE_ROOT) / UPLOADS_DIR, check_dir=False),
            name="uploads",
        )
    return app


app = create_app()
