import re
from pathlib import Path

from fastapi import APIRouter, Depends, File, Query, UploadFile

from imagevariants.deps import get_resolver
from imagevariants.resolver import VariantResolver
from imagevariants.schemas import ErrorOut, ImageOut

router = APIRouter()

NOT_FOUND = {404: {"model": ErrorOut, "description": "Image not found"}}


@router.post("/images", response_model=ImageOut, status_code=201,
             responses={422: {"model": ErrorOut, "description": "Not a PNG, GIF or JPEG"}})
def upload_image(
    file: UploadFile = File(...),
    resolver: VariantResolver = Depends(get_resolver),
):
    data   = file.file.read()
    suffix = re.sub(r"[^A-Za-z0-9_-]", "_", Path(file.filename or "").stem) or "upload"
    return ImageOut.from_image(resolver.ingest(data, suffix=suffix))


@router.get("/images/{image_id}", response_model=ImageOut, responses=NOT_FOUND)
def get_image(image_id: int, resolver: VariantResolver = Depends(get_resolver)):
    return ImageOut.from_image(resolver.get(image_id))


@router.get("/images/{image_id}/variants", response_model=list[ImageOut], responses=NOT_FOUND)
def list_variants(image_id: int, resolver: VariantResolver = Depends(get_resolver)):
    parent = resolver.get(image_id)
    return [ImageOut.from_image(c) for c in resolver.repository.children_of(parent.id)]


@router.get("/images/{image_id}/size", response_model=ImageOut, responses=NOT_FOUND)
def get_with_size(
    image_id: int,
    width: int  = Query(..., gt=0),
    height: int = Query(..., gt=0),
    resolver: VariantResolver = Depends(get_resolver),
):
    return ImageOut.from_image(resolver.resolve_by_id(image_id, width, height))
