from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, Response
from typing import Optional
import logging

from image_gallery.storage.base import ObjectStore
from image_gallery.dependencies.dependencies import get_object_store, get_request_origin, get_url_resolver
from image_gallery.image_service.keys import KEY_PREFIX
from image_gallery.image_service.models import ErrorResponse, GalleryPage, GeneratedItem, IngestRequest
from image_gallery.image_service.service import CACHE_CONTROL, fetch_image, ingest_image, list_gallery
from image_gallery.image_service.urls import UrlResolver
from image_gallery.settings import settings, to_int

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api",
    tags=["image-gallery-service"]
)

# Serves stored objects at <origin>/images/..., the fallback URL shape
media_router = APIRouter(
    prefix="/" + KEY_PREFIX.rstrip("/"),
    tags=["image-gallery-media"]
)

@router.post("/images", response_model=GeneratedItem, status_code=201)
def store_generated_image(
    body: IngestRequest,
    store: ObjectStore = Depends(get_object_store),
    resolver: UrlResolver = Depends(get_url_resolver),
    origin: str = Depends(get_request_origin),
):
    """Stores a base64 image produced by the generator and returns its URL and metadata."""
    return ingest_image(store, resolver, body, request_origin=origin)

@router.get(
    "/gallery",
    response_model=GalleryPage,
    responses={500: {"model": ErrorResponse}},
)
def gallery(
    limit: Optional[str] = Query(None, description=f"Page size, capped at {settings.gallery_max_limit}"),
    offset: Optional[str] = Query(None, description="Images to skip; negative values count as 0"),
    store: ObjectStore = Depends(get_object_store),
    resolver: UrlResolver = Depends(get_url_resolver),
    origin: str = Depends(get_request_origin),
):
    """Lists stored images, newest first. Unparsable paging values fall back to defaults."""
    return list_gallery(
        store,
        resolver,
        limit=to_int(limit, settings.gallery_default_limit),
        offset=to_int(offset, 0),
        request_origin=origin,
    )

@media_router.get("/{name}")
def serve_image(
    name: str,
    store: ObjectStore = Depends(get_object_store),
):
    """Streams the stored image bytes with long-lived caching headers."""
    obj = fetch_image(store, KEY_PREFIX + name)
    if obj is None:
        return PlainTextResponse("Not found", status_code=404)

    return Response(
        content=obj.body,
        media_type=obj.content_type or "application/octet-stream",
        headers={
            "Cache-Control": CACHE_CONTROL,
            "ETag": obj.etag,
        },
    )
