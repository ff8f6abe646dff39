from datetime import datetime
from typing import Callable, Optional
import base64
import binascii
import logging
import re
import uuid
import warnings
from botocore.exceptions import BotoCoreError, ClientError

from image_gallery.storage.base import ObjectStore, StoredObject
from image_gallery.image_service.keys import KEY_PREFIX, derive_key
from image_gallery.image_service.models import (
    GalleryImage, GalleryPage, GeneratedItem, GeneratedMeta, IngestRequest, to_iso, utc_now,
)
from image_gallery.image_service.sniffer import sniff_image
from image_gallery.image_service.urls import UrlResolver
from image_gallery.exceptions import (
    DecodeError, DimensionDriftWarning, StoreUnavailableError, UnrecognizedFormatError,
)
from image_gallery.settings import settings

log = logging.getLogger(__name__)

CACHE_CONTROL = "public, max-age=31536000"
PROMPT_METADATA_LIMIT = 500
DRIFT_TOLERANCE = 64
# Largest page a single store listing returns
STORE_LIST_LIMIT = 1000

_DATA_URL_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)

def decode_payload(b64: str) -> bytes:
    """Decodes a base64 payload (optionally a data URL) into raw bytes."""
    payload = _DATA_URL_PREFIX.sub("", (b64 or "").strip())
    payload = "".join(payload.split())
    payload += "=" * (-len(payload) % 4)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 image payload: {e}")
    if not data:
        raise DecodeError("Empty image payload after decoding")
    return data

def ingest_image(
    store: ObjectStore,
    resolver: UrlResolver,
    request: IngestRequest,
    request_origin: str,
    clock: Callable[[], datetime] = utc_now,
    id_factory: Callable[[], object] = uuid.uuid4,
) -> GeneratedItem:
    """Stores a generated image under a derived key and returns where to find it."""
    data = decode_payload(request.b64)

    info = sniff_image(data)
    if info is None:
        raise UnrecognizedFormatError()

    if abs(info.width - request.width) > DRIFT_TOLERANCE or abs(info.height - request.height) > DRIFT_TOLERANCE:
        warnings.warn(
            f"Dimension drift detected: requested {request.width}x{request.height}, "
            f"got {info.width}x{info.height}",
            DimensionDriftWarning,
            stacklevel=2,
        )

    created_at = to_iso(clock())
    key = derive_key(request.prompt, info.ext, id_factory=id_factory)
    metadata = {
        "prompt": request.prompt[:PROMPT_METADATA_LIMIT],
        "model": request.model,
        "seed": str(request.seed) if request.seed is not None else "",
        "created_at": created_at,
        "width": str(info.width),
        "height": str(info.height),
    }
    try:
        store.put(key, data, content_type=info.mime, cache_control=CACHE_CONTROL, metadata=metadata)
    except (BotoCoreError, ClientError) as e:
        log.error(f"Store put failed: {e}")
        raise StoreUnavailableError(f"Failed to store image: {e}")
    log.info("Stored image %s (%s, %dx%d)", key, info.mime, info.width, info.height)

    return GeneratedItem(
        url=resolver.resolve(key, request_origin),
        key=key,
        mime=info.mime,
        width=info.width,
        height=info.height,
        meta=GeneratedMeta(
            prompt=request.prompt,
            model=request.model,
            seed=request.seed,
            created_at=created_at,
        ),
    )

def list_gallery(
    store: ObjectStore,
    resolver: UrlResolver,
    limit: int,
    offset: int,
    request_origin: str,
    max_limit: Optional[int] = None,
) -> GalleryPage:
    """
        Lists stored images newest first.

        The store only offers prefix+limit listing, so offset pagination is
        emulated over a single batch of STORE_LIST_LIMIT objects. Older objects
        beyond that batch are not reachable; a warning is logged when it happens.
    """
    cap = max_limit if max_limit is not None else settings.gallery_max_limit
    limit = max(0, min(limit, cap))
    offset = max(offset, 0)

    try:
        listing = store.list(prefix=KEY_PREFIX, limit=STORE_LIST_LIMIT)
        if listing.truncated:
            log.warning(
                "Listing under %s exceeded %d objects; gallery pagination omits older images",
                KEY_PREFIX, STORE_LIST_LIMIT,
            )

        # sorted() is stable, so equal timestamps keep store order
        newest_first = sorted(listing.objects, key=lambda obj: obj.uploaded, reverse=True)
        page = newest_first[offset:offset + limit]

        images = [
            GalleryImage(
                key=obj.key,
                url=resolver.resolve(obj.key, request_origin),
                size=obj.size,
                uploaded=to_iso(obj.uploaded),
                metadata=store.head(obj.key) or {},
            )
            for obj in page
        ]
    except (BotoCoreError, ClientError) as e:
        log.error(f"Store list failed: {e}")
        raise StoreUnavailableError(f"Failed to list images: {e}")

    return GalleryPage(images=images, limit=limit, offset=offset)

def fetch_image(store: ObjectStore, key: str) -> Optional[StoredObject]:
    """Gets a stored image, or None when the key does not exist."""
    try:
        return store.get(key)
    except (BotoCoreError, ClientError) as e:
        log.error(f"Store get failed: {e}")
        raise StoreUnavailableError(f"Failed to get image: {e}")
