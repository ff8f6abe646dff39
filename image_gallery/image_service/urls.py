from typing import Any, Mapping, Optional
import logging

from image_gallery.exceptions import SignedUrlProviderError
from image_gallery.settings import DEFAULT_SIGNED_URL_TTL
from image_gallery.storage.base import ObjectStore

log = logging.getLogger(__name__)

def _join(base: str, key: str) -> str:
    return f"{base.rstrip('/')}/{key}"

def _signed_url_from(result: Any) -> str:
    """Accepts a bare URL string or a result carrying a `url` field."""
    if isinstance(result, str):
        url = result
    elif isinstance(result, Mapping):
        url = result.get("url")
    else:
        url = getattr(result, "url", None)
    if not isinstance(url, str) or not url:
        raise SignedUrlProviderError(f"Malformed signed URL response: {result!r}")
    return url

class UrlResolver:
    """
        Produces a client-reachable URL for a stored key.

        Tries the public (CDN) base URL first, then a store-signed URL,
        then falls back to the request origin. Never raises.
    """
    def __init__(
        self,
        store: ObjectStore,
        public_base_url: Optional[str] = None,
        signed_url_ttl: int = DEFAULT_SIGNED_URL_TTL,
    ):
        self.store = store
        self.public_base_url = public_base_url
        self.signed_url_ttl = signed_url_ttl

    def resolve(self, key: str, request_origin: str) -> str:
        if self.public_base_url and self.public_base_url.strip():
            return _join(self.public_base_url.strip(), key)

        signer = getattr(self.store, "create_signed_url", None)
        if signer is not None:
            try:
                return _signed_url_from(signer(key, expires_in=self.signed_url_ttl))
            except Exception as e:
                log.warning("Signed URL generation failed for %s, falling back to direct key: %s", key, e)

        return _join(request_origin, key)
