from fastapi import Depends, Request
from image_gallery.image_service.urls import UrlResolver
from image_gallery.settings import settings
from image_gallery.storage.base import ObjectStore

def get_object_store(request: Request) -> ObjectStore:
    """Dependency provider for the object store"""
    return request.app.state.store

def get_url_resolver(store: ObjectStore = Depends(get_object_store)) -> UrlResolver:
    """Dependency provider for UrlResolver"""
    return UrlResolver(
        store,
        public_base_url=settings.public_base_url,
        signed_url_ttl=settings.signed_url_ttl,
    )

def get_request_origin(request: Request) -> str:
    """Scheme and host the client used to reach this service"""
    return str(request.base_url).rstrip("/")
