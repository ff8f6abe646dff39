"""
Object store contract used by the image service.

Kept small and SDK-agnostic so tests can supply simple fakes.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Protocol, Union


@dataclass
class StoredObject:
    key: str
    body: bytes
    content_type: Optional[str]
    etag: str
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class ListedObject:
    key: str
    size: int
    uploaded: datetime


@dataclass
class ObjectListing:
    objects: List[ListedObject]
    # True when the store holds more objects under the prefix than were returned
    truncated: bool = False


class ObjectStore(Protocol):
    def put(
        self,
        key: str,
        data: bytes,
        *,
        content_type: str,
        cache_control: str,
        metadata: Mapping[str, str],
    ) -> None: ...

    def get(self, key: str) -> Optional[StoredObject]: ...

    def head(self, key: str) -> Optional[Dict[str, str]]: ...

    def list(self, *, prefix: str, limit: int) -> ObjectListing: ...

    def create_signed_url(self, key: str, *, expires_in: int) -> Union[str, Mapping[str, str]]: ...
