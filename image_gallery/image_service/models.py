from typing import Dict, List, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field

def utc_now() -> datetime:
    """Current time in UTC."""
    return datetime.now(timezone.utc)

def to_iso(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

class IngestRequest(BaseModel):
    prompt: str
    width: int = Field(..., gt=0, description="Width requested from the generator")
    height: int = Field(..., gt=0, description="Height requested from the generator")
    model: str
    seed: Optional[int] = None
    b64: str = Field(..., description="Base64 image payload, optionally as a data URL")

class GeneratedMeta(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    prompt: str
    model: str
    seed: Optional[int] = None
    created_at: str = Field(..., alias="createdAt")

class GeneratedItem(BaseModel):
    url: str
    key: str
    mime: str
    width: int
    height: int
    meta: GeneratedMeta

class GalleryImage(BaseModel):
    key: str
    url: str
    size: int
    uploaded: str
    metadata: Dict[str, str] = {}

class GalleryPage(BaseModel):
    images: List[GalleryImage]
    limit: int
    offset: int

class ErrorResponse(BaseModel):
    success: bool = False
    error: str
