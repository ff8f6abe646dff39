from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Optional

DEFAULT_SIGNED_URL_TTL = 86_400

def to_int(value, default: int) -> int:
    """Parses an int from loosely typed input, falling back to default."""
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return default

class Settings(BaseSettings):
    aws_region: str = Field("us-east-1")
    s3_bucket: str = Field("image-gallery-bucket")
    aws_endpoint_url: Optional[str] = Field(None)
    # Public host that replaces aws_endpoint_url in signed URLs (e.g. localstack behind a proxy)
    external_endpoint: Optional[str] = Field(None)

    aws_access_key_id: str = Field("test")
    aws_secret_access_key: str = Field("test")

    # CDN domain in front of the bucket; when set no signing happens
    public_base_url: Optional[str] = Field(None)
    signed_url_ttl: int = Field(DEFAULT_SIGNED_URL_TTL)

    gallery_default_limit: int = Field(12)
    gallery_max_limit: int = Field(50)

    app_title: str = Field("Image Gallery Service")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",  # tolerate unknown vars if needed
    )

    @field_validator("signed_url_ttl", mode="before")
    @classmethod
    def lenient_ttl(cls, value):
        """Falls back to one day for blank, non-numeric or non-positive values."""
        ttl = to_int(value, DEFAULT_SIGNED_URL_TTL)
        return ttl if ttl > 0 else DEFAULT_SIGNED_URL_TTL

settings = Settings()
