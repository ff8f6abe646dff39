import boto3
from io import BytesIO
from typing import Dict, Mapping, Optional
from urllib.parse import quote, unquote
from botocore.exceptions import ClientError
from image_gallery.settings import Settings, settings as default_settings
from image_gallery.storage.base import ListedObject, ObjectListing, StoredObject
import logging

log = logging.getLogger(__name__)

NOT_FOUND_CODES = {"404", "NoSuchKey", "NoSuchBucket", "NotFound"}

# S3 limit on the summed byte length of user metadata keys and values
METADATA_LIMIT = 2048
TRIMMABLE_FIELD = "prompt"

def _metadata_size(encoded: Mapping[str, str]) -> int:
    return sum(len(k) + len(v) for k, v in encoded.items())

def _encode_metadata(metadata: Mapping[str, str]) -> Dict[str, str]:
    # S3 user metadata travels as HTTP headers and must be ASCII
    encoded = {k: quote(v, safe="") for k, v in metadata.items()}
    overflow = _metadata_size(encoded) - METADATA_LIMIT
    if overflow > 0 and TRIMMABLE_FIELD in metadata:
        budget = len(encoded[TRIMMABLE_FIELD]) - overflow
        kept, used = [], 0
        # trim on character boundaries so the value still decodes
        for ch in metadata[TRIMMABLE_FIELD]:
            piece = quote(ch, safe="")
            if used + len(piece) > budget:
                break
            kept.append(piece)
            used += len(piece)
        encoded[TRIMMABLE_FIELD] = "".join(kept)
        log.warning("Trimmed %s metadata by %d encoded bytes to fit S3 limit", TRIMMABLE_FIELD, overflow)
    return encoded

def _decode_metadata(metadata: Optional[Mapping[str, str]]) -> Dict[str, str]:
    return {k: unquote(v) for k, v in (metadata or {}).items()}

def _is_not_found(e: ClientError) -> bool:
    return str(e.response.get("Error", {}).get("Code")) in NOT_FOUND_CODES

# -------------------------
# S3 Object Store
# -------------------------
class S3ObjectStore:
    def __init__(self, config: Optional[Settings] = None):
        self.config = config or default_settings
        self.bucket = self.config.s3_bucket
        session = boto3.session.Session(region_name=self.config.aws_region)
        kwargs = {
            "aws_access_key_id": self.config.aws_access_key_id,
            "aws_secret_access_key": self.config.aws_secret_access_key,
        }
        if self.config.aws_endpoint_url:
            kwargs["endpoint_url"] = self.config.aws_endpoint_url

        self.client = session.client("s3", **kwargs)
        log.info("Initialized S3 client")

        # Ensure bucket exists at initialization
        self.ensure_bucket()

    def ensure_bucket(self):
        try:
            self.client.head_bucket(Bucket=self.bucket)
            log.debug("Bucket %s already exists", self.bucket)
        except ClientError as e:
            if _is_not_found(e):
                self.client.create_bucket(Bucket=self.bucket)
                log.info("Created bucket %s", self.bucket)
            else:
                log.error("Failed to check/create bucket: %s", e)
                raise

    def put(self, key: str, data: bytes, *, content_type: str, cache_control: str, metadata: Mapping[str, str]):
        self.client.upload_fileobj(
            Fileobj=BytesIO(data),
            Bucket=self.bucket,
            Key=key,
            ExtraArgs={
                "ContentType": content_type,
                "CacheControl": cache_control,
                "Metadata": _encode_metadata(metadata),
            },
        )
        log.debug("Uploaded %s to s3://%s/%s", key, self.bucket, key)

    def get(self, key: str) -> Optional[StoredObject]:
        try:
            resp = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise
        return StoredObject(
            key=key,
            body=resp["Body"].read(),
            content_type=resp.get("ContentType"),
            etag=resp.get("ETag", ""),
            metadata=_decode_metadata(resp.get("Metadata")),
        )

    def head(self, key: str) -> Optional[Dict[str, str]]:
        try:
            resp = self.client.head_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            if _is_not_found(e):
                return None
            raise
        return _decode_metadata(resp.get("Metadata"))

    def list(self, *, prefix: str, limit: int) -> ObjectListing:
        resp = self.client.list_objects_v2(Bucket=self.bucket, Prefix=prefix, MaxKeys=limit)
        objects = [
            ListedObject(key=obj["Key"], size=int(obj.get("Size", 0)), uploaded=obj["LastModified"])
            for obj in resp.get("Contents", [])
        ]
        return ObjectListing(objects=objects, truncated=bool(resp.get("IsTruncated")))

    def create_signed_url(self, key: str, *, expires_in: int) -> str:
        url = self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )
        if self.config.external_endpoint and self.config.aws_endpoint_url:
            url = url.replace(self.config.aws_endpoint_url, self.config.external_endpoint)
        return url

    def close(self):
        self.client.close()
        log.info("Closed S3 client")
