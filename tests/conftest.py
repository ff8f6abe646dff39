import io
import os
from datetime import datetime, timezone
from typing import Dict, Optional

import boto3
import pytest
from moto import mock_aws
from fastapi.testclient import TestClient
from PIL import Image

# Dummy AWS credentials for moto, set BEFORE importing app modules
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ["AWS_SECURITY_TOKEN"] = "testing"
os.environ["AWS_SESSION_TOKEN"] = "testing"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["S3_BUCKET"] = "image-gallery-bucket"
# Clear endpoint and CDN settings so moto mocks are used and signing is exercised
os.environ.pop("AWS_ENDPOINT_URL", None)
os.environ.pop("PUBLIC_BASE_URL", None)

from image_gallery.main import app
from image_gallery.storage.base import ListedObject, ObjectListing, StoredObject


def make_image_bytes(width=10, height=10, fmt="PNG", color="red", **save_kwargs):
    """Generate a simple valid image in-memory."""
    img = Image.new("RGB", (width, height), color=color)
    buf = io.BytesIO()
    img.save(buf, format=fmt, **save_kwargs)
    return buf.getvalue()


class FakeObjectStore:
    """In-memory object store following the ObjectStore contract."""

    def __init__(self):
        self.objects: Dict[str, dict] = {}
        self.truncated = False
        self.signed_url_calls = []

    def add(self, key: str, uploaded: datetime, size: int = 1, metadata: Optional[dict] = None):
        self.objects[key] = {
            "body": b"x" * size,
            "content_type": "image/png",
            "metadata": dict(metadata or {}),
            "uploaded": uploaded,
        }

    def put(self, key, data, *, content_type, cache_control, metadata):
        self.objects[key] = {
            "body": bytes(data),
            "content_type": content_type,
            "cache_control": cache_control,
            "metadata": dict(metadata),
            "uploaded": datetime.now(timezone.utc),
        }

    def get(self, key):
        obj = self.objects.get(key)
        if obj is None:
            return None
        return StoredObject(key=key, body=obj["body"], content_type=obj["content_type"], etag='"fake"', metadata=obj["metadata"])

    def head(self, key):
        obj = self.objects.get(key)
        return dict(obj["metadata"]) if obj else None

    def list(self, *, prefix, limit):
        objects = [
            ListedObject(key=k, size=len(v["body"]), uploaded=v["uploaded"])
            for k, v in self.objects.items()
            if k.startswith(prefix)
        ][:limit]
        return ObjectListing(objects=objects, truncated=self.truncated)


@pytest.fixture
def fake_store():
    return FakeObjectStore()


@pytest.fixture(scope="function")
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"


@pytest.fixture(scope="function")
def test_client(aws_credentials):
    with mock_aws():
        # Create S3 bucket
        s3 = boto3.client("s3", region_name="us-east-1")
        s3.create_bucket(Bucket="image-gallery-bucket")

        # Lifespan builds the S3 store inside the moto context
        with TestClient(app) as client:
            yield client

    app.dependency_overrides.clear()
