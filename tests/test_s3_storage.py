from urllib.parse import quote

import boto3
import pytest
from moto import mock_aws

from image_gallery.settings import Settings
from image_gallery.storage.s3 import METADATA_LIMIT, S3ObjectStore, _encode_metadata


@pytest.fixture
def s3_store(aws_credentials):
    with mock_aws():
        # Bucket does not exist yet; the store creates it
        store = S3ObjectStore(Settings(s3_bucket="adapter-test-bucket", aws_endpoint_url=None))
        yield store


def put(store, key, data=b"\x89PNG....", metadata=None):
    store.put(
        key,
        data,
        content_type="image/png",
        cache_control="public, max-age=31536000",
        metadata=metadata or {},
    )


def test_store_creates_missing_bucket(s3_store):
    names = [b["Name"] for b in boto3.client("s3", region_name="us-east-1").list_buckets()["Buckets"]]
    assert "adapter-test-bucket" in names


def test_put_and_get_round_trip(s3_store):
    metadata = {"prompt": "Café 🚀 100% done", "model": "flux", "seed": ""}
    put(s3_store, "images/cafe-12345678.png", b"png-bytes", metadata)

    obj = s3_store.get("images/cafe-12345678.png")
    assert obj.body == b"png-bytes"
    assert obj.content_type == "image/png"
    assert obj.etag
    assert obj.metadata == metadata


def test_put_sets_cache_control(s3_store):
    put(s3_store, "images/a-12345678.png")
    head = s3_store.client.head_object(Bucket="adapter-test-bucket", Key="images/a-12345678.png")
    assert head["CacheControl"] == "public, max-age=31536000"


def test_get_and_head_missing_key(s3_store):
    assert s3_store.get("images/nope.png") is None
    assert s3_store.head("images/nope.png") is None


def test_long_multibyte_prompt_trimmed_to_metadata_limit(s3_store):
    prompt = "漫画の街" * 60
    metadata = {"prompt": prompt, "model": "flux", "created_at": "2024-05-01T12:00:00.000Z"}
    put(s3_store, "images/manga-12345678.png", metadata=metadata)

    stored = s3_store.head("images/manga-12345678.png")
    assert prompt.startswith(stored["prompt"])
    assert 0 < len(stored["prompt"]) < len(prompt)
    assert stored["model"] == "flux"
    encoded = {k: quote(v, safe="") for k, v in stored.items()}
    assert sum(len(k) + len(v) for k, v in encoded.items()) <= METADATA_LIMIT


def test_encode_metadata_leaves_small_values_alone():
    metadata = {"prompt": "Café 🚀", "seed": ""}
    assert _encode_metadata(metadata) == {"prompt": quote("Café 🚀", safe=""), "seed": ""}


def test_head_returns_decoded_metadata(s3_store):
    put(s3_store, "images/b-12345678.png", metadata={"prompt": "a/b c", "width": "10"})
    assert s3_store.head("images/b-12345678.png") == {"prompt": "a/b c", "width": "10"}


def test_list_filters_prefix_and_reports_truncation(s3_store):
    for i in range(3):
        put(s3_store, f"images/img-{i}.png", data=b"x" * (i + 1))
    put(s3_store, "other/skip.png")

    listing = s3_store.list(prefix="images/", limit=1000)
    assert sorted(o.key for o in listing.objects) == ["images/img-0.png", "images/img-1.png", "images/img-2.png"]
    assert {o.key: o.size for o in listing.objects}["images/img-2.png"] == 3
    assert all(o.uploaded.tzinfo is not None for o in listing.objects)
    assert listing.truncated is False

    assert s3_store.list(prefix="images/", limit=2).truncated is True


def test_create_signed_url(s3_store):
    url = s3_store.create_signed_url("images/a-12345678.png", expires_in=600)
    assert "adapter-test-bucket" in url
    assert "images/a-12345678.png" in url
    assert "Expires=" in url or "X-Amz-Expires=600" in url


def test_signed_url_external_endpoint_rewrite(mocker):
    store = S3ObjectStore.__new__(S3ObjectStore)
    store.config = Settings(aws_endpoint_url="http://localstack:4566", external_endpoint="http://localhost:4566")
    store.bucket = "b"
    store.client = mocker.Mock()
    store.client.generate_presigned_url.return_value = "http://localstack:4566/b/images/x.png?sig=1"

    assert store.create_signed_url("images/x.png", expires_in=60) == "http://localhost:4566/b/images/x.png?sig=1"
    store.client.generate_presigned_url.assert_called_once_with(
        "get_object", Params={"Bucket": "b", "Key": "images/x.png"}, ExpiresIn=60,
    )
