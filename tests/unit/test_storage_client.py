from datetime import datetime, timezone
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import pytest
import requests

from coachhub.core.config import settings
from coachhub.services.storage_client import NullStorageClient, ObjectStorageClient

NOW = datetime(2025, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def client():
    return ObjectStorageClient(
        endpoint="https://storage.example.com/",
        bucket="media",
        access_key_id="AKIDEXAMPLE",
        secret_access_key="secret",
        region="auto",
        default_expiry=900,
    )


def test_presigned_put_url(client):
    presigned = client.presign("put", "videos/c1/clip.mp4", content_type="video/mp4", now=NOW)
    parsed = urlparse(presigned.url)
    query = parse_qs(parsed.query)

    assert presigned.method == "PUT"
    assert parsed.netloc == "storage.example.com"
    assert parsed.path == "/media/videos/c1/clip.mp4"
    assert query["X-Amz-Credential"] == ["AKIDEXAMPLE/20250501/auto/s3/aws4_request"]
    assert query["X-Amz-Date"] == ["20250501T120000Z"]
    assert query["X-Amz-Expires"] == ["900"]
    assert len(query["X-Amz-Signature"][0]) == 64
    assert presigned.headers == {"Content-Type": "video/mp4"}
    assert presigned.expires_at == datetime(2025, 5, 1, 12, 15, tzinfo=timezone.utc)


def test_signature_is_deterministic_and_method_bound(client):
    first = client.presign("GET", "videos/c1/clip.mp4", now=NOW)
    second = client.presign("GET", "videos/c1/clip.mp4", now=NOW)
    delete = client.presign("DELETE", "videos/c1/clip.mp4", now=NOW)

    assert first.url == second.url
    assert first.url != delete.url


def test_public_url(client):
    assert client.public_url("/thumbs/a.png") == "https://storage.example.com/media/thumbs/a.png"


def test_missing_configuration_raises():
    with pytest.raises(RuntimeError):
        ObjectStorageClient(
            endpoint="https://storage.example.com", bucket="", access_key_id="x", secret_access_key="y"
        )


@pytest.mark.parametrize("status_code,expected", [(204, True), (404, True), (500, False)])
def test_delete_object_status_handling(client, status_code, expected):
    with patch("coachhub.services.storage_client.requests.delete") as mocked:
        mocked.return_value = MagicMock(status_code=status_code)
        assert client.delete_object("videos/c1/clip.mp4") is expected


def test_delete_object_network_error(client):
    with patch(
        "coachhub.services.storage_client.requests.delete", side_effect=requests.ConnectionError("down")
    ):
        assert client.delete_object("videos/c1/clip.mp4") is False


def test_null_client_returns_empty_urls():
    null = NullStorageClient()

    assert null.generate_presigned_put("k", "video/mp4").url == ""
    assert null.public_url("k") == ""
    assert null.delete_object("k") is True


def test_explicit_empty_value_is_not_replaced_by_settings(monkeypatch):
    monkeypatch.setattr(settings, "storage_access_key_id", "configured-key")

    with pytest.raises(RuntimeError):
        ObjectStorageClient(
            endpoint="https://storage.example.com", bucket="media", access_key_id="", secret_access_key="y"
        )
