"""
ObjectStorageClient - S3-compatible object storage for coach media.

Builds SigV4 query-string presigned URLs for PUT/GET/DELETE so clients
upload and stream video bytes directly against the bucket. The API never
proxies file contents; only ``delete_object`` talks to the bucket itself.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import logging
from typing import Dict, Optional, Union
from urllib.parse import quote, urlparse

import requests

from ..core.config import settings

logger = logging.getLogger(__name__)

UNSIGNED_PAYLOAD = "UNSIGNED-PAYLOAD"


def _hmac(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def _canonical_query(params: Dict[str, str]) -> str:
    return "&".join(
        f"{quote(key, safe='-_.~')}={quote(str(params[key]), safe='-_.~')}" for key in sorted(params)
    )


@dataclass
class PresignedUrl:
    url: str
    method: str
    headers: Dict[str, str]
    expires_at: datetime


class ObjectStorageClient:
    """
    Minimal SigV4 signer for an S3-compatible bucket using path-style URLs.

    Uses query-string authentication with UNSIGNED-PAYLOAD.
    """

    service = "s3"
    algorithm = "AWS4-HMAC-SHA256"

    def __init__(
        self,
        endpoint: Optional[str] = None,
        bucket: Optional[str] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        region: Optional[str] = None,
        default_expiry: Optional[int] = None,
    ) -> None:
        self.endpoint = (endpoint if endpoint is not None else settings.storage_endpoint).rstrip("/")
        self.bucket = bucket if bucket is not None else settings.storage_bucket
        self.access_key_id = access_key_id if access_key_id is not None else settings.storage_access_key_id
        self.secret_key = (
            secret_access_key
            if secret_access_key is not None
            else settings.storage_secret_access_key.get_secret_value()
        )
        self.region = region if region is not None else settings.storage_region
        self.default_expiry = default_expiry or settings.storage_presign_expiry_seconds

        if not self.endpoint or not self.bucket or not self.access_key_id or not self.secret_key:
            raise RuntimeError("Object storage configuration is missing; check storage_* settings")

        parsed = urlparse(self.endpoint if "://" in self.endpoint else f"https://{self.endpoint}")
        self.scheme = parsed.scheme or "https"
        self.host = parsed.netloc

    def _signing_key(self, datestamp: str) -> bytes:
        k_date = _hmac(("AWS4" + self.secret_key).encode("utf-8"), datestamp)
        k_region = _hmac(k_date, self.region)
        k_service = _hmac(k_region, self.service)
        return _hmac(k_service, "aws4_request")

    def presign(
        self,
        method: str,
        object_key: str,
        expires_seconds: Optional[int] = None,
        content_type: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PresignedUrl:
        now = now or datetime.now(timezone.utc)
        expires_seconds = expires_seconds or self.default_expiry
        amz_date = now.strftime("%Y%m%dT%H%M%SZ")
        datestamp = now.strftime("%Y%m%d")

        canonical_uri = f"/{quote(self.bucket)}/{quote(object_key.lstrip('/'), safe='/-_.~')}"
        credential_scope = f"{datestamp}/{self.region}/{self.service}/aws4_request"
        params: Dict[str, str] = {
            "X-Amz-Algorithm": self.algorithm,
            "X-Amz-Credential": f"{self.access_key_id}/{credential_scope}",
            "X-Amz-Date": amz_date,
            "X-Amz-Expires": str(expires_seconds),
            "X-Amz-SignedHeaders": "host",
            "X-Amz-Content-Sha256": UNSIGNED_PAYLOAD,
        }
        canonical_querystring = _canonical_query(params)
        canonical_request = "\n".join(
            [
                method.upper(),
                canonical_uri,
                canonical_querystring,
                f"host:{self.host}\n",
                "host",
                UNSIGNED_PAYLOAD,
            ]
        )
        string_to_sign = "\n".join(
            [
                self.algorithm,
                amz_date,
                credential_scope,
                hashlib.sha256(canonical_request.encode("utf-8")).hexdigest(),
            ]
        )
        signature = hmac.new(
            self._signing_key(datestamp), string_to_sign.encode("utf-8"), hashlib.sha256
        ).hexdigest()

        url = f"{self.scheme}://{self.host}{canonical_uri}?{canonical_querystring}&X-Amz-Signature={signature}"
        headers = {"Content-Type": content_type} if content_type else {}
        return PresignedUrl(
            url=url,
            method=method.upper(),
            headers=headers,
            expires_at=now.replace(microsecond=0) + timedelta(seconds=expires_seconds),
        )

    def generate_presigned_put(
        self, object_key: str, content_type: str, expires_seconds: Optional[int] = None
    ) -> PresignedUrl:
        return self.presign("PUT", object_key, expires_seconds, content_type=content_type)

    def generate_presigned_get(self, object_key: str, expires_seconds: Optional[int] = None) -> PresignedUrl:
        return self.presign("GET", object_key, expires_seconds)

    def generate_presigned_delete(self, object_key: str, expires_seconds: Optional[int] = None) -> PresignedUrl:
        return self.presign("DELETE", object_key, expires_seconds or 300)

    def public_url(self, object_key: str) -> str:
        return f"{self.scheme}://{self.host}/{self.bucket}/{object_key.lstrip('/')}"

    def delete_object(self, object_key: str) -> bool:
        """Delete an object. A missing object counts as deleted."""
        pre = self.generate_presigned_delete(object_key)
        try:
            resp = requests.delete(pre.url, timeout=30)
        except requests.RequestException as e:
            logger.error(f"Failed to delete {object_key}: {e}")
            return False
        if 200 <= resp.status_code < 300 or resp.status_code == 404:
            return True
        logger.error(f"Failed to delete {object_key}: status={resp.status_code}")
        return False


class NullStorageClient:
    """Placeholder used when object storage is not configured; URLs are empty."""

    def _placeholder(self, method: str) -> PresignedUrl:
        return PresignedUrl(
            url="", method=method, headers={}, expires_at=datetime.now(timezone.utc).replace(microsecond=0)
        )

    def generate_presigned_put(
        self, object_key: str, content_type: str, expires_seconds: Optional[int] = None
    ) -> PresignedUrl:
        return self._placeholder("PUT")

    def generate_presigned_get(self, object_key: str, expires_seconds: Optional[int] = None) -> PresignedUrl:
        return self._placeholder("GET")

    def generate_presigned_delete(self, object_key: str, expires_seconds: Optional[int] = None) -> PresignedUrl:
        return self._placeholder("DELETE")

    def public_url(self, object_key: str) -> str:
        return ""

    def delete_object(self, object_key: str) -> bool:
        return True


StorageClient = Union[ObjectStorageClient, NullStorageClient]


def get_storage_client() -> StorageClient:
    if settings.storage_configured:
        return ObjectStorageClient()
    logger.info("Object storage not configured; using null storage client")
    return NullStorageClient()
