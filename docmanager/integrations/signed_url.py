"""
Signed-URL issuer: time-limited read URLs for externally stored content.

When a FileContent record has no inline payload but carries a
``storage_path``, the content resolver can ask this adapter for a presigned
GET URL and download the object through it.

Storage paths are either ``s3://<bucket>/<object>`` or a bare object name
inside the configured default bucket.

The path is off unless ``EXTERNAL_CONTENT_ENABLED`` is set and MinIO
credentials are configured; ``build_signed_url_issuer`` returns None
otherwise.

Testability: pass a fake ``client`` (anything with ``presigned_get_object``)
and a fake ``session`` to avoid real network calls.
"""

from __future__ import annotations

import logging
from datetime import timedelta

import requests
from minio import Minio

from docmanager.core.exceptions import UpstreamFailure

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 20


class SignedUrlIssuer:
    """Issues presigned GET URLs and downloads objects through them.

    Args:
        client: MinIO client (or compatible fake).
        default_bucket: Bucket used for bare object names.
        ttl_seconds: Lifetime of each issued URL.
        session: Optional requests.Session for downloads.
    """

    def __init__(self, client, default_bucket: str, ttl_seconds: int = 300,
                 session: requests.Session | None = None) -> None:
        self.client = client
        self.default_bucket = default_bucket
        self.ttl_seconds = ttl_seconds
        self._session = session

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def _split_path(self, storage_path: str) -> tuple[str, str]:
        path = (storage_path or "").strip()
        if path.startswith("s3://"):
            _, _, bucket, *rest = path.split("/", 3)
            object_name = rest[-1] if rest else ""
        else:
            bucket, object_name = self.default_bucket, path.lstrip("/")
        if not bucket or not object_name:
            raise UpstreamFailure(storage_path, f"Invalid storage path: {storage_path!r}")
        return bucket, object_name

    def sign(self, storage_path: str) -> str:
        """Return a presigned GET URL valid for ``ttl_seconds``."""
        bucket, object_name = self._split_path(storage_path)
        return self.client.presigned_get_object(
            bucket, object_name, expires=timedelta(seconds=self.ttl_seconds)
        )

    def fetch(self, storage_path: str, timeout: int = _DEFAULT_TIMEOUT) -> bytes:
        """Sign ``storage_path`` and download the object bytes."""
        return fetch_signed_content(self.sign(storage_path), timeout=timeout, session=self.session)


def fetch_signed_content(url: str, timeout: int = _DEFAULT_TIMEOUT,
                         session: requests.Session | None = None) -> bytes:
    """Download a presigned URL.

    Raises:
        UpstreamFailure: network error, timeout or non-2xx response.
    """
    http = session or requests
    try:
        resp = http.get(url, timeout=timeout)
    except requests.Timeout:
        raise UpstreamFailure(url, f"Download timed out after {timeout}s") from None
    except requests.RequestException as exc:
        raise UpstreamFailure(url, str(exc)[:500]) from exc

    if not resp.ok:
        logger.warning("Signed download failed status=%d", resp.status_code)
        raise UpstreamFailure(url, f"HTTP {resp.status_code}: {resp.text[:200]}")
    return resp.content


def build_signed_url_issuer(app) -> SignedUrlIssuer | None:
    """Create the issuer from app config, or None when not configured."""
    if not app.config.get("EXTERNAL_CONTENT_ENABLED"):
        return None

    endpoint = (app.config.get("MINIO_ENDPOINT") or "").strip()
    access_key = app.config.get("MINIO_ACCESS_KEY")
    secret_key = app.config.get("MINIO_SECRET_KEY")
    if not endpoint or not access_key or not secret_key:
        logger.warning("EXTERNAL_CONTENT_ENABLED is set but MinIO settings are incomplete")
        return None

    secure = endpoint.startswith("https://")
    host = endpoint.split("://", 1)[-1]
    client = Minio(host, access_key=access_key, secret_key=secret_key, secure=secure)
    logger.info("Signed-URL issuer configured for %s", host)
    return SignedUrlIssuer(
        client,
        default_bucket=app.config.get("MINIO_BUCKET", "documents"),
        ttl_seconds=app.config.get("SIGNED_URL_TTL_SECONDS", 300),
    )
