"""Tests: signed-URL issuer for externally stored content (no network)."""

from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import requests

from docmanager.core.exceptions import UpstreamFailure
from docmanager.integrations.signed_url import (
    SignedUrlIssuer,
    build_signed_url_issuer,
    fetch_signed_content,
)


class _FakeMinio:
    def __init__(self):
        self.calls = []

    def presigned_get_object(self, bucket, object_name, expires=None):
        self.calls.append((bucket, object_name, expires))
        return f"https://storage.local/{bucket}/{object_name}?sig=abc"


def _response(status=200, content=b"data", text=""):
    resp = MagicMock()
    resp.ok = 200 <= status < 300
    resp.status_code = status
    resp.content = content
    resp.text = text
    return resp


# ── Signing ───────────────────────────────────────────────────────────────────


class TestSign:
    def test_s3_path(self):
        client = _FakeMinio()
        issuer = SignedUrlIssuer(client, "documents", ttl_seconds=120)

        url = issuer.sign("s3://archive/2024/report.pdf")

        assert url == "https://storage.local/archive/2024/report.pdf?sig=abc"
        assert client.calls == [("archive", "2024/report.pdf", timedelta(seconds=120))]

    def test_bare_object_uses_default_bucket(self):
        client = _FakeMinio()
        SignedUrlIssuer(client, "documents").sign("/reports/a.pdf")
        assert client.calls[0][:2] == ("documents", "reports/a.pdf")

    @pytest.mark.parametrize("path", ["", "   ", "s3://bucket-only", "s3://"])
    def test_invalid_paths(self, path):
        with pytest.raises(UpstreamFailure, match="Invalid storage path"):
            SignedUrlIssuer(_FakeMinio(), "documents").sign(path)


# ── Download ──────────────────────────────────────────────────────────────────


class TestFetch:
    def test_fetch_downloads_through_signed_url(self):
        session = MagicMock()
        session.get.return_value = _response(content=b"%PDF")
        issuer = SignedUrlIssuer(_FakeMinio(), "documents", session=session)

        assert issuer.fetch("a.pdf", timeout=5) == b"%PDF"
        session.get.assert_called_once_with("https://storage.local/documents/a.pdf?sig=abc", timeout=5)

    def test_non_ok_status(self):
        session = MagicMock()
        session.get.return_value = _response(status=403, text="Forbidden")

        with pytest.raises(UpstreamFailure, match="HTTP 403: Forbidden"):
            fetch_signed_content("https://x", session=session)

    def test_timeout(self):
        session = MagicMock()
        session.get.side_effect = requests.Timeout()

        with pytest.raises(UpstreamFailure, match="timed out after 3s"):
            fetch_signed_content("https://x", timeout=3, session=session)

    def test_connection_error(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("refused")

        with pytest.raises(UpstreamFailure, match="refused"):
            fetch_signed_content("https://x", session=session)


# ── Factory ───────────────────────────────────────────────────────────────────


class TestBuildIssuer:
    def test_disabled_by_default(self, app):
        assert build_signed_url_issuer(app) is None
        assert app.extensions["signed_url_issuer"] is None

    def test_enabled_without_credentials(self):
        fake_app = SimpleNamespace(config={"EXTERNAL_CONTENT_ENABLED": True, "MINIO_ENDPOINT": "minio:9000"})
        assert build_signed_url_issuer(fake_app) is None

    def test_enabled_and_configured(self):
        fake_app = SimpleNamespace(config={
            "EXTERNAL_CONTENT_ENABLED": True,
            "MINIO_ENDPOINT": "https://minio.internal:9000",
            "MINIO_ACCESS_KEY": "key",
            "MINIO_SECRET_KEY": "secret",
            "MINIO_BUCKET": "docs",
            "SIGNED_URL_TTL_SECONDS": 60,
        })

        issuer = build_signed_url_issuer(fake_app)

        assert isinstance(issuer, SignedUrlIssuer)
        assert issuer.default_bucket == "docs"
        assert issuer.ttl_seconds == 60
