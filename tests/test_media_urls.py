import time
from urllib.parse import parse_qs, urlsplit

import pytest

from streamdesk.config import settings
from streamdesk.services.media_urls import (
    build_signed_media_url,
    normalize_media_path,
    relative_media_path,
    verify_signed_media_path,
)


@pytest.fixture(autouse=True)
def media_settings(monkeypatch, tmp_path):
    monkeypatch.setattr(settings, "media_dir", str(tmp_path))
    monkeypatch.setattr(settings, "media_signing_secret", "test-secret")
    monkeypatch.setattr(settings, "public_base_url", "https://bot.example.com/")
    return tmp_path


def _query(url):
    query = parse_qs(urlsplit(url).query)
    return int(query["expires"][0]), query["sig"][0]


class TestSignedUrls:
    def test_url_shape(self):
        url = build_signed_media_url("/screens/tv 1.png")
        assert url.startswith("https://bot.example.com/media/screens/tv%201.png?expires=")

    def test_valid_signature(self):
        expires, sig = _query(build_signed_media_url("menu.png"))
        assert verify_signed_media_path("menu.png", expires, sig)

    def test_tampered_path(self):
        expires, sig = _query(build_signed_media_url("menu.png"))
        assert verify_signed_media_path("tutorial.mp4", expires, sig) is False

    def test_expired(self):
        expires, sig = _query(build_signed_media_url("menu.png", ttl_seconds=60))
        assert verify_signed_media_path("menu.png", int(time.time()) - 1, sig) is False
        assert expires >= int(time.time()) + 59

    def test_no_secret(self, monkeypatch):
        monkeypatch.setattr(settings, "media_signing_secret", None)
        assert build_signed_media_url("menu.png") is None
        assert verify_signed_media_path("menu.png", int(time.time()) + 60, "abc") is False


class TestPaths:
    def test_normalize(self):
        assert normalize_media_path(" /a\\b.png ") == "a/b.png"

    def test_relative_media_path(self, media_settings, tmp_path_factory):
        assert relative_media_path(media_settings / "outbox" / "x.png") == "outbox/x.png"
        assert relative_media_path(tmp_path_factory.mktemp("other") / "x.png") is None
