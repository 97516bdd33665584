"""
Utility Tests
=============

Sanitization, response serialization, secret encryption and the fail-open
Redis cache.
"""

from datetime import datetime, timedelta, timezone

import pytest
import redis

from ytp_portal.cache import Cache
from ytp_portal.encryption import decrypt_secret, encrypt_secret
from ytp_portal.utils.sanitization import html_to_text, sanitize_html
from ytp_portal.utils.serialization import naive_utc, parse_json, to_millis


class TestSanitizeHtml:

    def test_keeps_allowed_markup(self):
        assert sanitize_html("<p>Hi <strong>there</strong></p>") == "<p>Hi <strong>there</strong></p>"

    def test_strips_scripts_and_handlers(self):
        cleaned = sanitize_html('<p onclick="steal()">x</p><script>alert(1)</script>')
        assert "script" not in cleaned
        assert "onclick" not in cleaned

    def test_drops_javascript_links(self):
        cleaned = sanitize_html('<a href="javascript:alert(1)">click</a>')
        assert "javascript" not in cleaned
        assert "click" in cleaned

    def test_links_get_safe_rel(self):
        cleaned = sanitize_html('<a href="https://ytp.law">site</a>')
        assert 'rel="noopener noreferrer"' in cleaned

    def test_empty(self):
        assert sanitize_html(None) == ""
        assert sanitize_html("") == ""


class TestPlainText:

    def test_html_to_text(self):
        assert html_to_text("<p>Tom &amp; Jerry</p>") == "Tom & Jerry"
        assert html_to_text("<p> </p>") == ""


class TestSerialization:

    def test_millis(self):
        moment = datetime(2024, 1, 2, 3, 4, 5, 678000)
        assert to_millis(moment) == 1704164645678
        assert to_millis(None) is None

    def test_naive_utc(self):
        aware = datetime(2024, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert naive_utc(aware) == datetime(2024, 1, 1, 17, 0)
        assert naive_utc(None) is None

    def test_parse_json(self):
        assert parse_json('{"a": 1}') == {"a": 1}
        assert parse_json("not json", default=[]) == []
        assert parse_json(None, default={}) == {}


class TestEncryption:

    def test_round_trip_is_not_plaintext(self):
        token = encrypt_secret("secret-token")
        assert token != "secret-token"
        assert decrypt_secret(token) == "secret-token"

    def test_garbage_raises_value_error(self):
        with pytest.raises(ValueError):
            decrypt_secret("not-a-fernet-token")


class FakeRedis:
    """In-memory stand-in for the three commands the cache uses"""

    def __init__(self, fail=False):
        self.store = {}
        self.ttls = {}
        self.fail = fail

    def _check(self):
        if self.fail:
            raise redis.ConnectionError("redis is down")

    def get(self, key):
        self._check()
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self._check()
        self.store[key] = value
        self.ttls[key] = ttl

    def delete(self, *keys):
        self._check()
        for key in keys:
            self.store.pop(key, None)


class TestCache:

    def test_without_redis_is_a_no_op(self):
        cache = Cache(client_factory=lambda: None)
        assert cache.set("k", "v") is False
        assert cache.get("k") is None
        assert cache.delete("k") is False

    def test_set_get_delete(self):
        fake = FakeRedis()
        cache = Cache(client_factory=lambda: fake)

        assert cache.set("lawpay:access:u1", "token", ttl=120) is True
        assert fake.ttls["lawpay:access:u1"] == 120
        assert cache.get("lawpay:access:u1") == "token"

        cache.delete("lawpay:access:u1")
        assert cache.get("lawpay:access:u1") is None

    def test_errors_fail_open(self):
        cache = Cache(client_factory=lambda: FakeRedis(fail=True))
        assert cache.set("k", "v") is False
        assert cache.get("k") is None
        assert cache.delete("k") is False
