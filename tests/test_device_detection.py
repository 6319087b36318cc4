"""Tests for DeviceClassifier and CachedDeviceClassifier."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from activitylog.detection.device import (
    CRAWLER_CATEGORY,
    SEARCH_BOT_CATEGORY,
    CachedDeviceClassifier,
    DeviceClassifier,
)
from activitylog.errors import ClassificationFailure
from activitylog.schemas.device import DeviceDetails

GOOGLEBOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1)"
CHROME_WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
IPHONE_UA = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)


def _make_classifier():
    """Real classifier wrapped in a mock so parse calls can be counted."""
    return MagicMock(wraps=DeviceClassifier())


# ── DeviceClassifier ─────────────────────────────────────────────────


class TestClassify:
    """Test DeviceClassifier.classify."""

    @pytest.mark.parametrize("ua", [GOOGLEBOT_UA, CHROME_WINDOWS_UA, "", "curl/8.0"])
    def test_skip_detection_returns_placeholder(self, ua):
        with patch("activitylog.detection.device.parse_user_agent") as mock_parse:
            details = DeviceClassifier().classify(ua, skip_bot_detection=True)

        mock_parse.assert_not_called()
        assert details.is_bot is False
        assert details.bot_name is None
        assert details.bot_category is None
        assert details.device_name == "Unknown"
        assert details.brand is None
        assert details.model is None
        assert details.os is None
        assert details.client is None
        assert details.user_agent == ua

    def test_googlebot_is_bot(self):
        details = DeviceClassifier().classify(GOOGLEBOT_UA)

        assert details.is_bot is True
        assert "googlebot" in details.bot_name.lower()
        assert details.bot_category in {SEARCH_BOT_CATEGORY, CRAWLER_CATEGORY}
        assert details.device_name is None

    def test_desktop_browser(self):
        details = DeviceClassifier().classify(CHROME_WINDOWS_UA)

        assert details.is_bot is False
        assert details.bot_name is None
        assert details.device_name == "desktop"
        assert details.os.startswith("Windows")
        assert details.client.startswith("Chrome")

    def test_smartphone(self):
        details = DeviceClassifier().classify(IPHONE_UA)

        assert details.is_bot is False
        assert details.device_name == "smartphone"
        assert details.brand == "Apple"
        assert details.model == "iPhone"
        assert details.os.startswith("iOS")

    def test_unparseable_string_yields_empty_fields(self):
        details = DeviceClassifier().classify("Unknown")

        assert details.is_bot is False
        assert details.device_name is None
        assert details.brand is None
        assert details.os is None
        assert details.client is None

    def test_deterministic(self):
        classifier = DeviceClassifier()
        assert classifier.classify(IPHONE_UA) == classifier.classify(IPHONE_UA)

    def test_parser_crash_raises_classification_failure(self):
        with patch("activitylog.detection.device.parse_user_agent", side_effect=RuntimeError("boom")):
            with pytest.raises(ClassificationFailure):
                DeviceClassifier().classify(CHROME_WINDOWS_UA)


# ── CachedDeviceClassifier ───────────────────────────────────────────


class TestCacheKey:
    def test_modes_never_collide(self):
        auth = CachedDeviceClassifier.cache_key(CHROME_WINDOWS_UA, authenticated=True)
        anon = CachedDeviceClassifier.cache_key(CHROME_WINDOWS_UA, authenticated=False)

        assert auth != anon
        assert auth.endswith(":auth")
        assert anon.endswith(":anon")

    def test_stable_per_user_agent(self):
        assert CachedDeviceClassifier.cache_key("a", False) == CachedDeviceClassifier.cache_key("a", False)
        assert CachedDeviceClassifier.cache_key("a", False) != CachedDeviceClassifier.cache_key("b", False)


class TestCachedDetails:
    """Test CachedDeviceClassifier.details."""

    @pytest.mark.asyncio()
    async def test_parses_once_within_ttl(self, cache):
        classifier = _make_classifier()
        devices = CachedDeviceClassifier(cache, classifier)

        first = await devices.details(IPHONE_UA, "10.0.0.1")
        second = await devices.details(IPHONE_UA, "10.0.0.1")

        assert classifier.classify.call_count == 1
        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    @pytest.mark.asyncio()
    async def test_each_mode_parsed_separately(self, cache):
        classifier = _make_classifier()
        devices = CachedDeviceClassifier(cache, classifier)

        anon = await devices.details(GOOGLEBOT_UA, authenticated=False)
        auth = await devices.details(GOOGLEBOT_UA, authenticated=True)
        await devices.details(GOOGLEBOT_UA, authenticated=False)
        await devices.details(GOOGLEBOT_UA, authenticated=True)

        assert classifier.classify.call_count == 2
        assert anon.is_bot is True
        assert auth.is_bot is False
        assert auth.device_name == "Unknown"

    @pytest.mark.asyncio()
    async def test_recomputes_after_ttl(self, cache, clock):
        classifier = _make_classifier()
        devices = CachedDeviceClassifier(cache, classifier, ttl=86400)

        await devices.details(CHROME_WINDOWS_UA)
        clock.advance(86399)
        await devices.details(CHROME_WINDOWS_UA)
        assert classifier.classify.call_count == 1

        clock.advance(1)
        await devices.details(CHROME_WINDOWS_UA)
        assert classifier.classify.call_count == 2

    @pytest.mark.asyncio()
    async def test_ip_is_per_request(self, cache):
        devices = CachedDeviceClassifier(cache)

        first = await devices.details(CHROME_WINDOWS_UA, "10.0.0.1")
        second = await devices.details(CHROME_WINDOWS_UA, "10.0.0.2")

        assert first.ip == "10.0.0.1"
        assert second.ip == "10.0.0.2"
        assert first.client == second.client

    @pytest.mark.asyncio()
    async def test_missing_user_agent_is_unknown(self, cache):
        details = await CachedDeviceClassifier(cache).details(None)
        assert details.user_agent == "Unknown"
        assert details.is_bot is False

    @pytest.mark.asyncio()
    async def test_failure_falls_back_and_is_not_cached(self, cache):
        classifier = MagicMock(spec=DeviceClassifier)
        classifier.classify.side_effect = ClassificationFailure("bad")
        devices = CachedDeviceClassifier(cache, classifier)

        first = await devices.details(CHROME_WINDOWS_UA, "10.0.0.1")
        await devices.details(CHROME_WINDOWS_UA, "10.0.0.1")

        assert first == DeviceDetails.unknown(CHROME_WINDOWS_UA, ip="10.0.0.1")
        assert classifier.classify.call_count == 2

    @pytest.mark.asyncio()
    async def test_cached_entry_with_stale_ip_uses_request_ip(self, cache, store):
        key = CachedDeviceClassifier.cache_key(CHROME_WINDOWS_UA, authenticated=False)
        stale = DeviceDetails(ip="198.51.100.1", user_agent=CHROME_WINDOWS_UA, device_name="desktop")
        await store.set(key, stale.model_dump_json(), 60)

        details = await CachedDeviceClassifier(cache).details(CHROME_WINDOWS_UA, "10.0.0.9")

        assert details.ip == "10.0.0.9"
        assert details.device_name == "desktop"

    @pytest.mark.asyncio()
    @pytest.mark.parametrize("payload", ["[1, 2]", '{"is_bot": "maybe"}', '"desktop"'])
    async def test_malformed_cached_entry_falls_back(self, cache, store, payload):
        key = CachedDeviceClassifier.cache_key(CHROME_WINDOWS_UA, authenticated=False)
        await store.set(key, payload, 60)

        details = await CachedDeviceClassifier(cache).details(CHROME_WINDOWS_UA, "10.0.0.9")

        assert details == DeviceDetails.unknown(CHROME_WINDOWS_UA, ip="10.0.0.9")
