"""Device and bot classification of user-agent strings.

Parsing uses the `user-agents` library (ua-parser regex database), which is
deterministic for a given string, so results are cached per user-agent hash
and detection mode:

    device_details:{md5(user_agent)}:{auth|anon}

Authenticated requests skip parsing entirely and get a fixed placeholder —
an authenticated session is taken as proof of human traffic.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

from user_agents import parse as parse_user_agent

from activitylog.cache.result import ResultCache
from activitylog.errors import ClassificationFailure
from activitylog.schemas.device import UNKNOWN_USER_AGENT, DeviceDetails

logger = logging.getLogger(__name__)

# Cache TTL for device detection results (24 hours)
DEVICE_CACHE_TTL = 86400

SEARCH_BOT_CATEGORY = "Search bot"
CRAWLER_CATEGORY = "Crawler"

# Agent families reported by ua-parser for search-engine crawlers
SEARCH_BOT_FAMILIES: frozenset[str] = frozenset({
    "Googlebot",
    "Googlebot-Image",
    "Googlebot-News",
    "Googlebot-Video",
    "Google-InspectionTool",
    "AdsBot-Google",
    "AdsBot-Google-Mobile",
    "bingbot",
    "BingPreview",
    "msnbot",
    "Baiduspider",
    "YandexBot",
    "DuckDuckBot",
    "Applebot",
    "Yahoo! Slurp",
    "Sogou web spider",
    "SeznamBot",
    "Qwantify",
})

_UNDETECTED = {"", "Other"}


def _known(value: str | None) -> str | None:
    """Map the parser's 'Other'/empty placeholders to None."""
    if value is None or value in _UNDETECTED:
        return None
    return value


def _family_with_version(family: str | None, version: str | None) -> str | None:
    family = _known(family)
    if family is None:
        return None
    return f"{family} {version}".strip() if version else family


def _device_name(ua: Any) -> str | None:
    if ua.is_tablet:
        return "tablet"
    if ua.is_mobile:
        return "smartphone"
    if ua.is_pc:
        return "desktop"
    if ua.is_touch_capable:
        return "touch"
    return None


class DeviceClassifier:
    """Stateless user-agent → DeviceDetails parser."""

    def classify(self, user_agent: str, skip_bot_detection: bool = False) -> DeviceDetails:
        """Classify a user-agent string.

        Args:
            user_agent: Raw User-Agent header value.
            skip_bot_detection: Return the non-bot placeholder without parsing.

        Raises:
            ClassificationFailure: if the parser crashes.
        """
        if skip_bot_detection:
            return DeviceDetails.unknown(user_agent)

        try:
            ua = parse_user_agent(user_agent)
        except Exception as exc:
            raise ClassificationFailure(f"Cannot parse user agent {user_agent!r}: {exc}") from exc

        if ua.is_bot:
            bot_name = _known(ua.browser.family) or _known(ua.device.family)
            return DeviceDetails(
                user_agent=user_agent,
                is_bot=True,
                bot_name=bot_name,
                bot_category=SEARCH_BOT_CATEGORY if bot_name in SEARCH_BOT_FAMILIES else CRAWLER_CATEGORY,
            )

        return DeviceDetails(
            user_agent=user_agent,
            is_bot=False,
            device_name=_device_name(ua),
            brand=_known(ua.device.brand),
            model=_known(ua.device.model),
            os=_family_with_version(ua.os.family, ua.os.version_string),
            client=_family_with_version(ua.browser.family, ua.browser.version_string),
        )


class CachedDeviceClassifier:
    """DeviceClassifier memoized through a ResultCache.

    Only the user-agent classification is cached; the client IP is attached
    per request after the lookup.
    """

    def __init__(
        self,
        cache: ResultCache,
        classifier: DeviceClassifier | None = None,
        ttl: int = DEVICE_CACHE_TTL,
    ) -> None:
        self._cache = cache
        self._classifier = classifier or DeviceClassifier()
        self._ttl = ttl

    @staticmethod
    def cache_key(user_agent: str, authenticated: bool) -> str:
        digest = hashlib.md5(user_agent.encode("utf-8")).hexdigest()  # noqa: S324 — cache key, not security
        return f"device_details:{digest}:{'auth' if authenticated else 'anon'}"

    async def details(
        self,
        user_agent: str | None,
        ip: str | None = None,
        authenticated: bool = False,
    ) -> DeviceDetails:
        """Get device details for a request, never raising.

        Classification failures fall back to the unknown placeholder, which
        is not cached.
        """
        user_agent = user_agent or UNKNOWN_USER_AGENT
        key = self.cache_key(user_agent, authenticated)

        def compute() -> dict[str, Any]:
            details = self._classifier.classify(user_agent, skip_bot_detection=authenticated)
            return details.model_dump(exclude={"ip"})

        try:
            data = await self._cache.get_or_compute(key, self._ttl, compute)
            # The current request ip replaces any ip stored in the entry
            return DeviceDetails.model_validate({**data, "ip": ip})
        except ClassificationFailure:
            logger.warning("Device classification failed, using unknown device", exc_info=True)
            return DeviceDetails.unknown(user_agent, ip=ip)
        except Exception:
            logger.exception("Unusable device details for %s, using unknown device", key)
            return DeviceDetails.unknown(user_agent, ip=ip)
