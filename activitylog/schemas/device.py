"""DeviceDetails schema — result of classifying a user-agent string."""

from __future__ import annotations

from pydantic import BaseModel

UNKNOWN_USER_AGENT = "Unknown"
UNKNOWN_DEVICE = "Unknown"


class DeviceDetails(BaseModel):
    """Structured device/bot attributes of a request.

    Bot fields are only set when is_bot is true; device fields are None
    when the parser could not detect them.
    """

    ip: str | None = None
    user_agent: str = UNKNOWN_USER_AGENT

    is_bot: bool = False
    bot_name: str | None = None
    bot_category: str | None = None

    device_name: str | None = None
    brand: str | None = None
    model: str | None = None
    os: str | None = None
    client: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def unknown(cls, user_agent: str, ip: str | None = None) -> DeviceDetails:
        """Placeholder used when detection is skipped or has failed."""
        return cls(ip=ip, user_agent=user_agent, is_bot=False, device_name=UNKNOWN_DEVICE)
