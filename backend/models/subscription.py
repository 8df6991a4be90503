"""Pydantic models for subscribers and their subscriptions.

Both are owned by the subscription-management side of the system; the
dispatch engine only reads them.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from models.notification import Channel, Frequency
from models.types import CouncilID, SubscriptionID, UserID


class Subscription(BaseModel):
    """A subscriber's interest in one council, on a set of channels."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: SubscriptionID
    user_id: UserID
    council_id: CouncilID
    channels: list[Channel] = Field(..., min_length=1)
    frequency: Frequency
    active: bool = True

    @field_validator("channels", mode="before")
    @classmethod
    def _split_channels(cls, value: Any) -> Any:
        # The store keeps channels as a comma separated string ("email,sms")
        if isinstance(value, str):
            value = [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, (list, tuple, set, frozenset)):
            unique = []
            for channel in value:
                if channel not in unique:
                    unique.append(channel)
            return unique
        return value


class Subscriber(BaseModel):
    """A user with per-channel addresses and confirmation flags."""

    model_config = ConfigDict(str_strip_whitespace=True)

    id: UserID
    email: str | None = None
    phone: str | None = None
    confirmed_email: bool = False
    confirmed_phone: bool = False

    def address_for(self, channel: Channel) -> str | None:
        if channel is Channel.EMAIL:
            return self.email or None
        return self.phone or None

    def is_confirmed(self, channel: Channel) -> bool:
        if channel is Channel.EMAIL:
            return self.confirmed_email
        return self.confirmed_phone

    def can_receive(self, channel: Channel) -> bool:
        """Confirmed on the channel and holding an address for it."""
        return self.is_confirmed(channel) and self.address_for(channel) is not None

    @property
    def has_confirmed_channel(self) -> bool:
        return self.confirmed_email or self.confirmed_phone
