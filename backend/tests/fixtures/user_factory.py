"""Factory functions for creating test subscriber and subscription data."""

import itertools
from typing import Any, Dict, List, Optional

_ids = itertools.count(1000)


def create_test_user(
    user_id: Optional[int] = None,
    email: Optional[str] = "test@example.com",
    phone: Optional[str] = "+18085550100",
    confirmed_email: bool = True,
    confirmed_phone: bool = True,
    **overrides,
) -> Dict[str, Any]:
    """Factory for creating a users row (subscriber contact details)."""
    user = {
        "id": user_id if user_id is not None else next(_ids),
        "email": email,
        "phone": phone,
        "confirmed_email": confirmed_email,
        "confirmed_phone": confirmed_phone,
    }
    user.update(overrides)
    return user


def create_test_subscription(
    subscription_id: Optional[int] = None,
    user_id: int = 1,
    council_id: int = 1,
    channels: Optional[List[str]] = None,
    frequency: str = "immediate",
    active: bool = True,
    **overrides,
) -> Dict[str, Any]:
    """
    Factory for creating a subscriptions row.

    Channels are stored the way the subscriptions table keeps them: a comma
    separated string.
    """
    subscription = {
        "id": subscription_id if subscription_id is not None else next(_ids),
        "user_id": user_id,
        "council_id": council_id,
        "channels": ",".join(channels or ["email"]),
        "frequency": frequency,
        "active": active,
    }
    subscription.update(overrides)
    return subscription
