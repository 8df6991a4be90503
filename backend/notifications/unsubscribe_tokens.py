"""
Signed one-click unsubscribe links for outgoing notifications.

Tokens carry only the subscriber id and are signed with HMAC-SHA256, so no
token table is needed. The public API verifies them with the same key and
salt.
"""

import hashlib
import os
from typing import Optional
from urllib.parse import quote

from itsdangerous import URLSafeTimedSerializer

from config.settings import API_BASE_URL

UNSUBSCRIBE_SALT = "unsubscribe"


def _get_serializer() -> URLSafeTimedSerializer:
    """
    Raises:
        ValueError: If UNSUBSCRIBE_SECRET_KEY environment variable not set
    """
    secret_key = os.getenv("UNSUBSCRIBE_SECRET_KEY")
    if not secret_key:
        raise ValueError("UNSUBSCRIBE_SECRET_KEY environment variable must be set.")

    return URLSafeTimedSerializer(
        secret_key,
        salt=UNSUBSCRIBE_SALT,
        signer_kwargs={"digest_method": hashlib.sha256},
    )


def generate_unsubscribe_token(user_id: int) -> str:
    """Sign a subscriber id into a URL-safe token."""
    return _get_serializer().dumps(user_id)


def build_unsubscribe_url(user_id: int, required: bool = True) -> Optional[str]:
    """
    Unsubscribe link for a subscriber, pointing at the public API.

    Raises:
        ValueError: If no signing key is configured and `required` is True.
            With `required=False` (dry runs) None is returned instead.
    """
    try:
        token = generate_unsubscribe_token(user_id)
    except ValueError:
        if required:
            raise
        return None
    base_url = os.getenv("API_BASE_URL", API_BASE_URL).rstrip("/")
    return f"{base_url}/subscriptions/unsubscribe?token={quote(token)}"
