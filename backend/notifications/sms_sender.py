"""
SMS transport via Twilio's REST API.

Messages are kept short: a single alert names the council, date and time;
a digest only gives the count and a link to the meeting list.
"""

import os

import requests

from config.settings import PUBLIC_SITE_URL, TRANSPORT_TIMEOUT_SECONDS
from models.meeting import DigestPayload, MeetingAlert, NotificationPayload
from shared.utils import format_meeting_time

TWILIO_API_URL = "https://api.twilio.com/2010-04-01/Accounts/{sid}/Messages.json"
STOP_FOOTER = "Reply STOP to unsubscribe."


def render_sms(payload: NotificationPayload) -> str:
    """Message body for a payload."""
    base_url = os.getenv("PUBLIC_SITE_URL", PUBLIC_SITE_URL).rstrip("/")

    if isinstance(payload, MeetingAlert):
        meeting = payload.meeting
        council = meeting.council_name or "Council"
        day = f"{meeting.meeting_date:%b} {meeting.meeting_date.day}"
        clock = format_meeting_time(meeting.meeting_time, missing="TBD")
        url = f"{base_url}/m/{meeting.state_id or meeting.id}"
        return f"civi.me: New meeting - {council}, {day} {clock}. Details: {url}\n{STOP_FOOTER}"

    if isinstance(payload, DigestPayload):
        count = payload.count
        return (
            f"civi.me: {count} new meeting{'s' if count != 1 else ''} posted for councils "
            f"you follow. View: {base_url}/meetings\n{STOP_FOOTER}"
        )

    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")


def send_message(address: str, payload: NotificationPayload) -> bool:
    """
    Send one SMS through Twilio.

    Args:
        address: Recipient phone number in E.164 format
        payload: Single-meeting alert or digest

    Returns:
        True on HTTP 201, False when Twilio is not configured or refuses the
        message. Network errors and timeouts propagate as requests exceptions.
    """
    account_sid = os.getenv("TWILIO_ACCOUNT_SID")
    auth_token = os.getenv("TWILIO_AUTH_TOKEN")
    from_number = os.getenv("TWILIO_FROM_NUMBER")

    if not account_sid or not auth_token or not from_number:
        print(f"  ⚠️  Twilio credentials not configured, cannot SMS {address}")
        return False

    response = requests.post(
        TWILIO_API_URL.format(sid=account_sid),
        data={"To": address, "From": from_number, "Body": render_sms(payload)},
        auth=(account_sid, auth_token),
        timeout=(5, TRANSPORT_TIMEOUT_SECONDS),
    )

    if response.status_code == 201:
        return True

    print(f"  ✗ Twilio API error (HTTP {response.status_code}): {response.text[:200]}")
    return False
