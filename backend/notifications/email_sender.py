"""
Email transport via the Resend API.

Renders single-meeting alerts and daily/weekly digests to HTML + plain text
and hands them to Resend. Returns True when Resend accepted the message;
API errors propagate to the caller, which records them as failed deliveries.
"""

import os
from html import escape
from typing import Any, Dict, List

import resend
from resend.http_client_requests import RequestsClient

from config.settings import PUBLIC_SITE_URL, TRANSPORT_TIMEOUT_SECONDS
from models.meeting import ChangeEvent, DigestPayload, MeetingAlert, NotificationPayload
from models.notification import Frequency
from shared.utils import format_meeting_date, format_meeting_time


def _meeting_url(meeting: ChangeEvent) -> str:
    base_url = os.getenv("PUBLIC_SITE_URL", PUBLIC_SITE_URL).rstrip("/")
    return f"{base_url}/meetings/{meeting.state_id or meeting.id}"


def _prepare_meeting_data(meetings: List[ChangeEvent], long_dates: bool) -> List[Dict[str, Any]]:
    """
    Extract and format every field the templates display, once.

    Meetings are listed soonest first.
    """
    prepared = []
    for meeting in sorted(meetings, key=lambda m: (m.meeting_date, m.meeting_time is None, m.meeting_time)):
        prepared.append({
            'council_name': meeting.council_name or 'Government Council',
            'title': meeting.title or 'Meeting',
            'date_formatted': format_meeting_date(meeting.meeting_date, long=long_dates),
            'time_formatted': format_meeting_time(meeting.meeting_time, 'Time TBD' if long_dates else 'TBD'),
            'location': meeting.location or 'Location TBD',
            'meeting_url': _meeting_url(meeting),
        })
    return prepared


def render_email(payload: NotificationPayload) -> Dict[str, str]:
    """
    Build subject, HTML and text bodies for a payload.

    Returns:
        Dictionary with 'subject', 'html' and 'text'
    """
    if isinstance(payload, MeetingAlert):
        meeting = _prepare_meeting_data([payload.meeting], long_dates=True)[0]
        short_date = format_meeting_date(payload.meeting.meeting_date, long=False)
        subject = f"New Meeting: {meeting['council_name']} - {short_date}"
        return {
            'subject': subject,
            'html': _build_alert_html(meeting, payload.unsubscribe_url),
            'text': _build_alert_text(meeting, payload.unsubscribe_url),
        }

    if isinstance(payload, DigestPayload):
        label = 'Weekly' if payload.frequency is Frequency.WEEKLY else 'Daily'
        count = payload.count
        subject = f"{label} Digest: {count} new meeting{'s' if count != 1 else ''} posted"
        meetings = _prepare_meeting_data(payload.meetings, long_dates=False)
        return {
            'subject': subject,
            'html': _build_digest_html(label, meetings, payload.unsubscribe_url),
            'text': _build_digest_text(label, meetings, payload.unsubscribe_url),
        }

    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")


def send_email(address: str, payload: NotificationPayload) -> bool:
    """
    Send one rendered notification email.

    Args:
        address: Recipient email address
        payload: Single-meeting alert or digest

    Returns:
        True if Resend accepted the message, False if email is not configured
    """
    api_key = os.getenv('RESEND_API_KEY')
    if not api_key:
        print(f"  ⚠️  RESEND_API_KEY not set, cannot email {address}")
        return False
    resend.api_key = api_key
    # The executor cannot interrupt a stuck send, so the HTTP call has its own timeout
    resend.default_http_client = RequestsClient(timeout=TRANSPORT_TIMEOUT_SECONDS)

    from_email = os.getenv('NOTIFICATION_FROM_EMAIL', 'alerts@civi.me')
    from_name = os.getenv('NOTIFICATION_FROM_NAME', 'civi.me')

    content = render_email(payload)
    params: Dict[str, Any] = {
        "from": f"{from_name} <{from_email}>",
        "to": address,
        "subject": content['subject'],
        "html": content['html'],
        "text": content['text'],
    }
    if payload.unsubscribe_url:
        params["headers"] = {
            "List-Unsubscribe": f"<{payload.unsubscribe_url}>",
            "List-Unsubscribe-Post": "List-Unsubscribe=One-Click",
        }

    response = resend.Emails.send(params)
    return bool(response and response.get('id'))


def _layout(heading: str, body_html: str, unsubscribe_url: str | None) -> str:
    """Wrap a body in the shared email chrome."""
    footer_links = '<a href="https://civi.me">civi.me</a>'
    if unsubscribe_url:
        footer_links += f' • <a href="{escape(unsubscribe_url)}">Unsubscribe</a>'

    return f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{escape(heading)}</title>
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; line-height: 1.6; color: #212529; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f5f5f5;">
    <div class="container" style="background-color: #ffffff; padding: 30px; border-radius: 8px;">
        <h1 style="margin: 0 0 16px 0; color: #0d6efd; font-size: 22px;">{escape(heading)}</h1>
        {body_html}
        <div class="footer" style="margin-top: 30px; padding-top: 20px; border-top: 1px solid #e9ecef; font-size: 13px; color: #6c757d; text-align: center;">
            <p>You received this email because you follow these councils on civi.me.</p>
            <p>{footer_links}</p>
        </div>
    </div>
</body>
</html>
"""


def _build_alert_html(meeting: Dict[str, Any], unsubscribe_url: str | None) -> str:
    body = f"""
        <p>A new meeting has been posted for a council you follow.</p>
        <div style="background-color: #f8f9fa; border-left: 4px solid #0d6efd; padding: 16px; margin: 16px 0; border-radius: 4px;">
            <p style="font-weight: 600; font-size: 16px; margin: 0 0 4px 0;">{escape(meeting['council_name'])}</p>
            <p style="font-size: 15px; margin: 0 0 8px 0;">{escape(meeting['title'])}</p>
            <p style="margin: 0 0 4px 0; color: #495057;">{meeting['date_formatted']} at {meeting['time_formatted']}</p>
            <p style="margin: 0; color: #495057;">{escape(meeting['location'])}</p>
        </div>
        <a href="{escape(meeting['meeting_url'])}" style="display: inline-block; padding: 10px 20px; background-color: #0d6efd; color: #ffffff; text-decoration: none; border-radius: 6px; font-weight: 600;">View Details &amp; Agenda</a>
"""
    return _layout('New Meeting Posted', body, unsubscribe_url)


def _build_alert_text(meeting: Dict[str, Any], unsubscribe_url: str | None) -> str:
    text = (
        f"New Meeting: {meeting['council_name']}\n"
        f"{meeting['title']}\n"
        f"{meeting['date_formatted']} at {meeting['time_formatted']}\n"
        f"Location: {meeting['location']}\n\n"
        f"View details: {meeting['meeting_url']}\n"
    )
    if unsubscribe_url:
        text += f"\nUnsubscribe: {unsubscribe_url}\n"
    return text


def _build_digest_html(label: str, meetings: List[Dict[str, Any]], unsubscribe_url: str | None) -> str:
    count = len(meetings)
    rows = ""
    for meeting in meetings:
        rows += f"""
            <tr>
                <td style="padding: 12px 0; border-bottom: 1px solid #e9ecef;">
                    <p style="font-weight: 600; margin: 0 0 2px 0;">{escape(meeting['council_name'])}</p>
                    <p style="margin: 0 0 4px 0;"><a href="{escape(meeting['meeting_url'])}" style="color: #0d6efd; text-decoration: none;">{escape(meeting['title'])}</a></p>
                    <p style="font-size: 13px; color: #6c757d; margin: 0;">{meeting['date_formatted']} at {meeting['time_formatted']}</p>
                </td>
            </tr>"""

    body = f"""
        <p>{count} new meeting{'s have' if count != 1 else ' has'} been posted for councils you follow.</p>
        <table role="presentation" cellpadding="0" cellspacing="0" width="100%" style="margin: 16px 0;">
            {rows}
        </table>
"""
    return _layout(f"{label} Meeting Digest", body, unsubscribe_url)


def _build_digest_text(label: str, meetings: List[Dict[str, Any]], unsubscribe_url: str | None) -> str:
    text = f"{label} Meeting Digest - {len(meetings)} new meeting(s)\n\n"
    for meeting in meetings:
        text += (
            f"- {meeting['council_name']}: {meeting['title']}\n"
            f"  {meeting['date_formatted']} at {meeting['time_formatted']}\n"
            f"  {meeting['meeting_url']}\n\n"
        )
    if unsubscribe_url:
        text += f"Unsubscribe: {unsubscribe_url}\n"
    return text
