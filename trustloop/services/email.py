import requests
from typing import Optional

from trustloop.core.config import settings
from trustloop.core.errors import UpstreamError
from trustloop.core.logger import log


class EmailDeliveryError(UpstreamError):
    pass


def render_template(template: str, variables: dict) -> str:
    """Replace {{key}} placeholders; None renders as an empty string."""
    for key, value in variables.items():
        template = template.replace("{{" + key + "}}", "" if value is None else str(value))
    return template


def send_email(
    http: requests.Session,
    api_key: str,
    to_email: str,
    subject: str,
    body: str,
    from_email: str,
    from_name: Optional[str] = None
):
    """Send one HTML email through SendGrid with click and open tracking."""
    sender = {"email": from_email}
    if from_name:
        sender["name"] = from_name

    response = http.post(
        settings.SENDGRID_API_URL,
        headers={
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        },
        json={
            "from": sender,
            "personalizations": [{
                "to": [{"email": to_email}],
                "subject": subject,
            }],
            "content": [{
                "type": "text/html",
                "value": body,
            }],
            "tracking_settings": {
                "click_tracking": {"enable": True},
                "open_tracking": {"enable": True},
            },
        },
        timeout=settings.HTTP_TIMEOUT
    )
    if not response.ok:
        log.error(f"SendGrid rejected email to {to_email}: {response.status_code}")
        raise EmailDeliveryError(f"Email sending failed: {response.text}")
    log.info(f"Email successfully sent to {to_email}")
