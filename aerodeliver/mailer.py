import logging
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from aerodeliver.config import PLACEHOLDER_SERVICE_ID, settings

logger = logging.getLogger(__name__)

SEND_TIMEOUT_SECONDS = 10


class MailerError(Exception):
    pass


@dataclass
class SendResult:
    simulated: bool
    status_code: Optional[int] = None


def is_configured(template_id: Optional[str]) -> bool:
    service_id = settings.emailjs_service_id
    return bool(
        service_id
        and template_id
        and settings.emailjs_public_key
        and service_id != PLACEHOLDER_SERVICE_ID
    )


def send_template(template_id: Optional[str], template_params: Dict[str, str]) -> SendResult:
    """Send a transactional email through the EmailJS REST API.

    Without credentials the send is simulated and reported as successful.
    """
    if not is_configured(template_id):
        logger.warning("EmailJS is not configured. Falling back to simulation.")
        return SendResult(simulated=True)

    payload = {
        "service_id": settings.emailjs_service_id,
        "template_id": template_id,
        "user_id": settings.emailjs_public_key,
        "template_params": template_params,
    }
    if settings.emailjs_private_key:
        payload["accessToken"] = settings.emailjs_private_key

    try:
        response = requests.post(settings.emailjs_api_url, json=payload, timeout=SEND_TIMEOUT_SECONDS)
    except requests.RequestException as e:
        logger.error("EmailJS Error: %s", e)
        raise MailerError(str(e)) from e

    if response.status_code != 200:
        logger.error("EmailJS Error: %s %s", response.status_code, response.text)
        raise MailerError(f"EmailJS responded with {response.status_code}")

    return SendResult(simulated=False, status_code=response.status_code)


def send_contact_message(name: str, email: str, subject: str, message: str,
                         order_id: Optional[str] = None, pilot_email: Optional[str] = None,
                         pilot_name: Optional[str] = None) -> SendResult:
    if order_id and not pilot_email:
        logger.error("Mission contact requested but no pilot email found for order: %s", order_id)
    recipient = pilot_email if (order_id and pilot_email) else settings.support_email
    to_name = f"Pilot ({pilot_name})" if pilot_email else "AeroDeliver Support"
    return send_template(
        settings.emailjs_contact_template_id,
        {
            "from_name": name,
            "from_email": email,
            "subject": subject,
            "message": message,
            "to_name": to_name,
            "pilot_email": recipient,
            "order_id": order_id or "N/A",
        },
    )


def send_support_message(name: str, email: str, subject: str, message: str) -> SendResult:
    return send_template(
        settings.emailjs_template_id,
        {
            "from_name": name,
            "from_email": email,
            "subject": subject,
            "message": message,
            "to_name": "AeroDeliver Support",
        },
    )


def send_recovery_link(name: str, email: str, link: str) -> SendResult:
    return send_template(
        settings.emailjs_recovery_template_id,
        {
            "to_name": name,
            "to_email": email,
            "reset_link": link,
        },
    )
