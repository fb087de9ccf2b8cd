import logging

import httpx

from academic_portal.core.config import settings

logger = logging.getLogger(__name__)

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"


def emailjs_configured() -> bool:
    return all([
        settings.EMAILJS_SERVICE_ID,
        settings.EMAILJS_PUBLIC_KEY,
        settings.EMAILJS_TEMPLATE_ID,
        settings.EMAILJS_PRIVATE_KEY,
    ])


async def send_welcome_email(to_email: str, name: str, role: str, password: str):
    """
    Sends a welcome email with the initial password using the EmailJS REST API.
    Runs as a background task; failures are logged and never reach the request.
    """
    if not emailjs_configured():
        logger.info("EmailJS credentials not configured. Skipping welcome email to %s", to_email)
        return

    payload = {
        "service_id": settings.EMAILJS_SERVICE_ID,
        "template_id": settings.EMAILJS_TEMPLATE_ID,
        "user_id": settings.EMAILJS_PUBLIC_KEY,
        "accessToken": settings.EMAILJS_PRIVATE_KEY,
        "template_params": {
            "to_email": to_email,
            "to_name": name,
            "role": role,
            "portal_name": settings.APP_NAME,
            "password": password,
        },
    }

    logger.debug("Sending welcome email to %s via EmailJS template %s", to_email, settings.EMAILJS_TEMPLATE_ID)

    try:
        async with httpx.AsyncClient(timeout=10.0) as client:
            response = await client.post(EMAILJS_SEND_URL, json=payload)
            response.raise_for_status()
            logger.info("Welcome email sent to %s", to_email)
    except httpx.HTTPStatusError as e:
        logger.warning(
            "Failed to send welcome email to %s. Status code: %s, response: %s",
            to_email, e.response.status_code, e.response.text,
        )
    except httpx.HTTPError as e:
        logger.warning("Failed to send welcome email to %s: %s", to_email, e)
