"""
Email service using SendGrid for account emails.
"""

import os
import logging
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def get_bool_env(key: str, default: bool = True) -> bool:
    """
    Parse a boolean environment variable from a string value.

    .env files store all values as strings, so this function converts string
    values like "true", "True", "TRUE", "1", "yes" to True, and everything
    else (including "false", "False", "0", "no", empty string) to False.

    Args:
        key: Environment variable name
        default: Default value if the variable is not set

    Returns:
        bool: Parsed boolean value
    """
    value = os.getenv(key)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


# SendGrid Configuration
SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SENDGRID_FROM_EMAIL = os.getenv("SENDGRID_FROM_EMAIL", "noreply@devwars.tv")
FRONT_URL = os.getenv("FRONT_URL", "http://localhost:3000")


def is_enabled() -> bool:
    """Check if email sending is enabled (read on every call so tests can toggle it)."""
    return get_bool_env("ENABLE_EMAIL", default=True)


async def send_email(to_email: str, subject: str, body: str) -> bool:
    """
    Send a plain-text email via SendGrid.

    Email failures never break the calling request: they are logged and
    reported through the return value.

    Args:
        to_email: Recipient address
        subject: Subject line
        body: Plain-text body

    Returns:
        bool: True if the email was sent (or sending is disabled), False on failure
    """
    if not is_enabled():
        logger.info(f"Email sending is disabled. Email to {to_email} skipped.")
        return True

    # If SendGrid is not configured, log warning and return True (don't fail the request)
    if not SENDGRID_API_KEY:
        logger.warning("SENDGRID_API_KEY not configured. Email skipped.")
        return True

    try:
        message = Mail(
            from_email=Email(SENDGRID_FROM_EMAIL),
            to_emails=To(to_email),
            subject=subject,
            plain_text_content=Content("text/plain", body),
        )

        sg = SendGridAPIClient(SENDGRID_API_KEY)
        response = sg.send(message)

        if 200 <= response.status_code < 300:
            logger.info(f"Email '{subject}' sent successfully to {to_email}")
            return True
        logger.error(f"SendGrid returned status {response.status_code}: {response.body}")
        return False

    except Exception as e:
        logger.error(f"Failed to send email '{subject}': {str(e)}")
        return False


async def send_verification_email(to_email: str, username: str, token: str) -> bool:
    """Send the link that moves a PENDING account to USER."""
    url = f"{FRONT_URL}/auth/verify?token={token}"
    body = "\n".join(
        [
            f"Hi {username},",
            "",
            "Welcome to DevWars! Please confirm your email address by visiting:",
            url,
            "",
            "If you did not create this account you can ignore this email.",
        ]
    )
    return await send_email(to_email, "Verify your DevWars account", body)


async def send_password_reset_email(to_email: str, username: str, token: str) -> bool:
    """Send a password reset link."""
    url = f"{FRONT_URL}/reset-password?key={token}"
    body = "\n".join(
        [
            f"Hi {username},",
            "",
            "A password reset was requested for your account. Choose a new password here:",
            url,
            "",
            "If you did not request this you can ignore this email.",
        ]
    )
    return await send_email(to_email, "Reset your DevWars password", body)
