"""Account email composition, dispatched through Celery."""

import logging

from django.conf import settings
from django.utils.html import linebreaks

logger = logging.getLogger(__name__)


def send_account_email(
    subject: str,
    body: str,
    recipient: str | list[str],
) -> bool:
    """Queue a plain-text email with an HTML alternative.

    Returns False when the message could not be queued; callers treat
    email as best-effort and carry on.
    """
    recipient_list = [recipient] if isinstance(recipient, str) else recipient
    greeting = f"{settings.SITE_NAME}\n\n{body}"

    from accounts.tasks import send_email_task

    try:
        send_email_task.delay(
            subject=subject,
            text_body=greeting,
            html_body=linebreaks(greeting, autoescape=True),
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=recipient_list,
        )
    except Exception:
        logger.exception("Failed to queue email '%s'", subject)
        return False
    return True


def send_otp_email(email: str, code: str, full_name: str) -> bool:
    minutes = getattr(settings, "OTP_EXPIRY_MINUTES", 10)
    return send_account_email(
        "Your verification code",
        f"Hello {full_name or email},\n\n"
        f"Your verification code is {code}. "
        f"It expires in {minutes} minutes.",
        email,
    )


def send_temporary_password_email(
    email: str, full_name: str, password: str
) -> bool:
    return send_account_email(
        "Your account credentials",
        f"Hello {full_name or email},\n\n"
        f"Your temporary password is {password}. "
        f"Please change it after signing in.",
        email,
    )


def send_rejection_email(email: str, full_name: str, reason: str) -> bool:
    body = (
        f"Hello {full_name or email},\n\n"
        "Your account request was declined."
    )
    if reason:
        body += f"\n\nReason: {reason}"
    return send_account_email("Your account request", body, email)
