"""Celery tasks for the accounts app."""

import logging

from celery import shared_task

from django.core.mail import EmailMultiAlternatives

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True,
)
def send_email_task(
    self,
    subject: str,
    text_body: str,
    html_body: str,
    from_email: str,
    recipient_list: list[str],
) -> None:
    """Send an account email, retrying with backoff on SMTP errors."""
    msg = EmailMultiAlternatives(
        subject=subject,
        body=text_body,
        from_email=from_email,
        to=recipient_list,
    )
    if html_body:
        msg.attach_alternative(html_body, "text/html")
    msg.send()
    logger.info("Email sent: '%s' to %s", subject, recipient_list)


@shared_task
def purge_expired_otps() -> int:
    """Periodic task: drop used or expired OTP records."""
    from accounts.services import purge_expired_otps as purge

    count = purge()
    if count:
        logger.info("Purged %d OTP record(s)", count)
    return count
