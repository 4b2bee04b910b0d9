"""Account services: OTP self-registration, account requests, passwords.

Emails go out through Celery and are best-effort: a failed send is
logged and reported back to the caller, never raised.
"""

import logging
import re
import secrets

from django.contrib.auth import get_user_model
from django.contrib.auth.hashers import make_password
from django.core.exceptions import ValidationError
from django.db import transaction as db_transaction
from django.db.models import Q
from django.utils import timezone

from inventory import notifications

from .email import (
    send_otp_email,
    send_rejection_email,
    send_temporary_password_email,
)
from .models import AccountRequest, OtpVerification

logger = logging.getLogger(__name__)

User = get_user_model()

# No 0/O, 1/l/I: temporary passwords are read off an email and typed.
TEMPORARY_PASSWORD_CHARS = (
    "ABCDEFGHJKLMNPQRSTUVWXYZabcdefghjkmnpqrstuvwxyz23456789"
)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def user_exists(email: str) -> bool:
    return User.objects.filter(email__iexact=normalize_email(email)).exists()


def generate_username(email: str) -> str:
    """Generate username from email prefix with suffix."""
    base = email.split("@")[0].lower()
    base = re.sub(r"[^a-z0-9_]", "", base) or "user"
    username = base
    counter = 2
    while User.objects.filter(username=username).exists():
        username = f"{base}{counter}"
        counter += 1
    return username


def generate_otp_code() -> str:
    return f"{secrets.randbelow(1_000_000):06d}"


def generate_temporary_password(length: int = 8) -> str:
    return "".join(
        secrets.choice(TEMPORARY_PASSWORD_CHARS) for _ in range(length)
    )


# ------------------------------------------------------------------
# OTP self-registration
# ------------------------------------------------------------------


def request_registration_otp(email: str, password: str, full_name: str):
    """Start a self-registration by emailing a 6-digit code.

    Returns ``(otp, email_queued)``. Raises ValidationError when an
    account already exists for the email.
    """
    email = normalize_email(email)
    if not email:
        raise ValidationError({"email": "Email is required."})
    if not password:
        raise ValidationError({"password": "Password is required."})
    if user_exists(email):
        raise ValidationError(
            {"email": "An account with this email already exists."}
        )

    otp = OtpVerification.objects.create(
        email=email,
        code=generate_otp_code(),
        full_name=(full_name or "").strip(),
        password_hash=make_password(password),
    )
    logger.info("Created OTP for %s, expires %s", email, otp.expires_at)

    email_queued = send_otp_email(email, otp.code, otp.full_name)
    if not email_queued:
        logger.warning("OTP email to %s could not be queued", email)
    return otp, email_queued


def verify_otp_and_register(email: str, code: str):
    """Exchange a valid code for a new, approved admin account.

    Raises ValidationError for an unknown, used or expired code, or when
    the account was created by another path in the meantime.
    """
    email = normalize_email(email)
    code = (code or "").strip()

    with db_transaction.atomic():
        otp = (
            OtpVerification.objects.select_for_update()
            .filter(
                email=email,
                code=code,
                is_used=False,
                expires_at__gt=timezone.now(),
            )
            .first()
        )
        if otp is None:
            logger.warning("OTP verification failed for %s", email)
            raise ValidationError(
                {"code": "Invalid or expired verification code."}
            )

        otp.is_used = True
        otp.save(update_fields=["is_used"])
        account_taken = user_exists(email)
        if not account_taken:
            user = User(
                username=generate_username(email),
                email=email,
                display_name=otp.full_name,
                user_type="admin",
                is_approved=True,
            )
            user.password = otp.password_hash
            user.save()

    if account_taken:
        logger.warning("OTP verified for existing account %s", email)
        raise ValidationError(
            {"email": "An account with this email already exists."}
        )
    logger.info("Registered admin %s via OTP", email)
    return user


def purge_expired_otps() -> int:
    deleted, _ = OtpVerification.objects.filter(
        Q(is_used=True) | Q(expires_at__lte=timezone.now())
    ).delete()
    return deleted


# ------------------------------------------------------------------
# Account requests
# ------------------------------------------------------------------


def submit_account_request(email: str, full_name: str, position: str = ""):
    """Record a request for a mobile account and alert admins."""
    email = normalize_email(email)
    full_name = (full_name or "").strip()
    errors = {}
    if not email:
        errors["email"] = "Email is required."
    if not full_name:
        errors["full_name"] = "Full name is required."
    if errors:
        raise ValidationError(errors)
    if user_exists(email):
        raise ValidationError(
            {"email": "An account with this email already exists."}
        )
    if AccountRequest.objects.filter(
        email__iexact=email, status="pending"
    ).exists():
        raise ValidationError(
            {
                "email": "There is already a pending account request "
                "for this email."
            }
        )

    request = AccountRequest.objects.create(
        email=email,
        full_name=full_name,
        position=(position or "").strip(),
    )
    notifications.broadcast(
        notifications.ACCOUNT_REQUEST_CREATED,
        {
            "request_id": request.pk,
            "full_name": request.full_name,
            "email": request.email,
            "position": request.position,
            "requested_at": request.requested_at.isoformat(),
        },
    )
    logger.info("Account request submitted for %s", email)
    return request


def _ensure_pending(request: AccountRequest):
    if request.status != "pending":
        raise ValidationError(
            f"This request has already been {request.status}."
        )


def approve_account_request(request: AccountRequest, reviewer):
    """Create a mobile user with a temporary password.

    Returns ``(user, temporary_password)``.
    """
    _ensure_pending(request)
    if user_exists(request.email):
        raise ValidationError(
            {"email": "An account with this email already exists."}
        )

    temporary_password = generate_temporary_password()
    with db_transaction.atomic():
        user = User(
            username=generate_username(request.email),
            email=request.email,
            display_name=request.full_name,
            user_type="mobile",
            is_approved=True,
        )
        user.set_password(temporary_password)
        user.save()

        request.status = "approved"
        request.reviewed_at = timezone.now()
        request.reviewed_by = reviewer
        request.save(update_fields=["status", "reviewed_at", "reviewed_by"])

    send_temporary_password_email(
        request.email, request.full_name, temporary_password
    )
    logger.info("Account request %s approved by %s", request.pk, reviewer)
    return user, temporary_password


def reject_account_request(
    request: AccountRequest, reviewer, reason: str = ""
):
    _ensure_pending(request)
    request.status = "rejected"
    request.reviewed_at = timezone.now()
    request.reviewed_by = reviewer
    request.rejection_reason = (reason or "").strip()
    request.save(
        update_fields=[
            "status",
            "reviewed_at",
            "reviewed_by",
            "rejection_reason",
        ]
    )
    send_rejection_email(
        request.email, request.full_name, request.rejection_reason
    )
    logger.info("Account request %s rejected by %s", request.pk, reviewer)
    return request


def delete_account_request(request: AccountRequest) -> None:
    logger.info("Deleting account request %s", request.pk)
    request.delete()


def pending_account_request_count() -> int:
    return AccountRequest.objects.filter(status="pending").count()


# ------------------------------------------------------------------
# Passwords
# ------------------------------------------------------------------


def reset_password(email: str):
    """Issue a temporary password for a forgotten one.

    Returns the temporary password, or None for an unknown email so the
    caller can answer identically either way.
    """
    user = User.objects.filter(email__iexact=normalize_email(email)).first()
    if user is None:
        logger.info("Password reset requested for unknown email")
        return None
    temporary_password = generate_temporary_password()
    user.set_password(temporary_password)
    user.requires_password_change = True
    user.save(update_fields=["password", "requires_password_change"])
    send_temporary_password_email(
        user.email, user.get_display_name(), temporary_password
    )
    return temporary_password


def change_password(user, current_password: str, new_password: str):
    if not user.check_password(current_password):
        raise ValidationError(
            {"current_password": "Current password is incorrect."}
        )
    if not new_password:
        raise ValidationError({"new_password": "New password is required."})
    user.set_password(new_password)
    user.requires_password_change = False
    user.save(update_fields=["password", "requires_password_change"])
    return user
