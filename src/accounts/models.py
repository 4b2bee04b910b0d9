"""User, OTP verification and account request models."""

import datetime

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


class CustomUser(AbstractUser):
    """Extended user with display name, user type and required email."""

    USER_TYPE_CHOICES = [
        ("admin", "Admin"),
        ("mobile", "Mobile User"),
    ]

    display_name = models.CharField(
        max_length=255,
        blank=True,
        help_text="Human-readable name shown in borrowing records",
    )
    email = models.EmailField("email address", blank=False, unique=True)
    user_type = models.CharField(
        max_length=10, choices=USER_TYPE_CHOICES, default="admin"
    )
    is_approved = models.BooleanField(default=True)
    requires_password_change = models.BooleanField(
        default=False,
        help_text="Set when the user logs in with a temporary password",
    )
    profile_picture = models.CharField(max_length=500, blank=True)

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"

    @property
    def is_admin(self):
        return self.is_superuser or self.user_type == "admin"

    def get_display_name(self):
        """Return display_name if set, otherwise full name or username."""
        if self.display_name:
            return self.display_name
        full = self.get_full_name()
        return full if full else self.username

    def __str__(self):
        return self.get_display_name()


class OtpVerification(models.Model):
    """Pending self-registration awaiting its emailed one-time code."""

    email = models.EmailField()
    code = models.CharField(max_length=6)
    full_name = models.CharField(max_length=255, blank=True)
    password_hash = models.CharField(max_length=128)
    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField()
    is_used = models.BooleanField(default=False)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["email", "code"], name="idx_otp_email_code"),
        ]

    def __str__(self):
        return f"OTP for {self.email}"

    def save(self, *args, **kwargs):
        self.email = (self.email or "").strip().lower()
        if not self.expires_at:
            minutes = getattr(settings, "OTP_EXPIRY_MINUTES", 10)
            self.expires_at = self.created_at + datetime.timedelta(
                minutes=minutes
            )
        super().save(*args, **kwargs)

    @property
    def is_expired(self):
        return self.expires_at <= timezone.now()


class AccountRequest(models.Model):
    """Request from a prospective mobile user, reviewed by an admin."""

    STATUS_CHOICES = [
        ("pending", "Pending"),
        ("approved", "Approved"),
        ("rejected", "Rejected"),
    ]

    email = models.EmailField()
    full_name = models.CharField(max_length=255)
    position = models.CharField(max_length=255, blank=True)
    status = models.CharField(
        max_length=10, choices=STATUS_CHOICES, default="pending"
    )
    requested_at = models.DateTimeField(default=timezone.now)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="reviewed_account_requests",
    )
    rejection_reason = models.TextField(blank=True)

    class Meta:
        ordering = ["-requested_at"]

    def __str__(self):
        return f"{self.full_name} <{self.email}> ({self.status})"
