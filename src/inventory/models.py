"""Models for the property inventory."""

from django.core.exceptions import ValidationError
from django.db import models
from django.utils import timezone


class PropertyStatus(models.TextChoices):
    AVAILABLE = "Available", "Available"
    IN_USE = "InUse", "In Use"
    UNDER_MAINTENANCE = "UnderMaintenance", "Under Maintenance"
    DAMAGED = "Damaged", "Damaged"


class InventoryUnitManager(models.Manager):
    """Manager with the scan helpers used by the allocator."""

    def code_exists(self, property_code, exclude_pk=None):
        qs = self.filter(property_code=property_code)
        if exclude_pk:
            qs = qs.exclude(pk=exclude_pk)
        return qs.exists()

    def tag_exists(self, tag_number, exclude_pk=None):
        if not tag_number:
            return False
        qs = self.filter(tag_number=tag_number)
        if exclude_pk:
            qs = qs.exclude(pk=exclude_pk)
        return qs.exists()


class InventoryUnit(models.Model):
    """One individually tracked physical item.

    Units created together as a batch share their descriptive fields and
    an image URL; grouping them into one logical property happens at read
    time only (see ``inventory.services.grouping``).
    """

    # Valid status changes: from_status -> [to_statuses].
    # Entering InUse is a borrow; leaving it is a return. Both are
    # handled by ``inventory.services.state``.
    VALID_TRANSITIONS = {
        PropertyStatus.AVAILABLE: [
            PropertyStatus.IN_USE,
            PropertyStatus.UNDER_MAINTENANCE,
            PropertyStatus.DAMAGED,
        ],
        PropertyStatus.IN_USE: [
            PropertyStatus.AVAILABLE,
            PropertyStatus.UNDER_MAINTENANCE,
            PropertyStatus.DAMAGED,
        ],
        PropertyStatus.UNDER_MAINTENANCE: [
            PropertyStatus.AVAILABLE,
            PropertyStatus.DAMAGED,
        ],
        PropertyStatus.DAMAGED: [
            PropertyStatus.AVAILABLE,
            PropertyStatus.UNDER_MAINTENANCE,
        ],
    }

    property_code = models.CharField(max_length=50, unique=True)
    tag_number = models.CharField(
        max_length=100,
        unique=True,
        null=True,
        blank=True,
        help_text="Human-facing serial, unique per unit",
    )
    name = models.CharField(max_length=200)
    category = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    location = models.CharField(max_length=200)
    status = models.CharField(
        max_length=20,
        choices=PropertyStatus.choices,
        default=PropertyStatus.AVAILABLE,
    )
    quantity = models.PositiveIntegerField(default=1)
    date_received = models.DateTimeField(null=True, blank=True)
    image_url = models.CharField(
        max_length=500,
        blank=True,
        help_text="Units sharing an image URL are shown as one property",
    )
    remarks = models.TextField(blank=True)
    borrower_name = models.CharField(max_length=200, blank=True)
    borrowed_at = models.DateTimeField(null=True, blank=True)
    return_due_at = models.DateTimeField(null=True, blank=True)
    overdue_notified = models.BooleanField(default=False)
    updated_by = models.CharField(max_length=254, blank=True)
    last_updated = models.DateTimeField(default=timezone.now)
    version = models.PositiveIntegerField(default=1)

    objects = InventoryUnitManager()

    class Meta:
        ordering = ["pk"]
        indexes = [
            models.Index(fields=["status"], name="idx_unit_status"),
            models.Index(fields=["image_url"], name="idx_unit_image_url"),
            models.Index(
                fields=["return_due_at"], name="idx_unit_return_due_at"
            ),
        ]

    def __str__(self):
        if self.tag_number:
            return f"{self.name} ({self.property_code}, {self.tag_number})"
        return f"{self.name} ({self.property_code})"

    def clean(self):
        super().clean()
        if self.status == PropertyStatus.IN_USE and not (
            self.borrower_name or ""
        ).strip():
            raise ValidationError(
                {
                    "borrower_name": "Borrower name is required when "
                    "status is InUse."
                }
            )

    def can_transition_to(self, new_status):
        """Check if the status transition is valid."""
        return new_status in self.VALID_TRANSITIONS.get(self.status, [])

    def clear_borrowing(self):
        self.borrower_name = ""
        self.borrowed_at = None
        self.return_due_at = None
        self.overdue_notified = False

    @property
    def is_borrowed(self):
        return self.status == PropertyStatus.IN_USE and bool(
            (self.borrower_name or "").strip()
        )

    @property
    def is_overdue(self):
        return (
            self.is_borrowed
            and self.return_due_at is not None
            and self.return_due_at < timezone.now()
        )

    @property
    def tag_or_code(self):
        return self.tag_number or self.property_code
