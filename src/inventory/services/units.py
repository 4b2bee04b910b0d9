"""Inventory unit lifecycle: create, grow, edit and delete.

Every write re-reads current state; nothing is cached between calls.
Updates are conditional on the unit's ``version`` so two admins editing
the same unit cannot silently overwrite each other.
"""

import datetime
import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.db import transaction as db_transaction
from django.db.models import F
from django.utils import timezone

from .. import notifications
from ..exceptions import ConflictError
from ..models import InventoryUnit, PropertyStatus
from .codes import SHARED_FIELDS, allocate_batch
from .grouping import BY_IMAGE_URL, resolve_family
from .state import apply_status_change, validate_edit

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = {
    "name": "Property Name is required.",
    "category": "Category is required.",
    "location": "Location is required.",
}

EDITABLE_FIELDS = (
    "property_code",
    "tag_number",
    "name",
    "category",
    "description",
    "location",
    "status",
    "date_received",
    "image_url",
    "remarks",
    "borrower_name",
    "borrowed_at",
    "return_due_at",
)

DATETIME_FIELDS = ("date_received", "borrowed_at", "return_due_at")


def as_aware(value):
    """Return an aware datetime for a date, naive or aware datetime."""
    if value is None:
        return None
    if not isinstance(value, datetime.datetime):
        value = datetime.datetime.combine(value, datetime.time.min)
    if timezone.is_naive(value):
        value = timezone.make_aware(value)
    return value


def actor_name(performed_by) -> str:
    if performed_by is None:
        return "Unknown"
    if isinstance(performed_by, str):
        return performed_by
    return performed_by.email or performed_by.get_username()


def stamp(unit, performed_by):
    unit.last_updated = timezone.now()
    unit.updated_by = actor_name(performed_by)


def _clean_value(field, value):
    if field in DATETIME_FIELDS:
        return as_aware(value)
    if isinstance(value, str):
        return value.strip()
    if value is None and field not in ("tag_number",):
        return ""
    return value


def get_unit(unit_id) -> InventoryUnit:
    """Direct lookup; raises InventoryUnit.DoesNotExist."""
    return InventoryUnit.objects.get(pk=unit_id)


def get_unit_by_code(property_code: str) -> InventoryUnit:
    """Look up a unit by property code, tolerating scanner case changes."""
    code = (property_code or "").strip()
    try:
        return InventoryUnit.objects.get(property_code=code)
    except InventoryUnit.DoesNotExist:
        hit = InventoryUnit.objects.filter(property_code__iexact=code).first()
        if hit is None:
            raise
        return hit


def save_unit(unit: InventoryUnit, expected_version=None) -> InventoryUnit:
    """Persist an existing unit if nobody else changed it meanwhile.

    Raises ConflictError when the stored version no longer matches
    ``expected_version`` (default: the version the unit was loaded with).
    """
    if expected_version is None:
        expected_version = unit.version
    unit.full_clean(exclude=["version"])
    values = {
        f.attname: getattr(unit, f.attname)
        for f in unit._meta.concrete_fields
        if not f.primary_key and f.attname != "version"
    }
    try:
        updated = InventoryUnit.objects.filter(
            pk=unit.pk, version=expected_version
        ).update(version=F("version") + 1, **values)
    except IntegrityError as exc:
        raise ConflictError(
            f"{unit.property_code} collides with an existing unit."
        ) from exc
    if not updated:
        raise ConflictError(
            f"{unit.property_code} was changed by someone else. "
            f"Reload and try again."
        )
    unit.version = expected_version + 1
    return unit


def _persist_new(units) -> list:
    try:
        with db_transaction.atomic():
            for unit in units:
                # Unique codes are enforced by the store.
                unit.full_clean(validate_unique=False)
                unit.save()
    except IntegrityError as exc:
        raise ConflictError(
            "Another unit took one of the allocated codes. Please retry."
        ) from exc
    for unit in units:
        notifications.property_created(unit)
    return units


def create_property(data: dict, quantity: int = 1, performed_by=None):
    """Create ``quantity`` units from one submitted property.

    Units joining an existing image-URL family continue its numbering.
    Returns the list of saved units.
    """
    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError({"quantity": "Quantity must be a number."})
    if quantity < 1:
        raise ValidationError({"quantity": "Quantity must be at least 1."})

    descriptor = {
        field: _clean_value(field, data.get(field))
        for field in SHARED_FIELDS
        if field != "updated_by"
    }
    errors = {
        field: message
        for field, message in REQUIRED_FIELDS.items()
        if not descriptor.get(field)
    }
    if errors:
        raise ValidationError(errors)
    descriptor["status"] = data.get("status") or PropertyStatus.AVAILABLE
    if descriptor["status"] not in PropertyStatus.values:
        raise ValidationError(
            {"status": f"'{descriptor['status']}' is not a valid status."}
        )
    if descriptor["status"] == PropertyStatus.IN_USE:
        raise ValidationError(
            {"status": "New property must be borrowed after creation."}
        )
    descriptor["serial_number"] = (data.get("serial_number") or "").strip()
    descriptor["updated_by"] = actor_name(performed_by)

    family = []
    if descriptor["image_url"]:
        family = resolve_family(descriptor["image_url"], by=BY_IMAGE_URL)

    units = allocate_batch(descriptor, quantity, family)
    now = timezone.now()
    for unit in units:
        unit.last_updated = now
    _persist_new(units)
    logger.info(
        "Created %d unit(s) %s by %s",
        len(units),
        ", ".join(u.property_code for u in units),
        descriptor["updated_by"],
    )
    return units


def expand_family(unit: InventoryUnit, new_total: int, performed_by=None):
    """Grow the unit's family to ``new_total`` units.

    New units start Available and copy the unit's descriptive fields.
    A total at or below the current family size changes nothing: units
    are only ever removed by an explicit delete.
    """
    family = resolve_family(unit) or [unit]
    if new_total is None or new_total <= len(family):
        return []

    descriptor = {field: getattr(unit, field) for field in SHARED_FIELDS}
    descriptor["updated_by"] = actor_name(performed_by)
    descriptor["serial_number"] = unit.tag_number or ""
    descriptor["status"] = PropertyStatus.AVAILABLE

    units = allocate_batch(descriptor, new_total - len(family), family)
    now = timezone.now()
    for new_unit in units:
        new_unit.last_updated = now
    _persist_new(units)
    logger.info(
        "Expanded family of %s from %d to %d units",
        unit.property_code,
        len(family),
        new_total,
    )
    return units


def update_unit(
    unit_id, changes: dict, performed_by=None, expected_version=None
):
    """Apply an admin edit to one unit.

    ``changes`` may include ``quantity``: a value above the family size
    appends new units. Returns ``(unit, action, new_units)`` where action
    is ``updated``, ``returned``, ``borrowed`` or ``borrowing_updated``.
    """
    unit = get_unit(unit_id)
    changes = dict(changes)
    quantity = changes.pop("quantity", None)
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Cannot edit field(s): {', '.join(sorted(unknown))}."
        )
    if quantity is not None:
        try:
            quantity = int(quantity)
        except (TypeError, ValueError):
            raise ValidationError({"quantity": "Quantity must be a number."})
        if quantity < 1:
            raise ValidationError({"quantity": "Quantity must be at least 1."})
    changes = {f: _clean_value(f, v) for f, v in changes.items()}
    if "tag_number" in changes and not changes["tag_number"]:
        changes["tag_number"] = None

    validate_edit(unit, changes)

    if expected_version is None:
        expected_version = unit.version
    original_status = unit.status
    for field, value in changes.items():
        setattr(unit, field, value)
    action = apply_status_change(original_status, unit)
    unit.quantity = 1
    stamp(unit, performed_by)

    # The edit and the family growth land together or not at all.
    with db_transaction.atomic():
        save_unit(unit, expected_version)
        new_units = []
        if quantity is not None:
            new_units = expand_family(unit, quantity, performed_by)

    notifications.property_updated(unit, action)
    logger.info(
        "Unit %s %s by %s", unit.property_code, action, unit.updated_by
    )
    return unit, action, new_units


def delete_unit(unit_id) -> str:
    """Delete one unit; returns its property code."""
    unit = get_unit(unit_id)
    property_code = unit.property_code
    unit.delete()
    notifications.property_deleted(property_code)
    logger.info("Deleted unit %s", property_code)
    return property_code


def delete_units(unit_ids) -> int:
    """Delete several units at once; returns how many were removed."""
    qs = InventoryUnit.objects.filter(pk__in=list(unit_ids))
    codes = list(qs.values_list("property_code", flat=True))
    with db_transaction.atomic():
        qs.delete()
    for code in codes:
        notifications.property_deleted(code)
    logger.info("Bulk deleted %d unit(s)", len(codes))
    return len(codes)
