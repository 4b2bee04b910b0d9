"""Unit status state machine: borrow, return and edit-time rules."""

from django.core.exceptions import ValidationError
from django.utils import timezone

from ..models import InventoryUnit, PropertyStatus

# Fields an edit may change on a unit that is currently borrowed, as long
# as the edit keeps it InUse.
BORROWING_FIELDS = ("borrower_name", "borrowed_at", "return_due_at")


def validate_transition(unit: InventoryUnit, new_status: str) -> None:
    """Validate and raise if the status transition is not allowed.

    Raises ValidationError if the transition is invalid.
    """
    validate_status_change(unit.status, new_status)


def validate_status_change(old_status: str, new_status: str) -> None:
    if new_status == old_status:
        return  # No-op transition is always fine

    if new_status not in PropertyStatus.values:
        raise ValidationError(f"'{new_status}' is not a valid status.")

    allowed = InventoryUnit.VALID_TRANSITIONS.get(old_status, [])
    if new_status not in allowed:
        raise ValidationError(
            f"Cannot transition from '{PropertyStatus(old_status).label}' "
            f"to '{new_status}'. Allowed transitions: "
            f"{', '.join(allowed) or 'none'}."
        )


def borrow(unit: InventoryUnit, borrower_name: str, return_due_at=None):
    """Move an Available unit to InUse in memory. Caller saves."""
    borrower_name = (borrower_name or "").strip()
    if not borrower_name:
        raise ValidationError(
            {"borrower_name": "Borrower name is required to borrow."}
        )
    if unit.status != PropertyStatus.AVAILABLE:
        raise ValidationError(
            f"{unit.property_code} is {unit.get_status_display()} and "
            f"cannot be borrowed."
        )
    unit.status = PropertyStatus.IN_USE
    unit.borrower_name = borrower_name
    unit.borrowed_at = timezone.now()
    unit.return_due_at = return_due_at
    unit.overdue_notified = False
    return unit


def give_back(unit: InventoryUnit):
    """Move an InUse unit back to Available in memory. Caller saves."""
    if unit.status != PropertyStatus.IN_USE:
        raise ValidationError(
            f"{unit.property_code} is not currently borrowed."
        )
    unit.status = PropertyStatus.AVAILABLE
    unit.clear_borrowing()
    return unit


def validate_edit(original: InventoryUnit, changes: dict) -> None:
    """Reject edits to a borrowed unit that do not return it.

    A unit that is InUse with a borrower may only be edited by an edit
    that moves its status away from InUse. Updating the borrowing fields
    themselves (borrower, dates) while it stays InUse is allowed.
    """
    if not original.is_borrowed:
        return
    new_status = changes.get("status", original.status)
    if new_status != PropertyStatus.IN_USE:
        return
    for field, value in changes.items():
        if field in BORROWING_FIELDS or field == "status":
            continue
        if getattr(original, field) != value:
            raise ValidationError(
                f"This property is currently borrowed by "
                f"{original.borrower_name}. Please return it first "
                f"(change status from 'InUse') before editing other "
                f"fields."
            )


def apply_status_change(original_status: str, unit: InventoryUnit) -> str:
    """Reconcile borrowing fields after an edit; return the action name.

    ``unit`` already carries the edited values. Returns one of
    ``returned``, ``borrowed``, ``borrowing_updated`` or ``updated``.
    """
    if original_status == PropertyStatus.IN_USE:
        if unit.status != PropertyStatus.IN_USE:
            validate_status_change(original_status, unit.status)
            unit.clear_borrowing()
            return "returned"
        if not unit.borrowed_at and unit.borrower_name:
            unit.borrowed_at = timezone.now()
        return "borrowing_updated" if unit.borrower_name else "updated"

    # A borrower name given to a unit that was not InUse borrows it.
    if unit.status != PropertyStatus.IN_USE and (
        unit.borrower_name or ""
    ).strip():
        unit.status = PropertyStatus.IN_USE

    if unit.status == PropertyStatus.IN_USE:
        validate_status_change(original_status, unit.status)
        if not (unit.borrower_name or "").strip():
            raise ValidationError(
                {
                    "borrower_name": "Borrower name is required when "
                    "status is InUse."
                }
            )
        if not unit.borrowed_at:
            unit.borrowed_at = timezone.now()
        unit.overdue_notified = False
        return "borrowed"

    validate_status_change(original_status, unit.status)
    return "updated"
