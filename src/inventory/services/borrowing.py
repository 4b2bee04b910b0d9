"""Borrow and return services used by the scan-to-borrow flow."""

import logging

from .. import notifications
from ..models import InventoryUnit, PropertyStatus
from . import state
from .grouping import resolve_family
from .units import as_aware, save_unit, stamp

logger = logging.getLogger(__name__)


def borrow_unit(
    unit: InventoryUnit,
    borrower_name: str,
    return_due_at=None,
    performed_by=None,
) -> InventoryUnit:
    """Borrow an Available unit. Returns the saved unit.

    Raises ValidationError when the borrower name is blank or the unit is
    not Available, ConflictError when the unit changed concurrently.
    """
    expected_version = unit.version
    state.borrow(unit, borrower_name, as_aware(return_due_at))
    stamp(unit, performed_by)
    save_unit(unit, expected_version)
    notifications.property_updated(unit, "borrowed")
    logger.info(
        "Unit %s borrowed by %s", unit.property_code, unit.borrower_name
    )
    return unit


def return_unit(unit: InventoryUnit, performed_by=None) -> InventoryUnit:
    """Return a borrowed unit, clearing all borrowing fields."""
    expected_version = unit.version
    borrower = unit.borrower_name
    state.give_back(unit)
    stamp(unit, performed_by)
    save_unit(unit, expected_version)
    notifications.property_updated(unit, "returned")
    logger.info("Unit %s returned by %s", unit.property_code, borrower)
    return unit


def first_available_unit(unit: InventoryUnit):
    """Return the unit itself if Available, else the first Available
    unit of its family, or None when the whole family is out."""
    if unit.status == PropertyStatus.AVAILABLE:
        return unit
    for member in resolve_family(unit):
        if member.status == PropertyStatus.AVAILABLE:
            return member
    return None
