"""Read-time grouping of inventory units into logical properties.

A family is either every unit sharing an image URL (compared trimmed and
case-insensitively) or, for units without one, every unit whose code is
a base code or starts with ``<base>-``. Grouping never changes stored
rows: the representative returned here is a display object only.
"""

from dataclasses import dataclass, field
from datetime import datetime

from django.db.models import Q

from ..models import InventoryUnit, PropertyStatus
from .codes import base_code, strip_numeric_suffix

BY_IMAGE_URL = "image_url"
BY_PROPERTY_CODE = "property_code"

BREAKDOWN_KEYS = ("Total",) + tuple(s.value for s in PropertyStatus)


@dataclass
class GroupedProperty:
    """One logical property row built from a family of units."""

    id: int
    property_code: str
    tag_number: str | None
    name: str
    category: str
    description: str
    location: str
    status: str
    quantity: int
    image_url: str
    remarks: str
    date_received: datetime | None
    last_updated: datetime
    updated_by: str
    borrower_name: str = ""
    borrowed_at: datetime | None = None
    return_due_at: datetime | None = None
    breakdown: dict = field(default_factory=dict)
    units: list = field(default_factory=list)

    @property
    def is_grouped(self):
        return len(self.units) > 1


def normalize_grouping_key(value) -> str:
    return (value or "").strip().casefold()


def _all_units(units):
    return list(InventoryUnit.objects.all()) if units is None else units


def resolve_family(key, units=None, by=None) -> list:
    """Return the units belonging to the family identified by ``key``.

    ``key`` may be an InventoryUnit, in which case its image URL is used
    when present and the base of its property code otherwise, so
    ``PROP-001-002`` finds ``PROP-001`` and its siblings. For a plain string,
    ``by`` selects ``BY_IMAGE_URL`` or ``BY_PROPERTY_CODE``. ``units`` is
    the scan source; the whole table is read when omitted.
    """
    if isinstance(key, InventoryUnit):
        if normalize_grouping_key(key.image_url):
            by, key = BY_IMAGE_URL, key.image_url
        else:
            by, key = BY_PROPERTY_CODE, base_code(key.property_code or "")
    elif by is None:
        raise ValueError("Specify how to group a plain key.")

    if by == BY_IMAGE_URL:
        target = normalize_grouping_key(key)
        if not target:
            return []
        return [
            u
            for u in _all_units(units)
            if normalize_grouping_key(u.image_url) == target
        ]
    if by == BY_PROPERTY_CODE:
        target = (key or "").strip()
        if not target:
            return []
        return [
            u
            for u in _all_units(units)
            if u.property_code == target
            or u.property_code.startswith(f"{target}-")
        ]
    raise ValueError(f"Unknown grouping strategy '{by}'.")


def quantity_breakdown(family) -> dict:
    """Count units per status. An empty family yields all zeros."""
    breakdown = dict.fromkeys(BREAKDOWN_KEYS, 0)
    for unit in family:
        breakdown["Total"] += unit.quantity
        if unit.status in breakdown:
            breakdown[unit.status] += unit.quantity
    return breakdown


def fallback_breakdown(unit) -> dict:
    """Single-unit breakdown for when a family resolves to nothing."""
    breakdown = dict.fromkeys(BREAKDOWN_KEYS, 0)
    breakdown["Total"] = unit.quantity
    if unit.status in breakdown:
        breakdown[unit.status] = unit.quantity
    return breakdown


def breakdown_for(unit, units=None) -> dict:
    """Breakdown of a unit's family, falling back to the unit itself."""
    family = resolve_family(unit, units)
    if not family:
        return fallback_breakdown(unit)
    return quantity_breakdown(family)


def family_by_status(family) -> dict:
    grouped = {s.value: [] for s in PropertyStatus}
    for unit in family:
        grouped.setdefault(unit.status, []).append(unit)
    return grouped


def representative_view(family):
    """Collapse a family into one GroupedProperty, or None when empty.

    The first unit in scan order supplies the shared fields. Quantity is
    the family total; borrowing fields come from the first InUse unit.
    """
    family = list(family)
    if not family:
        return None
    first = family[0]
    breakdown = quantity_breakdown(family)
    borrowed = next(
        (u for u in family if u.status == PropertyStatus.IN_USE), None
    )
    if len(family) > 1:
        code = base_code(first.property_code)
        tag = first.tag_number
        if tag:
            tag = strip_numeric_suffix(tag)
    else:
        code, tag = first.property_code, first.tag_number
    return GroupedProperty(
        id=first.pk,
        property_code=code,
        tag_number=tag,
        name=first.name,
        category=first.category,
        description=first.description,
        location=first.location,
        status=first.status,
        quantity=breakdown["Total"],
        image_url=first.image_url,
        remarks=first.remarks,
        date_received=first.date_received,
        last_updated=max(u.last_updated for u in family),
        updated_by=first.updated_by,
        borrower_name=borrowed.borrower_name if borrowed else "",
        borrowed_at=borrowed.borrowed_at if borrowed else None,
        return_due_at=borrowed.return_due_at if borrowed else None,
        breakdown=breakdown,
        units=family,
    )


def filter_units(search=None, category=None, status=None):
    qs = InventoryUnit.objects.all()
    if category:
        qs = qs.filter(category__iexact=category.strip())
    if status:
        qs = qs.filter(status=status)
    if search and search.strip():
        term = search.strip()
        qs = qs.filter(
            Q(name__icontains=term)
            | Q(property_code__icontains=term)
            | Q(description__icontains=term)
            | Q(location__icontains=term)
        )
    return qs


def grouped_listing(search=None, category=None, status=None) -> list:
    """Return list rows: one per image-URL family, others individually.

    Filters apply to units before grouping, so a family's quantity
    reflects only its matching units. Rows are ordered most recently
    updated first.
    """
    units = list(filter_units(search, category, status))
    rows = []
    seen = set()
    for unit in units:
        key = normalize_grouping_key(unit.image_url)
        if not key:
            rows.append(representative_view([unit]))
            continue
        if key in seen:
            continue
        seen.add(key)
        rows.append(representative_view(resolve_family(unit, units)))
    rows.sort(key=lambda row: row.last_updated, reverse=True)
    return rows


def categories() -> list:
    names = {}
    for name in InventoryUnit.objects.values_list("category", flat=True):
        if name and name.strip():
            names.setdefault(name.strip().casefold(), name.strip())
    return sorted(names.values(), key=str.casefold)
