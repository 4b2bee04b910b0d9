"""Property code and tag number allocation.

Property codes look like ``PROP-007`` for a single unit or
``PROP-007-003`` for one unit of a family; tag numbers are an arbitrary
prefix followed by a numeric ``-003`` suffix. Both are numbered by scanning
the current units and taking ``max + 1``, formatted to three digits and
widening past 999.
"""

import logging

from django.conf import settings

from ..exceptions import ConflictError
from ..models import InventoryUnit, PropertyStatus

logger = logging.getLogger(__name__)

# Descriptive fields copied identically to every unit of a batch.
SHARED_FIELDS = (
    "name",
    "category",
    "description",
    "location",
    "date_received",
    "image_url",
    "remarks",
    "updated_by",
)


def code_prefix() -> str:
    return getattr(settings, "PROPERTY_CODE_PREFIX", "PROP")


def format_number(number: int) -> str:
    """Zero-pad to three digits; larger numbers simply grow wider."""
    return f"{number:03d}"


def parse_numeric_suffix(value, position: int = -1):
    """Parse the ``-``-separated token at ``position`` as an integer.

    Returns None when the value is blank, has no token at that position,
    or the token is not a plain non-negative number. Malformed values are
    logged and skipped, never raised.
    """
    if not value or not value.strip():
        return None
    parts = value.strip().split("-")
    try:
        token = parts[position]
    except IndexError:
        logger.warning("Skipping malformed identifier %r", value)
        return None
    if not token.isdecimal():
        logger.warning("Skipping malformed identifier %r", value)
        return None
    return int(token)


def strip_numeric_suffix(value: str) -> str:
    """Drop a trailing ``-###`` token, if the final token is numeric.

    Only the final token is considered, so ``TAG-001-EXTRA-002`` becomes
    ``TAG-001-EXTRA`` and ``TAG-001-EXTRA`` is returned unchanged.
    """
    parts = value.strip().split("-")
    if len(parts) > 1 and parts[-1].isdecimal():
        return "-".join(parts[:-1])
    return value.strip()


def base_code(property_code: str) -> str:
    """Return the family base of a code: ``PROP-007-003`` -> ``PROP-007``."""
    parts = property_code.split("-")
    if len(parts) >= 2:
        return f"{parts[0]}-{parts[1]}"
    return property_code


def next_base_property_code(units=None) -> str:
    """Return the next unused base code, e.g. ``PROP-012``.

    Scans every code starting with the configured prefix and takes the
    number right after the prefix. Defaults to ``PROP-001`` when nothing
    parses or the scan fails.
    """
    prefix = code_prefix()
    try:
        if units is None:
            codes = InventoryUnit.objects.filter(
                property_code__startswith=f"{prefix}-"
            ).values_list("property_code", flat=True)
        else:
            codes = [u.property_code for u in units]

        numbers = []
        for code in codes:
            if not code or not code.startswith(f"{prefix}-"):
                continue
            number = parse_numeric_suffix(code, position=1)
            if number is not None:
                numbers.append(number)
        next_number = max(numbers) + 1 if numbers else 1
    except Exception:
        logger.exception("Error scanning property codes; starting at 1")
        next_number = 1
    return f"{prefix}-{format_number(next_number)}"


def next_tag_suffix(family) -> int:
    """Return ``max + 1`` over the numeric tag suffixes of a family."""
    numbers = [
        n
        for n in (parse_numeric_suffix(u.tag_number) for u in family)
        if n is not None
    ]
    return max(numbers) + 1 if numbers else 1


def next_code_suffix(family) -> int:
    """Return ``max + 1`` over the per-unit code suffixes of a family.

    Only codes carrying a per-unit suffix (three or more segments) count;
    a bare base code such as ``PROP-007`` is unit 0 of its family.
    """
    numbers = []
    for unit in family:
        code = unit.property_code or ""
        if len(code.split("-")) < 3:
            continue
        number = parse_numeric_suffix(code)
        if number is not None:
            numbers.append(number)
    return max(numbers) + 1 if numbers else 1


def tag_prefix(serial_number: str, base: str) -> str:
    """Return the prefix new tag numbers are built from."""
    if serial_number and serial_number.strip():
        return strip_numeric_suffix(serial_number)
    return f"{base}-TAG"


def _number_batch(base, prefix, quantity, next_code, next_tag, suffix_codes):
    codes, tags = [], []
    for i in range(quantity):
        if suffix_codes:
            codes.append(f"{base}-{format_number(next_code + i)}")
        else:
            codes.append(base)
        tags.append(f"{prefix}-{format_number(next_tag + i)}")
    return codes, tags


def _codes_collide(codes) -> bool:
    if len(set(codes)) != len(codes):
        return True
    return any(InventoryUnit.objects.code_exists(code) for code in codes)


def _tags_collide(tags) -> bool:
    if len(set(tags)) != len(tags):
        return True
    return any(InventoryUnit.objects.tag_exists(tag) for tag in tags)


def store_next_code_suffix(base: str) -> int:
    """``max + 1`` over the code suffixes under ``base`` in the store."""
    family = InventoryUnit.objects.filter(
        property_code__startswith=f"{base}-"
    ).only("property_code")
    return next_code_suffix(family)


def store_next_tag_suffix(prefix: str) -> int:
    """``max + 1`` over every stored ``{prefix}-###`` tag number."""
    numbers = []
    tags = InventoryUnit.objects.filter(
        tag_number__startswith=f"{prefix}-"
    ).values_list("tag_number", flat=True)
    for tag in tags:
        if strip_numeric_suffix(tag) != prefix:
            continue
        number = parse_numeric_suffix(tag)
        if number is not None:
            numbers.append(number)
    return max(numbers) + 1 if numbers else 1


def allocate_batch(descriptor: dict, quantity: int, family=None) -> list:
    """Build ``quantity`` unsaved units with fresh codes and tag numbers.

    ``descriptor`` holds the shared descriptive fields plus optional
    ``status`` and ``serial_number``. When ``family`` is non-empty the new
    units join it: its base code is reused and numbering continues after
    its highest code and tag suffixes.

    On a collision the numbers are drawn again once: a colliding code
    re-mints the base (or, inside a family, continues past the highest
    stored suffix), and tags continue past the highest stored tag with
    the same prefix. Raises ConflictError when that still collides.
    """
    if quantity < 1:
        raise ValueError("Quantity must be at least 1.")
    family = list(family or [])
    serial_number = (descriptor.get("serial_number") or "").strip()

    if family:
        base = base_code(family[0].property_code)
        # Growing a family always suffixes, even a single new unit, so it
        # never reuses the bare base code already held by unit 0.
        suffix_codes = True
        next_code = next_code_suffix(family)
    else:
        base = next_base_property_code()
        suffix_codes = quantity > 1
        next_code = 1
    next_tag = next_tag_suffix(family)
    prefix = tag_prefix(serial_number, base)

    codes, tags = _number_batch(
        base, prefix, quantity, next_code, next_tag, suffix_codes
    )
    codes_taken = _codes_collide(codes)
    if codes_taken or _tags_collide(tags):
        stale = base
        if codes_taken and family:
            next_code = max(next_code, store_next_code_suffix(base))
        elif codes_taken:
            base = next_base_property_code()
            if not serial_number:
                prefix = tag_prefix("", base)
        next_tag = max(next_tag, store_next_tag_suffix(prefix))
        logger.warning(
            "Property code collision on %s; retrying as %s with tags from "
            "%s-%s",
            stale,
            base,
            prefix,
            format_number(next_tag),
        )
        codes, tags = _number_batch(
            base, prefix, quantity, next_code, next_tag, suffix_codes
        )
        if _codes_collide(codes) or _tags_collide(tags):
            raise ConflictError(
                f"Could not allocate unique property codes for {base}. "
                f"Please retry."
            )

    status = descriptor.get("status") or PropertyStatus.AVAILABLE
    units = []
    for code, tag in zip(codes, tags):
        unit = InventoryUnit(
            property_code=code,
            tag_number=tag,
            status=status,
            quantity=1,
        )
        for field in SHARED_FIELDS:
            if field in descriptor:
                setattr(unit, field, descriptor[field])
        units.append(unit)
    return units
