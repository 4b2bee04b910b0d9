"""QR code generation for property labels.

The QR payload is the bare property code, which the mobile scanner
resolves back to a unit.
"""

import base64
from io import BytesIO

import qrcode

from ..models import InventoryUnit
from .units import get_unit_by_code


def generate_qr_png(data: str, box_size: int = 10, border: int = 4) -> bytes:
    """Return PNG bytes of a QR code encoding ``data``."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_Q,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    buffer = BytesIO()
    img = qr.make_image(fill_color="black", back_color="white")
    img.save(buffer, format="PNG")
    return buffer.getvalue()


def generate_qr_base64(data: str, box_size: int = 10) -> str:
    return base64.b64encode(generate_qr_png(data, box_size)).decode("ascii")


def qr_payload(unit: InventoryUnit) -> str:
    return unit.property_code


def resolve_scanned_code(payload: str) -> InventoryUnit:
    """Resolve scanned QR text to a unit; raises DoesNotExist."""
    return get_unit_by_code(payload)
