"""QR encoder - renders a payload string into a PNG data URI."""

from __future__ import annotations

import base64
import io

import qrcode
from qrcode import constants

from config import settings as app_settings
from domain.errors import EncodingError

_ERROR_CORRECTION = {
    "L": constants.ERROR_CORRECT_L,
    "M": constants.ERROR_CORRECT_M,
    "Q": constants.ERROR_CORRECT_Q,
    "H": constants.ERROR_CORRECT_H,
}


class QrEncoder:
    """Deterministic string -> image data URI encoder."""

    def __init__(self, box_size: int = 10, border: int = 4, error_correction: str = "M"):
        if error_correction.upper() not in _ERROR_CORRECTION:
            raise ValueError(f"Unknown QR error correction level: {error_correction}")
        self.box_size = box_size
        self.border = border
        self.error_correction = _ERROR_CORRECTION[error_correction.upper()]

    def _make_png(self, data: str) -> bytes:
        qr = qrcode.QRCode(
            version=None,
            error_correction=self.error_correction,
            box_size=self.box_size,
            border=self.border,
        )
        qr.add_data(data)
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")
        buf = io.BytesIO()
        img.save(buf, format="PNG")
        return buf.getvalue()

    def encode(self, payload: str) -> str:
        if not payload:
            raise EncodingError("Cannot encode an empty QR payload")
        try:
            png = self._make_png(payload)
        except Exception as e:
            raise EncodingError(f"QR encoding failed: {e}") from e
        return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def get_qr_encoder() -> QrEncoder:
    """Dependency returning the configured encoder"""
    return QrEncoder(
        box_size=app_settings.qr_box_size,
        border=app_settings.qr_border,
        error_correction=app_settings.qr_error_correction,
    )
