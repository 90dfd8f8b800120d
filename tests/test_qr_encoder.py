import base64

import pytest

from domain.errors import EncodingError
from infrastructure.qr import QrEncoder, get_qr_encoder

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def _png_bytes(data_uri: str) -> bytes:
    prefix = "data:image/png;base64,"
    assert data_uri.startswith(prefix)
    return base64.b64decode(data_uri[len(prefix):])


def test_encode_returns_png_data_uri():
    image = QrEncoder().encode('{"passNumber": "PASS-1714564800000-7"}')

    assert _png_bytes(image).startswith(PNG_SIGNATURE)


def test_encode_is_deterministic():
    encoder = QrEncoder()

    assert encoder.encode("PASS-1-1") == encoder.encode("PASS-1-1")


def test_box_size_changes_image():
    small = QrEncoder(box_size=2).encode("PASS-1-1")
    large = QrEncoder(box_size=12).encode("PASS-1-1")

    assert len(_png_bytes(small)) < len(_png_bytes(large))


def test_empty_payload_is_rejected():
    with pytest.raises(EncodingError):
        QrEncoder().encode("")


def test_unknown_error_correction_level():
    with pytest.raises(ValueError):
        QrEncoder(error_correction="Z")


def test_render_failure_becomes_encoding_error(monkeypatch):
    encoder = QrEncoder()

    def broken(data):
        raise RuntimeError("no backend")

    monkeypatch.setattr(encoder, "_make_png", broken)

    with pytest.raises(EncodingError, match="no backend"):
        encoder.encode("PASS-1-1")


def test_dependency_uses_settings(monkeypatch):
    from config import settings

    monkeypatch.setattr(settings, "qr_box_size", 3)
    monkeypatch.setattr(settings, "qr_error_correction", "h")

    encoder = get_qr_encoder()

    assert encoder.box_size == 3
    assert encoder.border == settings.qr_border
