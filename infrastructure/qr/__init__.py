"""QR rendering"""
from .encoder import QrEncoder, get_qr_encoder

__all__ = ["QrEncoder", "get_qr_encoder"]
