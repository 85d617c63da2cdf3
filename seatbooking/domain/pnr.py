# seatbooking/domain/pnr.py

import base64
import secrets
import time


def generate_pnr() -> str:
    """
    Compact booking reference: the low 24 bits of the current time in
    milliseconds (hex) followed by 40 random bits (base32), e.g. 9F3A1C-K7QX2M4D.

    Uniqueness is enforced by the store, not assumed here.
    """
    ts_hex = f"{int(time.time() * 1000) & 0xFFFFFF:06X}"
    rand = base64.b32encode(secrets.token_bytes(5)).decode("ascii")
    return f"{ts_hex}-{rand}"
