"""Base64 encoding and strict decoding as used by the mail daemon helpers."""

from __future__ import annotations

import binascii

__all__ = ["Base64Error", "b64_ntop", "b64_pton"]

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789+/"
_VALUES = {ch: i for i, ch in enumerate(_ALPHABET)}
_PAD = "="
_WHITESPACE = frozenset(" \t\n\v\f\r")


class Base64Error(ValueError):
    """Raised when a string is not valid base64."""


def b64_ntop(src: bytes) -> str:
    """Encode bytes as padded base64 text."""
    return binascii.b2a_base64(bytes(src), newline=False).decode("ascii")


def b64_pton(src: str | bytes) -> bytes:
    """Decode base64 text.

    Whitespace is skipped anywhere. Padding must be complete, nothing but
    whitespace may follow it, and the unused bits before the padding must be
    zero; otherwise :class:`Base64Error` is raised.
    """
    if isinstance(src, (bytes, bytearray)):
        src = bytes(src).decode("latin-1")

    out = bytearray()
    complete = 0
    state = 0
    chars = iter(src)
    saw_pad = False

    for ch in chars:
        if ch in _WHITESPACE:
            continue
        if ch == _PAD:
            saw_pad = True
            break
        value = _VALUES.get(ch)
        if value is None:
            raise Base64Error(f"invalid base64 character {ch!r}")
        if state == 0:
            out.append((value << 2) & 0xFF)
            state = 1
        elif state == 1:
            out[complete] |= value >> 4
            out.append(((value & 0x0F) << 4) & 0xFF)
            complete += 1
            state = 2
        elif state == 2:
            out[complete] |= value >> 2
            out.append(((value & 0x03) << 6) & 0xFF)
            complete += 1
            state = 3
        else:
            out[complete] |= value
            complete += 1
            state = 0

    if not saw_pad:
        if state != 0:
            raise Base64Error("truncated base64 input")
        return bytes(out[:complete])

    if state in (0, 1):
        raise Base64Error("padding in invalid position")

    if state == 2:
        for ch in chars:
            if ch in _WHITESPACE:
                continue
            if ch != _PAD:
                raise Base64Error("missing second padding character")
            break
        else:
            raise Base64Error("missing second padding character")

    if any(ch not in _WHITESPACE for ch in chars):
        raise Base64Error("trailing data after padding")

    if out[complete] != 0:
        raise Base64Error("non-zero bits before padding")

    return bytes(out[:complete])