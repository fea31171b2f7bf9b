"""Bounded string copying, tokenising and range-checked integer parsing."""

from __future__ import annotations

import re

__all__ = ["StrtonumError", "strlcpy", "strlcat", "strsep", "strtonum"]

_LLONG_MIN = -(2**63)
_LLONG_MAX = 2**63 - 1
_NUMBER = re.compile(r"[ \t\n\v\f\r]*([+-]?[0-9]+)")


class StrtonumError(ValueError):
    """Raised when a number cannot be parsed or lies outside its range.

    ``errstr`` is one of ``"invalid"``, ``"too small"`` or ``"too large"``.
    """

    def __init__(self, errstr: str) -> None:
        super().__init__(errstr)
        self.errstr = errstr


def strlcpy(src: str, size: int) -> tuple[str, int]:
    """Copy ``src`` into a buffer of ``size`` characters, terminator included.

    Returns the copied text and ``len(src)``; a length of at least ``size``
    means the copy was truncated.
    """
    if size <= 0:
        return "", len(src)
    return src[: size - 1], len(src)


def strlcat(dst: str, src: str, size: int) -> tuple[str, int]:
    """Append ``src`` to ``dst`` inside a buffer of ``size`` characters.

    Returns the resulting text and ``min(size, len(dst)) + len(src)``; a
    length of at least ``size`` means truncation occurred. When ``dst`` already
    fills the buffer it is returned unchanged.
    """
    dlen = min(len(dst), max(size, 0))
    room = size - dlen
    if room <= 0:
        return dst, dlen + len(src)
    return dst[:dlen] + src[: room - 1], dlen + len(src)


def strsep(string: str | None, delims: str) -> tuple[str | None, str | None]:
    """Split off the next token of ``string`` delimited by any of ``delims``.

    Returns ``(token, rest)``; ``rest`` is ``None`` once no delimiter remains.
    A ``None`` string yields ``(None, None)``. Tokens may be empty.
    """
    if string is None:
        return None, None
    for index, ch in enumerate(string):
        if ch in delims:
            return string[:index], string[index + 1 :]
    return string, None


def strtonum(numstr: str, minval: int, maxval: int) -> int:
    """Parse a base-10 integer and check it lies in ``[minval, maxval]``.

    Leading whitespace and a sign are accepted; anything else after the
    digits is not. Values beyond the 64-bit signed range count as too small
    or too large. Raises :class:`StrtonumError` on failure.
    """
    if minval > maxval:
        raise StrtonumError("invalid")
    match = _NUMBER.fullmatch(numstr)
    if match is None:
        raise StrtonumError("invalid")
    value = int(match.group(1))
    underflow = value < _LLONG_MIN
    overflow = value > _LLONG_MAX
    value = max(min(value, _LLONG_MAX), _LLONG_MIN)
    if underflow or value < minval:
        raise StrtonumError("too small")
    if overflow or value > maxval:
        raise StrtonumError("too large")
    return value