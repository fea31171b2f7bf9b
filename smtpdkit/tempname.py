"""Creation of uniquely named temporary files from a template."""

from __future__ import annotations

import errno
import os
import string

from smtpdkit.arc4random import arc4random_uniform

__all__ = ["TEMPCHARS", "mkstemp"]

TEMPCHARS = string.ascii_uppercase + string.ascii_lowercase + string.digits
_NUM_CHARS = len(TEMPCHARS)
_INT_MAX = 2**31 - 1


def mkstemp(path: str | os.PathLike[str], suffix_len: int = 0) -> tuple[int, str]:
    """Create and open a new file named after ``path``.

    The run of ``X`` characters that ends ``suffix_len`` characters before
    the end of ``path`` is replaced with random letters and digits. The file
    is created exclusively, opened read-write with mode 0600, and the open
    descriptor is returned together with the chosen name.

    Raises :class:`ValueError` for an empty template or a bad suffix length,
    :class:`FileExistsError` when every candidate name is taken, and any
    other :class:`OSError` that creating the file gives.
    """
    path = os.fspath(path)
    length = len(path)
    if length == 0 or suffix_len < 0 or suffix_len >= length:
        raise ValueError("invalid template or suffix length")

    end = length - suffix_len
    start = end
    tries = 1
    while start > 0 and path[start - 1] == "X":
        start -= 1
        if tries < _INT_MAX // _NUM_CHARS:
            tries *= _NUM_CHARS
    tries *= 2

    head, tail = path[:start], path[end:]
    width = end - start
    flags = os.O_CREAT | os.O_EXCL | os.O_RDWR
    for _ in range(tries):
        random_part = "".join(
            TEMPCHARS[arc4random_uniform(_NUM_CHARS)] for _ in range(width)
        )
        candidate = head + random_part + tail
        try:
            fd = os.open(candidate, flags, 0o600)
        except FileExistsError:
            continue
        return fd, candidate

    raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), path)