"""ChaCha-based random number generator with periodic reseeding."""

from __future__ import annotations

import os

from smtpdkit.chacha import ChaCha

__all__ = ["Arc4Random", "arc4random", "arc4random_uniform"]

_KEYSZ = 32
_IVSZ = 8
_SEEDSZ = _KEYSZ + _IVSZ
_BLOCKSZ = 64
_RSBUFSZ = 16 * _BLOCKSZ
_RESEED_BYTES = 1600000


class Arc4Random:
    """A random byte source keyed from the operating system.

    It rekeys itself after every buffer of output for backtracking
    resistance, reseeds from the system after a fixed amount of output and
    whenever the process id changes.
    """

    def __init__(self) -> None:
        self._initialized = False
        self._stir_pid: int | None = None
        self._chacha: ChaCha | None = None
        self._buf = bytearray(_RSBUFSZ)
        self._have = 0
        self._count = 0

    def _init(self, seed: bytes) -> None:
        self._chacha = ChaCha(seed[:_KEYSZ], seed[_KEYSZ:_SEEDSZ])

    def _rekey(self, data: bytes | None = None) -> None:
        self._buf[:] = self._chacha.keystream(_RSBUFSZ)
        if data is not None:
            m = min(len(data), _SEEDSZ)
            self._buf[:m] = bytes(a ^ b for a, b in zip(self._buf[:m], data[:m]))
        self._init(bytes(self._buf[:_SEEDSZ]))
        self._buf[:_SEEDSZ] = bytes(_SEEDSZ)
        self._have = _RSBUFSZ - _SEEDSZ

    def _take(self, n: int) -> bytes:
        start = _RSBUFSZ - self._have
        chunk = bytes(self._buf[start : start + n])
        self._buf[start : start + n] = bytes(n)
        self._have -= n
        return chunk

    def _stir_if_needed(self, length: int) -> None:
        pid = os.getpid()
        if self._count <= length or not self._initialized or self._stir_pid != pid:
            self._stir_pid = pid
            self.stir()
        else:
            self._count -= length

    def stir(self) -> None:
        """Reseed from the operating system's entropy source."""
        rnd = os.urandom(_SEEDSZ)
        if not self._initialized:
            self._initialized = True
            self._init(rnd)
        else:
            self._rekey(rnd)
        self._have = 0
        self._buf[:] = bytes(_RSBUFSZ)
        self._count = _RESEED_BYTES

    def addrandom(self, data: bytes) -> None:
        """Mix caller-supplied bytes into the generator state."""
        data = bytes(data)
        if not self._initialized:
            self.stir()
        for start in range(0, len(data), _SEEDSZ):
            self._rekey(data[start : start + _SEEDSZ])

    def random_bytes(self, length: int) -> bytes:
        """Return ``length`` random bytes."""
        if length < 0:
            raise ValueError("length must not be negative")
        self._stir_if_needed(length)
        out = bytearray()
        remaining = length
        while remaining > 0:
            if self._have > 0:
                m = min(remaining, self._have)
                out += self._take(m)
                remaining -= m
            if self._have == 0:
                self._rekey()
        return bytes(out)

    def random_u32(self) -> int:
        """Return a random 32-bit unsigned integer."""
        self._stir_if_needed(4)
        if self._have < 4:
            self._rekey()
        return int.from_bytes(self._take(4), "little")

    def uniform(self, upper_bound: int) -> int:
        """Return a uniform random integer in ``[0, upper_bound)`` without modulo bias.

        Bounds below 2 give 0.
        """
        if upper_bound < 2:
            return 0
        minimum = (2**32 - upper_bound) % upper_bound
        while True:
            r = self.random_u32()
            if r >= minimum:
                return r % upper_bound


_default = Arc4Random()


def arc4random() -> int:
    """Return a random 32-bit unsigned integer from the shared generator."""
    return _default.random_u32()


def arc4random_uniform(upper_bound: int) -> int:
    """Return a uniform random integer below ``upper_bound`` from the shared generator."""
    return _default.uniform(upper_bound)