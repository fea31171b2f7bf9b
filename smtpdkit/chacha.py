"""ChaCha20 keystream generator with a 64-bit nonce."""

from __future__ import annotations

import struct

__all__ = ["ChaCha"]

_SIGMA = b"expand 32-byte k"
_TAU = b"expand 16-byte k"
_MASK = 0xFFFFFFFF
_BLOCK = 64


def _rotl(value: int, shift: int) -> int:
    return ((value << shift) & _MASK) | (value >> (32 - shift))


def _quarter(x: list[int], a: int, b: int, c: int, d: int) -> None:
    x[a] = (x[a] + x[b]) & _MASK
    x[d] = _rotl(x[d] ^ x[a], 16)
    x[c] = (x[c] + x[d]) & _MASK
    x[b] = _rotl(x[b] ^ x[c], 12)
    x[a] = (x[a] + x[b]) & _MASK
    x[d] = _rotl(x[d] ^ x[a], 8)
    x[c] = (x[c] + x[d]) & _MASK
    x[b] = _rotl(x[b] ^ x[c], 7)


class ChaCha:
    """A ChaCha20 stream with a 256- or 128-bit key and an 8-byte IV.

    Every call consumes whole 64-byte blocks: the unused tail of a partial
    block is discarded and the block counter still advances.
    """

    def __init__(self, key: bytes, iv: bytes) -> None:
        key = bytes(key)
        iv = bytes(iv)
        if len(key) == 32:
            constants, second_half = _SIGMA, key[16:]
        elif len(key) == 16:
            constants, second_half = _TAU, key
        else:
            raise ValueError("key must be 16 or 32 bytes")
        if len(iv) != 8:
            raise ValueError("iv must be 8 bytes")
        self._state = [
            *struct.unpack("<4I", constants),
            *struct.unpack("<4I", key[:16]),
            *struct.unpack("<4I", second_half),
            0,
            0,
            *struct.unpack("<2I", iv),
        ]

    def _block(self) -> bytes:
        state = self._state
        x = list(state)
        for _ in range(10):
            _quarter(x, 0, 4, 8, 12)
            _quarter(x, 1, 5, 9, 13)
            _quarter(x, 2, 6, 10, 14)
            _quarter(x, 3, 7, 11, 15)
            _quarter(x, 0, 5, 10, 15)
            _quarter(x, 1, 6, 11, 12)
            _quarter(x, 2, 7, 8, 13)
            _quarter(x, 3, 4, 9, 14)
        out = struct.pack("<16I", *((a + b) & _MASK for a, b in zip(x, state)))
        state[12] = (state[12] + 1) & _MASK
        if state[12] == 0:
            state[13] = (state[13] + 1) & _MASK
        return out

    def keystream(self, length: int) -> bytes:
        """Return ``length`` bytes of keystream."""
        if length < 0:
            raise ValueError("length must not be negative")
        if length == 0:
            return b""
        blocks = -(-length // _BLOCK)
        return b"".join(self._block() for _ in range(blocks))[:length]

    def encrypt(self, data: bytes) -> bytes:
        """XOR ``data`` with the keystream; the same call decrypts."""
        data = bytes(data)
        if not data:
            return b""
        stream = self.keystream(len(data))
        mixed = int.from_bytes(data, "little") ^ int.from_bytes(stream, "little")
        return mixed.to_bytes(len(data), "little")