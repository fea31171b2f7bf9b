"""Framed messages with optional descriptor passing over a Unix socket."""

from __future__ import annotations

import array
import errno
import os
import socket
import struct
from collections import deque
from dataclasses import dataclass
from itertools import islice
from typing import Iterable

__all__ = [
    "IBUF_READ_SIZE",
    "IMSG_HEADER_SIZE",
    "IMSGF_HASFD",
    "MAX_IMSGSIZE",
    "Ibuf",
    "Imsg",
    "ImsgBuf",
    "ImsgError",
    "ImsgHeader",
    "MsgBuf",
    "available_fds",
]

IBUF_READ_SIZE = 65535
MAX_IMSGSIZE = 16384
IMSGF_HASFD = 1
IOV_MAX = 1024

_HEADER = struct.Struct("=IHHII")
IMSG_HEADER_SIZE = _HEADER.size
_INT_SIZE = array.array("i").itemsize
_FD_PROBE_LIMIT = 256

imsg_fd_overhead = 0


class ImsgError(Exception):
    """Raised on malformed messages and buffer limit violations."""


def available_fds(n: int) -> bool:
    """Return True when fewer than ``n`` more descriptors can be opened."""
    if n > _FD_PROBE_LIMIT:
        return True
    opened: list[socket.socket] = []
    try:
        for _ in range(n):
            opened.append(socket.socket(socket.AF_INET, socket.SOCK_DGRAM))
    except OSError:
        return True
    finally:
        for sock in opened:
            sock.close()
    return False


@dataclass
class ImsgHeader:
    """The fixed header that starts every message."""

    type: int
    len: int
    flags: int = 0
    peerid: int = 0
    pid: int = 0

    def pack(self) -> bytes:
        """Encode the header in native byte order."""
        return _HEADER.pack(self.type, self.len, self.flags, self.peerid, self.pid)

    @classmethod
    def unpack(cls, data: bytes) -> "ImsgHeader":
        """Decode a header from the start of ``data``."""
        if len(data) < IMSG_HEADER_SIZE:
            raise ImsgError("short message header")
        return cls(*_HEADER.unpack_from(data))


@dataclass
class Imsg:
    """A received message: its header, payload and any passed descriptor."""

    hdr: ImsgHeader
    data: bytes
    fd: int | None = None

    @property
    def type(self) -> int:
        return self.hdr.type


class Ibuf:
    """A growable write buffer with a hard size limit."""

    def __init__(self, size: int, max_size: int | None = None) -> None:
        if size < 0:
            raise ValueError("size must not be negative")
        if max_size is None:
            max_size = size
        if max_size < size:
            raise ImsgError("maximum size below initial size")
        self._buf = bytearray(size)
        self.size = size
        self.max = max_size
        self.wpos = 0
        self.rpos = 0
        self.fd: int | None = None

    @classmethod
    def dynamic(cls, length: int, max_size: int) -> "Ibuf":
        """Create a buffer that may grow up to ``max_size`` (0 means fixed)."""
        if max_size < length:
            raise ImsgError("maximum size below initial size")
        buf = cls(length)
        if max_size > 0:
            buf.max = max_size
        return buf

    def _grow(self, length: int) -> None:
        needed = self.wpos + length
        if needed > self.max:
            raise ImsgError("buffer limit exceeded")
        grown = bytearray(needed)
        grown[: self.wpos] = self._buf[: self.wpos]
        self._buf = grown
        self.size = needed

    def add(self, data: bytes) -> None:
        """Append ``data``."""
        data = bytes(data)
        n = len(data)
        if self.wpos + n > self.size:
            self._grow(n)
        self._buf[self.wpos : self.wpos + n] = data
        self.wpos += n

    def reserve(self, length: int) -> memoryview:
        """Claim ``length`` bytes at the end and return a writable view of them."""
        if self.wpos + length > self.size:
            self._grow(length)
        view = memoryview(self._buf)[self.wpos : self.wpos + length]
        self.wpos += length
        return view

    def seek(self, pos: int, length: int) -> memoryview:
        """Return a writable view of an already written region."""
        if pos < 0 or pos + length > self.wpos:
            raise ImsgError("seek beyond written data")
        return memoryview(self._buf)[pos : pos + length]

    def left(self) -> int:
        """Bytes that may still be added before hitting the limit."""
        return self.max - self.wpos

    def __len__(self) -> int:
        return self.wpos

    @property
    def data(self) -> bytes:
        """Everything written so far."""
        return bytes(self._buf[: self.wpos])

    def _pending_view(self) -> memoryview:
        return memoryview(self._buf)[self.rpos : self.wpos]


class MsgBuf:
    """A queue of buffers waiting to be written to a socket."""

    def __init__(self, sock: socket.socket | None = None) -> None:
        self.sock = sock
        self.bufs: deque[Ibuf] = deque()

    @property
    def queued(self) -> int:
        return len(self.bufs)

    def close(self, buf: Ibuf) -> None:
        """Queue a finished buffer for writing."""
        self.bufs.append(buf)

    @staticmethod
    def _discard(buf: Ibuf) -> None:
        if buf.fd is not None:
            os.close(buf.fd)
            buf.fd = None

    def _send(self, iov: list[memoryview], ancdata: list) -> int:
        if self.sock is None:
            raise ImsgError("no socket attached")
        try:
            return self.sock.sendmsg(iov, ancdata)
        except OSError as exc:
            if exc.errno == errno.ENOBUFS:
                raise BlockingIOError(errno.EAGAIN, os.strerror(errno.EAGAIN)) from exc
            raise

    def writev(self) -> int:
        """Write queued data without descriptors; return 0 if nothing was sent."""
        iov = [buf._pending_view() for buf in islice(self.bufs, IOV_MAX)]
        n = self._send(iov, [])
        if n == 0:
            return 0
        self.drain(n)
        return 1

    def write(self) -> int:
        """Write queued data, passing at most one descriptor; return 0 if nothing was sent."""
        iov = []
        fdbuf = None
        for buf in islice(self.bufs, IOV_MAX):
            iov.append(buf._pending_view())
            if buf.fd is not None:
                fdbuf = buf
                break
        ancdata = []
        if fdbuf is not None:
            payload = array.array("i", [fdbuf.fd]).tobytes()
            ancdata.append((socket.SOL_SOCKET, socket.SCM_RIGHTS, payload))
        n = self._send(iov, ancdata)
        if n == 0:
            return 0
        if fdbuf is not None:
            os.close(fdbuf.fd)
            fdbuf.fd = None
        self.drain(n)
        return 1

    def drain(self, n: int) -> None:
        """Drop ``n`` written bytes from the front of the queue."""
        while self.bufs and n > 0:
            buf = self.bufs[0]
            pending = buf.wpos - buf.rpos
            if n >= pending:
                n -= pending
                self._discard(self.bufs.popleft())
            else:
                buf.rpos += n
                n = 0

    def clear(self) -> None:
        """Drop every queued buffer, closing any descriptors they carry."""
        while self.bufs:
            self._discard(self.bufs.popleft())


class ImsgBuf:
    """Reads and writes framed messages on one socket."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self.w = MsgBuf(sock)
        self.fds: deque[int] = deque()
        self._rbuf = bytearray()
        self.pid = os.getpid()

    def read(self) -> int:
        """Receive available data; return the byte count, 0 when the peer closed."""
        room = IBUF_READ_SIZE - len(self._rbuf)
        ctl = socket.CMSG_SPACE(_INT_SIZE)
        needed = imsg_fd_overhead + (ctl - socket.CMSG_SPACE(0)) // _INT_SIZE
        if available_fds(needed):
            raise BlockingIOError(errno.EAGAIN, "not enough descriptors available")

        data, ancdata, _flags, _addr = self.sock.recvmsg(room, ctl)

        accepted = False
        for level, kind, payload in ancdata:
            if level != socket.SOL_SOCKET or kind != socket.SCM_RIGHTS:
                continue
            fds = array.array("i")
            fds.frombytes(payload[: len(payload) - len(payload) % _INT_SIZE])
            for fd in fds:
                if not accepted:
                    self.fds.append(fd)
                    accepted = True
                else:
                    os.close(fd)

        self._rbuf += data
        return len(data)

    def _get_fd(self) -> int | None:
        return self.fds.popleft() if self.fds else None

    def get(self) -> Imsg | None:
        """Return the next complete message, or None if one has not arrived yet."""
        av = len(self._rbuf)
        if av < IMSG_HEADER_SIZE:
            return None
        hdr = ImsgHeader.unpack(self._rbuf)
        if hdr.len < IMSG_HEADER_SIZE or hdr.len > MAX_IMSGSIZE:
            raise ImsgError(f"invalid message length {hdr.len}")
        if hdr.len > av:
            return None
        data = bytes(self._rbuf[IMSG_HEADER_SIZE : hdr.len])
        fd = self._get_fd() if hdr.flags & IMSGF_HASFD else None
        del self._rbuf[: hdr.len]
        return Imsg(hdr, data, fd)

    def create(self, msg_type: int, peerid: int, pid: int, datalen: int) -> Ibuf:
        """Start a message expected to carry ``datalen`` bytes of payload."""
        total = datalen + IMSG_HEADER_SIZE
        if total > MAX_IMSGSIZE:
            raise ImsgError("message too large")
        hdr = ImsgHeader(type=msg_type, len=0, flags=0, peerid=peerid, pid=pid or self.pid)
        wbuf = Ibuf.dynamic(total, MAX_IMSGSIZE)
        wbuf.add(hdr.pack())
        return wbuf

    def add(self, msg: Ibuf, data: bytes) -> int:
        """Append payload to a message under construction."""
        if data:
            msg.add(data)
        return len(data)

    def close(self, msg: Ibuf) -> None:
        """Finish a message and queue it for writing."""
        view = msg.seek(0, IMSG_HEADER_SIZE)
        hdr = ImsgHeader.unpack(view)
        hdr.flags &= ~IMSGF_HASFD
        if msg.fd is not None:
            hdr.flags |= IMSGF_HASFD
        hdr.len = len(msg) & 0xFFFF
        view[:] = hdr.pack()
        self.w.close(msg)

    def compose(
        self, msg_type: int, peerid: int, pid: int, fd: int | None, data: bytes
    ) -> None:
        """Build and queue a message in one step."""
        data = bytes(data)
        wbuf = self.create(msg_type, peerid, pid, len(data))
        self.add(wbuf, data)
        wbuf.fd = fd
        self.close(wbuf)

    def composev(
        self, msg_type: int, peerid: int, pid: int, fd: int | None, parts: Iterable[bytes]
    ) -> None:
        """Build and queue a message whose payload is the concatenation of ``parts``."""
        parts = [bytes(part) for part in parts]
        wbuf = self.create(msg_type, peerid, pid, sum(len(part) for part in parts))
        for part in parts:
            self.add(wbuf, part)
        wbuf.fd = fd
        self.close(wbuf)

    def flush(self) -> None:
        """Write until the outgoing queue is empty."""
        while self.w.queued:
            self.w.write()

    def clear(self) -> None:
        """Drop queued output and close every received but unclaimed descriptor."""
        self.w.clear()
        while (fd := self._get_fd()) is not None:
            os.close(fd)