import os
import socket

import pytest

from smtpdkit.imsg import (
    IMSG_HEADER_SIZE,
    IMSGF_HASFD,
    MAX_IMSGSIZE,
    Ibuf,
    ImsgBuf,
    ImsgError,
    ImsgHeader,
    MsgBuf,
    available_fds,
)


@pytest.fixture
def pair():
    a, b = socket.socketpair(socket.AF_UNIX, socket.SOCK_STREAM)
    a.settimeout(5)
    b.settimeout(5)
    yield a, b
    a.close()
    b.close()


def test_header_size_and_round_trip():
    hdr = ImsgHeader(type=7, len=20, flags=IMSGF_HASFD, peerid=3, pid=99)
    packed = hdr.pack()
    assert len(packed) == IMSG_HEADER_SIZE == 16
    assert ImsgHeader.unpack(packed) == hdr


def test_header_unpack_short():
    with pytest.raises(ImsgError):
        ImsgHeader.unpack(b"\x00" * 5)


def test_static_ibuf_refuses_growth():
    buf = Ibuf(4)
    buf.add(b"abcd")
    assert len(buf) == 4
    assert buf.left() == 0
    with pytest.raises(ImsgError):
        buf.add(b"e")
    assert buf.data == b"abcd"


def test_dynamic_ibuf_grows_to_limit():
    buf = Ibuf.dynamic(2, 10)
    buf.add(b"hello")
    assert buf.data == b"hello"
    assert buf.left() == 10 - len(b"hello")
    with pytest.raises(ImsgError):
        buf.add(b"123456")


def test_dynamic_rejects_small_max():
    with pytest.raises(ImsgError):
        Ibuf.dynamic(8, 4)


def test_reserve_and_seek():
    buf = Ibuf.dynamic(0, 32)
    buf.reserve(4)
    buf.add(b"tail")
    buf.seek(0, 4)[:] = b"head"
    assert buf.data == b"headtail"
    with pytest.raises(ImsgError):
        buf.seek(6, 4)


def test_compose_flush_read_get(pair):
    a, b = pair
    sender, receiver = ImsgBuf(a), ImsgBuf(b)
    sender.compose(5, 42, 1234, None, b"payload")
    assert sender.w.queued == 1
    sender.flush()
    assert sender.w.queued == 0

    n = receiver.read()
    assert n == IMSG_HEADER_SIZE + len(b"payload")
    msg = receiver.get()
    assert msg.type == 5
    assert msg.hdr.peerid == 42
    assert msg.hdr.pid == 1234
    assert msg.hdr.len == n
    assert msg.data == b"payload"
    assert msg.fd is None
    assert receiver.get() is None


def test_default_pid_and_multiple_messages(pair):
    a, b = pair
    sender, receiver = ImsgBuf(a), ImsgBuf(b)
    sender.compose(1, 0, 0, None, b"one")
    sender.compose(2, 0, 0, None, b"")
    sender.flush()
    got = []
    while len(got) < 2:
        receiver.read()
        while (msg := receiver.get()) is not None:
            got.append(msg)
    assert [m.type for m in got] == [1, 2]
    assert [m.data for m in got] == [b"one", b""]
    assert all(m.hdr.pid == os.getpid() for m in got)


def test_composev_concatenates_parts(pair):
    a, b = pair
    sender, receiver = ImsgBuf(a), ImsgBuf(b)
    sender.composev(9, 1, 0, None, [b"ab", b"", b"cde"])
    sender.flush()
    receiver.read()
    msg = receiver.get()
    assert msg.data == b"abcde"
    assert msg.type == 9


def test_descriptor_passing(pair):
    a, b = pair
    sender, receiver = ImsgBuf(a), ImsgBuf(b)
    rfd, wfd = os.pipe()
    try:
        sender.compose(3, 0, 0, rfd, b"fd")
        sender.flush()
        receiver.read()
        msg = receiver.get()
        assert msg.hdr.flags & IMSGF_HASFD
        assert msg.fd is not None
        os.write(wfd, b"hi")
        assert os.read(msg.fd, 2) == b"hi"
        os.close(msg.fd)
    finally:
        os.close(wfd)


def test_partial_message_waits(pair):
    a, b = pair
    receiver = ImsgBuf(b)
    body = b"x" * 24
    hdr = ImsgHeader(type=4, len=IMSG_HEADER_SIZE + len(body), pid=1)
    a.sendall(hdr.pack() + body[:10])
    receiver.read()
    assert receiver.get() is None
    a.sendall(body[10:])
    receiver.read()
    msg = receiver.get()
    assert msg.data == body


def test_bad_length_rejected(pair):
    a, b = pair
    receiver = ImsgBuf(b)
    a.sendall(ImsgHeader(type=1, len=5).pack())
    receiver.read()
    with pytest.raises(ImsgError):
        receiver.get()


def test_create_size_limit(pair):
    a, _ = pair
    ibuf = ImsgBuf(a)
    with pytest.raises(ImsgError):
        ibuf.create(1, 0, 0, MAX_IMSGSIZE - IMSG_HEADER_SIZE + 1)
    msg = ibuf.create(1, 0, 0, MAX_IMSGSIZE - IMSG_HEADER_SIZE)
    msg.add(b"z" * (MAX_IMSGSIZE - IMSG_HEADER_SIZE))
    assert len(msg) == MAX_IMSGSIZE


def test_msgbuf_writev_and_drain(pair):
    a, b = pair
    mb = MsgBuf(a)
    for chunk in (b"abc", b"de"):
        buf = Ibuf(len(chunk))
        buf.add(chunk)
        mb.close(buf)
    assert mb.writev() == 1
    assert mb.queued == 0
    assert b.recv(16) == b"abcde"


def test_msgbuf_partial_drain():
    mb = MsgBuf()
    first, second = Ibuf(3), Ibuf(2)
    first.add(b"abc")
    second.add(b"de")
    mb.close(first)
    mb.close(second)
    mb.drain(4)
    assert mb.queued == 1
    assert mb.bufs[0] is second
    assert second.rpos == 1


def test_clear_closes_queued_descriptors(pair):
    a, _ = pair
    ibuf = ImsgBuf(a)
    rfd, wfd = os.pipe()
    try:
        ibuf.compose(1, 0, 0, rfd, b"x")
        ibuf.clear()
        assert ibuf.w.queued == 0
        with pytest.raises(OSError):
            os.fstat(rfd)
    finally:
        os.close(wfd)


def test_read_returns_zero_on_close(pair):
    a, b = pair
    receiver = ImsgBuf(b)
    a.close()
    assert receiver.read() == 0
    assert receiver.get() is None


def test_available_fds():
    assert available_fds(0) is False
    assert available_fds(2) is False
    assert available_fds(1000) is True