import asyncio
import os

import pytest

from tailstream import State, TailStream

FAST = dict(start_delay=0.002, poll_interval=0.005)
EVENTS = ("open", "data", "readable", "end", "close", "error")


def _record(stream):
    seq = []
    for name in EVENTS:
        stream.on(name, lambda *args, _name=name: seq.append(_name))
    return seq


async def _opened(stream):
    fut = asyncio.get_running_loop().create_future()
    stream.once("open", lambda fd: fut.set_result(fd))
    return await asyncio.wait_for(fut, 2)


def test_destroy_before_open_is_silent(tmp_path):
    p = tmp_path / "simple.txt"
    p.write_bytes(b"hello")

    async def main():
        stream = TailStream(p, **FAST)
        seq = _record(stream)
        stream.destroy()
        stream.destroy()
        await asyncio.sleep(0.05)
        return seq, stream

    seq, stream = asyncio.run(main())
    assert seq == []
    assert stream.state is State.CLOSED
    assert stream.destroyed
    assert stream.fd is None


def test_destroy_while_polling(tmp_path):
    p = tmp_path / "simple.txt"
    p.write_bytes(b"")

    async def main():
        stream = TailStream(p, **FAST)
        seq = _record(stream)
        fd = await _opened(stream)
        await asyncio.sleep(0.02)
        stream.destroy()
        assert not stream.schedule.pending
        stream.destroy()
        with open(p, "ab") as fh:
            fh.write(b"late bytes")
        await asyncio.sleep(0.05)
        return seq, fd

    seq, fd = asyncio.run(main())
    assert seq == ["open", "close"]
    with pytest.raises(OSError):
        os.fstat(fd)


def test_destroy_after_end_does_not_repeat_close(tmp_path):
    p = tmp_path / "simple.txt"
    p.write_bytes(b"hello")

    async def main():
        stream = TailStream(p, **FAST)
        stream.done()
        seq = _record(stream)
        stream.once("end", stream.destroy)
        await asyncio.wait_for(stream.wait_closed(), 2)
        stream.destroy()
        await asyncio.sleep(0.02)
        return seq

    assert asyncio.run(main()) == ["open", "data", "end", "close"]


def test_destroy_from_open_listener_stops_polling(tmp_path):
    p = tmp_path / "simple.txt"
    p.write_bytes(b"hello")

    async def main():
        stream = TailStream(p, **FAST)
        stream.done()
        seq = _record(stream)
        stream.once("open", lambda fd: stream.destroy())
        await asyncio.sleep(0.05)
        return seq, stream

    seq, stream = asyncio.run(main())
    assert seq == ["open", "close"]
    assert not stream.schedule.pending
    assert stream.poller.polls == 0


def test_destroy_from_data_listener_stops_further_data(tmp_path):
    p = tmp_path / "growing.txt"
    p.write_bytes(b"first")

    async def main():
        stream = TailStream(p, **FAST)
        seq = _record(stream)
        stream.once("data", lambda chunk: stream.destroy())
        await asyncio.wait_for(stream.wait_closed(), 2)
        with open(p, "ab") as fh:
            fh.write(b"second")
        await asyncio.sleep(0.05)
        return seq

    assert asyncio.run(main()) == ["open", "data", "close"]


def test_emit_close_disabled(tmp_path):
    p = tmp_path / "simple.txt"
    p.write_bytes(b"hello")

    async def main():
        stream = TailStream(p, emit_close=False, **FAST)
        stream.done()
        seq = _record(stream)
        await asyncio.wait_for(stream.wait_closed(), 2)
        stream.destroy()
        return seq, stream

    seq, stream = asyncio.run(main())
    assert seq == ["open", "data", "end"]
    assert stream.fd is None


def test_adopted_descriptor_without_auto_close(tmp_path):
    p = tmp_path / "simple.txt"
    p.write_bytes(b"hello")
    fd = os.open(str(p), os.O_RDONLY)

    async def main():
        stream = TailStream(fd=fd, auto_close=False, **FAST)
        assert stream.path is None
        stream.done()
        seq = _record(stream)
        ended = asyncio.get_running_loop().create_future()
        stream.once("end", lambda: ended.set_result(None))
        await asyncio.wait_for(ended, 2)
        await asyncio.sleep(0.02)
        # caller still owns the descriptor after end
        assert stream.state is State.DRAINING
        assert stream.fd == fd
        os.fstat(fd)
        stream.destroy()
        return seq, stream

    seq, stream = asyncio.run(main())
    assert seq == ["open", "data", "end", "close"]
    assert stream.state is State.CLOSED


def test_adopted_descriptor_is_sized_by_descriptor_not_path(tmp_path):
    a = tmp_path / "a.txt"
    b = tmp_path / "b.txt"
    a.write_bytes(b"abc")
    b.write_bytes(b"0123456789")
    fd = os.open(str(a), os.O_RDONLY)

    async def main():
        stream = TailStream(b, fd=fd, **FAST)
        stream.done()
        seq = []
        for name in ("open", "data", "end", "close", "error"):
            stream.on(name, lambda *args, _name=name: seq.append((_name, args[0] if args else None)))
        await asyncio.wait_for(stream.wait_closed(), 2)
        return seq, stream

    seq, stream = asyncio.run(main())
    assert seq == [("open", fd), ("data", b"abc"), ("end", None), ("close", None)]
    assert stream.path == str(b)
    assert stream.read_offset == 3


def test_destroy_during_read_defers_close_until_worker_finishes(tmp_path, monkeypatch):
    import threading
    import time

    from tailstream import reader

    p = tmp_path / "simple.txt"
    p.write_bytes(b"hello")
    real = reader._pread
    started = threading.Event()
    seen = []

    def slow(fd, length, offset):
        started.set()
        time.sleep(0.1)
        # the descriptor must still be ours while the read runs
        seen.append(os.fstat(fd).st_size)
        return real(fd, length, offset)

    monkeypatch.setattr(reader, "_pread", slow)

    async def main():
        stream = TailStream(p, **FAST)
        seq = _record(stream)
        await asyncio.get_running_loop().run_in_executor(None, started.wait, 2)
        fd = stream.fd
        stream.destroy()
        os.fstat(fd)
        await asyncio.sleep(0.25)
        return seq, fd

    seq, fd = asyncio.run(main())
    assert seen == [5]
    assert seq == ["open", "close"]
    with pytest.raises(OSError):
        os.fstat(fd)
