import threading
import time

import pytest

from SwitchInput.rwlock import ReadWriteLock


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    inside = threading.Barrier(3, timeout=2.0)

    def reader():
        with lock.read_locked():
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(2.0)
    assert not any(t.is_alive() for t in threads)


@pytest.mark.stability
def test_writer_excludes_readers():
    lock = ReadWriteLock()
    events = []

    lock.acquire_write()
    reader = threading.Thread(target=lambda: (lock.acquire_read(), events.append("read"), lock.release_read()))
    reader.start()
    time.sleep(0.05)
    events.append("write done")
    lock.release_write()
    reader.join(2.0)

    assert events == ["write done", "read"]


@pytest.mark.stability
def test_waiting_writer_blocks_new_readers():
    lock = ReadWriteLock()
    events = []

    lock.acquire_read()
    writer = threading.Thread(target=lambda: (lock.acquire_write(), events.append("write"), lock.release_write()))
    writer.start()
    time.sleep(0.05)

    late_reader = threading.Thread(target=lambda: (lock.acquire_read(), events.append("late read"), lock.release_read()))
    late_reader.start()
    time.sleep(0.05)
    assert events == []

    lock.release_read()
    writer.join(2.0)
    late_reader.join(2.0)
    assert events == ["write", "late read"]
