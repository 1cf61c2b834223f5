"""Unit tests for utility helpers."""

import threading
import time

import pytest

from reelscout.utils.formatting import human_readable_size
from reelscout.utils.locks import ReadWriteLock


@pytest.mark.parametrize(
    "num_bytes,expected",
    [
        (0, "0 bytes"),
        (1, "1 byte"),
        (999, "999 bytes"),
        (1000, "1 KB"),
        (999_499, "999 KB"),
        (999_999, "1.0 MB"),
        (999_960_000, "1.0 GB"),
        (12_500_000, "12.5 MB"),
        (3_200_000_000, "3.2 GB"),
        (5_000_000_000_000_000, "5000.0 TB"),
    ],
)
def test_human_readable_size(num_bytes, expected):
    assert human_readable_size(num_bytes) == expected


class TestReadWriteLock:
    """Test ReadWriteLock class."""

    def test_readers_share(self):
        lock = ReadWriteLock()
        both_inside = threading.Barrier(2, timeout=2)

        def reader():
            with lock.read():
                both_inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert not both_inside.broken

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        events = []

        def writer():
            with lock.write():
                events.append("write-start")
                time.sleep(0.05)
                events.append("write-end")

        with lock.read():
            thread = threading.Thread(target=writer)
            thread.start()
            time.sleep(0.02)
            events.append("read-held")

        thread.join(timeout=5)
        with lock.read():
            events.append("read-after")

        assert events == ["read-held", "write-start", "write-end", "read-after"]
