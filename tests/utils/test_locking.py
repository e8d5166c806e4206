"""Tests for the read/write lock."""

import threading as _threading

import stratum.utils.locking as locking


class TestReadWriteLock:
    """Shared readers, exclusive writers."""

    def test_readers_share(self) -> None:
        """Two readers can hold the lock at once."""
        lock = locking.ReadWriteLock()
        both_inside = _threading.Barrier(2, timeout=5)

        def read() -> None:
            with lock.read():
                both_inside.wait()

        threads = [_threading.Thread(target=read) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert not both_inside.broken

    def test_writer_excludes_readers(self) -> None:
        """A reader waits until the writer releases."""
        lock = locking.ReadWriteLock()
        events: list[str] = []
        writer_inside = _threading.Event()

        def read() -> None:
            writer_inside.wait(timeout=5)
            with lock.read():
                events.append("read")

        reader = _threading.Thread(target=read)
        with lock.write():
            reader.start()
            writer_inside.set()
            reader.join(timeout=0.1)
            events.append("write done")
        reader.join(timeout=5)

        assert events == ["write done", "read"]

    def test_released_on_error(self) -> None:
        """An exception inside a block still releases the lock."""
        lock = locking.ReadWriteLock()
        try:
            with lock.write():
                raise RuntimeError("boom")
        except RuntimeError:
            pass
        with lock.read():
            pass
        with lock.write():
            pass
