"""
Compile locks.

Recompilation of a template is serialized twice: by a per-path thread
lock inside the process and by an exclusive ``flock`` on the template
source across processes. Both waits share one deadline.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Dict, Generator, Optional

from ..utils.constants import LOCK_POLL_INTERVAL_SECONDS
from ..utils.exceptions import LockTimeoutError, TemplateIOError
from ..utils.logging import get_logger

logger = get_logger(__name__)

try:
    import fcntl as _fcntl

    _HAS_FCNTL = True
except ImportError:
    _HAS_FCNTL = False
    logger.warning(
        "fcntl not available (non-POSIX). Template compilation is only serialized within one process."
    )

_thread_locks: Dict[str, threading.Lock] = {}
_thread_locks_guard = threading.Lock()


def _thread_lock(path: Path) -> threading.Lock:
    key = str(path.resolve())
    with _thread_locks_guard:
        lock = _thread_locks.get(key)
        if lock is None:
            lock = _thread_locks[key] = threading.Lock()
        return lock


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(deadline - time.monotonic(), 0.0)


def _flock(fh: IO, path: Path, deadline: Optional[float], timeout: Optional[float]) -> None:
    """Take an exclusive flock on ``fh``, polling until ``deadline``."""
    if not _HAS_FCNTL:
        return
    if deadline is None:
        _fcntl.flock(fh, _fcntl.LOCK_EX)
        return
    while True:
        try:
            _fcntl.flock(fh, _fcntl.LOCK_EX | _fcntl.LOCK_NB)
            return
        except BlockingIOError:
            if time.monotonic() >= deadline:
                raise LockTimeoutError(str(path), timeout) from None
            time.sleep(LOCK_POLL_INTERVAL_SECONDS)


@contextmanager
def compile_lock(path: Path, timeout: Optional[float] = None) -> Generator[IO, None, None]:
    """
    Hold the compile lock for the template source at ``path``.

    Args:
        path: Template source file; it is opened and flocked
        timeout: Seconds to wait for both locks, None to wait forever

    Yields:
        The open source file handle

    Raises:
        LockTimeoutError: If the locks are not acquired in time
        TemplateIOError: If the source cannot be opened or locked
    """
    path = Path(path)
    deadline = None if timeout is None else time.monotonic() + timeout

    lock = _thread_lock(path)
    remaining = _remaining(deadline)
    if not lock.acquire(timeout=-1 if remaining is None else remaining):
        raise LockTimeoutError(str(path), timeout)
    try:
        try:
            fh = open(path, "rb")
        except OSError as e:
            raise TemplateIOError(f"Failed to open template source: {e}", str(path)) from e
        with fh:
            try:
                _flock(fh, path, deadline, timeout)
            except OSError as e:
                raise TemplateIOError(f"Failed to lock template source: {e}", str(path)) from e
            try:
                yield fh
            finally:
                if _HAS_FCNTL:
                    _fcntl.flock(fh, _fcntl.LOCK_UN)
    finally:
        lock.release()
