"""
Per-document lock so that two updates never write the same file at once.
"""
import asyncio
import time
from pathlib import Path
import logging
import hashlib
import os
import tempfile
import fcntl


LOCK_DIR = Path(tempfile.gettempdir()) / "releasetool-locks"


class DocumentLock:
    """
    Exclusive lock on one document.
    Uses flock on a lock file kept outside the working tree (keyed by the
    document's absolute path), so it holds across processes as well as
    across coroutines of one process.
    """

    def __init__(self, document_path: Path, timeout: int = 30, lock_dir: Path = LOCK_DIR):
        """
        Initialize document lock.

        Args:
            document_path: Document to guard
            timeout: Lock acquisition timeout in seconds
            lock_dir: Directory holding lock files
        """
        self.document_path = Path(document_path)
        self.timeout = timeout
        key = hashlib.sha256(str(self.document_path.resolve()).encode("utf-8")).hexdigest()[:16]
        self.lock_dir = Path(lock_dir)
        self.lock_file_path = self.lock_dir / f"{self.document_path.name}.{key}.lock"
        self.lock_file = None
        self.logger = logging.getLogger(__name__)

    async def __aenter__(self):
        """Acquire lock (async context manager)"""
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Release lock (async context manager)"""
        await self.release()
        return False

    async def acquire(self):
        """
        Acquire document lock with timeout.

        Raises:
            TimeoutError: If lock cannot be acquired within timeout
        """
        start_time = time.time()
        self.lock_dir.mkdir(parents=True, exist_ok=True)

        self.logger.debug(f"Attempting to acquire document lock: {self.lock_file_path}")

        while True:
            try:
                self.lock_file = open(self.lock_file_path, 'a')
                fcntl.flock(self.lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

                self.lock_file.truncate(0)
                self.lock_file.write(f"{os.getpid()}\n")
                self.lock_file.flush()

                self.logger.debug(f"Document lock acquired: {self.document_path}")
                return

            except BlockingIOError:
                self.lock_file.close()
                self.lock_file = None
                elapsed = time.time() - start_time

                if elapsed >= self.timeout:
                    self.logger.error(
                        f"Failed to lock {self.document_path} after {self.timeout}s timeout"
                    )
                    raise TimeoutError(
                        f"Could not lock {self.document_path} within {self.timeout}s. "
                        "Another update of this document may be in progress."
                    )

                self.logger.debug(
                    f"Document lock held elsewhere, retrying... "
                    f"({elapsed:.1f}s / {self.timeout}s)"
                )
                await asyncio.sleep(0.05)

            except Exception as e:
                self.logger.error(f"Failed to acquire document lock: {e}")
                if self.lock_file:
                    self.lock_file.close()
                    self.lock_file = None
                raise

    async def release(self):
        """Release document lock"""
        if not self.lock_file:
            return

        try:
            fcntl.flock(self.lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            self.lock_file.close()
            self.lock_file = None
        self.logger.debug(f"Document lock released: {self.document_path}")

    def is_locked(self) -> bool:
        """
        Check if the document is currently locked (non-blocking check).

        Returns:
            True if locked
        """
        if not self.lock_file_path.exists():
            return False

        with open(self.lock_file_path, 'a') as test_file:
            try:
                fcntl.flock(test_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            except BlockingIOError:
                return True
            fcntl.flock(test_file.fileno(), fcntl.LOCK_UN)
        return False
