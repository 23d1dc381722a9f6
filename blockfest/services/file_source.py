"""
File access and change watching for the VIP list.

The registry only talks to a FileSource, so tests can swap in MemoryFileSource
and drive PollingWatcher.poll() by hand instead of touching the filesystem.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class FileSource:
    """Interface for a readable, watchable text resource"""

    name = "<source>"

    def read_text(self) -> str:
        raise NotImplementedError

    def write_text(self, content: str) -> None:
        raise NotImplementedError

    def exists(self) -> bool:
        raise NotImplementedError

    def modified_time(self) -> Optional[float]:
        """Modification timestamp, or None when the resource is missing"""
        raise NotImplementedError


class LocalFileSource(FileSource):
    def __init__(self, path):
        self.path = Path(path)
        self.name = str(self.path)

    def read_text(self) -> str:
        with open(self.path, "r", encoding="utf-8") as f:
            return f.read()

    def write_text(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            f.write(content)

    def exists(self) -> bool:
        return self.path.exists()

    def modified_time(self) -> Optional[float]:
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None


class MemoryFileSource(FileSource):
    """In-memory resource; every write bumps the modification time"""

    def __init__(self, content: Optional[str] = None, name: str = "<memory>"):
        self.name = name
        self._content = content
        self._mtime = 1.0 if content is not None else None
        self.fail_reads = False

    def read_text(self) -> str:
        if self._content is None:
            raise FileNotFoundError(f"No such resource: {self.name}")
        if self.fail_reads:
            raise PermissionError(f"Permission denied: {self.name}")
        return self._content

    def write_text(self, content: str) -> None:
        self._content = content
        self._mtime = (self._mtime or 0.0) + 1.0

    def delete(self) -> None:
        self._content = None
        self._mtime = None

    def exists(self) -> bool:
        return self._content is not None

    def modified_time(self) -> Optional[float]:
        return self._mtime


class PollingWatcher:
    """
    Background watcher that calls on_change once per detected modification.

    Changes that happen between two polls coalesce into a single callback.
    A resource that disappears counts as a change, so the listener gets to
    find out that it can no longer be read.
    """

    def __init__(self, source: FileSource, on_change: Callable[[], None], interval: float = 1.0):
        self.source = source
        self.on_change = on_change
        self.interval = interval
        self._last_mtime = source.modified_time()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="vip-list-watcher", daemon=True)
        self._thread.start()
        logger.info(f"Watching {self.source.name} for changes every {self.interval}s")

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.interval * 2)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll(self) -> bool:
        """Check the source once; returns True if a change was dispatched"""
        current = self.source.modified_time()
        if current == self._last_mtime:
            return False
        self._last_mtime = current
        logger.info(f"{self.source.name} changed, reloading...")
        try:
            self.on_change()
        except Exception as e:
            logger.error(f"Change handler failed for {self.source.name}: {e}")
        return True

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.poll()
