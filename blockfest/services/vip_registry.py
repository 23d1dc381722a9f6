"""
VIP registry: an in-memory view of the insider list CSV.

Lookups are O(1) against a dict keyed by the normalized
"name:roll:wallet" composite. The dict is rebuilt from scratch on every load
and swapped in with a single assignment, so readers see either the previous
snapshot or the new one, never a half-built map.
"""

import logging
import time
from typing import Dict, List, Optional, Tuple

from ..config import DEFAULT_VIP_LIST
from ..errors import CacheUnavailable, SourceUnavailable
from ..models import LoadReport, SkippedRow, VIPRecord
from .file_source import FileSource, PollingWatcher

logger = logging.getLogger(__name__)

DELIMITER = ","
FIELD_COUNT = 3


def normalize(value: str) -> str:
    return (value or "").strip().lower()


def make_key(name: str, roll_number: str, wallet_address: str) -> str:
    return ":".join(normalize(v) for v in (name, roll_number, wallet_address))


def parse_vip_list(content: str) -> Tuple[Dict[str, VIPRecord], List[SkippedRow]]:
    """
    Parse the insider list. The first line is a header and is always skipped.

    Returns:
        (entries keyed by composite key, rows that were skipped)
    """
    entries: Dict[str, VIPRecord] = {}
    skipped: List[SkippedRow] = []

    lines = content.splitlines()
    for line_number, raw in enumerate(lines[1:], start=2):
        row = raw.strip()
        if not row:
            continue

        fields = [item.strip() for item in row.split(DELIMITER)]
        if len(fields) != FIELD_COUNT:
            reason = f"expected {FIELD_COUNT} fields, got {len(fields)}"
            logger.warning(f"Skipping VIP row {line_number}: {reason}")
            skipped.append(SkippedRow(line_number, raw, reason))
            continue

        name, roll_number, wallet_address = fields
        if not (name and roll_number and wallet_address):
            reason = "empty field"
            logger.warning(f"Skipping VIP row {line_number}: {reason}")
            skipped.append(SkippedRow(line_number, raw, reason))
            continue

        # Later duplicates overwrite earlier ones
        entries[make_key(name, roll_number, wallet_address)] = VIPRecord(name, roll_number, wallet_address)

    return entries, skipped


class VIPRegistry:
    """File-backed VIP allowlist with change-triggered reload"""

    def __init__(self, source: FileSource, watch_interval: float = 1.0, bootstrap: bool = True):
        """
        Args:
            source: where the insider list lives
            watch_interval: seconds between modification checks
            bootstrap: create the file with example rows when it is missing
        """
        self.source = source
        self.watch_interval = watch_interval
        self.bootstrap = bootstrap
        self._entries: Optional[Dict[str, VIPRecord]] = None
        self._last_report: Optional[LoadReport] = None
        self._watcher: Optional[PollingWatcher] = None

    # -------- lifecycle --------

    def open(self) -> "VIPRegistry":
        if self._watcher is not None:
            return self
        if self.bootstrap:
            self.ensure_exists()

        # Baseline mtime before the first read; edits made during it count as changes
        self._watcher = PollingWatcher(self.source, self.on_change, self.watch_interval)
        try:
            self.load()
        except SourceUnavailable as e:
            logger.error(f"Initial VIP list load failed: {e}")

        self._watcher.start()
        return self

    def close(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
            self._watcher = None

    def __enter__(self) -> "VIPRegistry":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # -------- loading --------

    def ensure_exists(self) -> bool:
        """Create the insider list with a header and example rows; True if created"""
        if self.source.exists():
            logger.info(f"Using existing VIP list at {self.source.name}")
            return False
        logger.info(f"Creating new VIP list at {self.source.name}...")
        self.source.write_text(DEFAULT_VIP_LIST)
        return True

    def load(self) -> LoadReport:
        """Read and parse the whole file, then swap the new map in"""
        try:
            content = self.source.read_text()
        except (OSError, UnicodeDecodeError) as e:
            self._entries = None
            self._last_report = None
            raise SourceUnavailable(f"Cannot read VIP list {self.source.name}: {e}") from e

        entries, skipped = parse_vip_list(content)
        report = LoadReport(entries=len(entries), loaded_at=time.time(), skipped=skipped)

        self._entries = entries
        self._last_report = report
        logger.info(f"VIP list cache updated. Total entries: {len(entries)}, skipped rows: {len(skipped)}")
        return report

    def on_change(self) -> None:
        try:
            self.load()
        except SourceUnavailable as e:
            logger.error(f"VIP list reload failed, cache is now unavailable: {e}")

    # -------- queries --------

    @property
    def available(self) -> bool:
        return self._entries is not None

    @property
    def last_report(self) -> Optional[LoadReport]:
        return self._last_report

    @property
    def watching(self) -> bool:
        return self._watcher is not None and self._watcher.running

    def _snapshot(self) -> Dict[str, VIPRecord]:
        entries = self._entries
        if entries is None:
            raise CacheUnavailable("VIP list is unavailable")
        return entries

    def lookup(self, name: str, roll_number: str, wallet_address: str) -> Optional[str]:
        """Return the stored wallet address, or None if the triple is not listed"""
        record = self._snapshot().get(make_key(name, roll_number, wallet_address))
        return record.wallet_address if record else None

    def records(self) -> List[VIPRecord]:
        return list(self._snapshot().values())

    def search(self, partial_name: str = "", partial_roll: str = "") -> List[VIPRecord]:
        """Records whose name or roll number contains the given fragments"""
        name_part = normalize(partial_name)
        roll_part = normalize(partial_roll)
        if not name_part and not roll_part:
            return []
        return [
            record for record in self._snapshot().values()
            if (name_part and name_part in record.name.lower())
            or (roll_part and roll_part in record.roll_number.lower())
        ]

    def __len__(self) -> int:
        return len(self._entries or {})
