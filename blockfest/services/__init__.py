"""
Services behind the HTTP API and the CLI.
"""

from .file_source import FileSource, LocalFileSource, MemoryFileSource, PollingWatcher
from .vip_registry import VIPRegistry
from .purchase_gate import build_purchase_submission, check_eligibility, resolve_price

__all__ = [
    "FileSource",
    "LocalFileSource",
    "MemoryFileSource",
    "PollingWatcher",
    "VIPRegistry",
    "build_purchase_submission",
    "check_eligibility",
    "resolve_price",
]
