import hashlib
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple

Fingerprint = bytes
EvictionCallback = Callable[[Fingerprint, "FingerprintEntry"], None]


def fingerprint(text: str | bytes) -> Fingerprint:
    """Return the MD5 digest of `text`; identical message contents always share a fingerprint."""
    if isinstance(text, str):
        # Lone surrogates can't be encoded strictly, and every message has to hash.
        text = text.encode("utf-8", "surrogatepass")
    return hashlib.md5(text, usedforsecurity=False).digest()


@dataclass
class FingerprintEntry:
    """How often a message content has been seen, and when it was last seen."""

    count: int
    last_seen: float


class RecordResult(NamedTuple):
    """The outcome of recording one message."""

    fingerprint: Fingerprint
    count: int
    triggered: bool


class FingerprintTracker:
    """
    Counts occurrences of message fingerprints.

    Every entry is keyed by fingerprint and holds a count along with the time of the latest observation.
    Entries are only ever added or updated by `record`, and only ever removed by `evict_stale`.

    All access to the underlying mapping goes through a single lock. `record` holds it for a constant amount
    of work, while `evict_stale` takes it once per candidate rather than for the whole scan.
    """

    def __init__(self):
        self._entries: dict[Fingerprint, FingerprintEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, fingerprint_: Fingerprint) -> bool:
        with self._lock:
            return fingerprint_ in self._entries

    def count_of(self, fingerprint_: Fingerprint) -> int:
        """Return how many times `fingerprint_` has been recorded since it started being tracked, or 0."""
        with self._lock:
            entry = self._entries.get(fingerprint_)
            return entry.count if entry else 0

    def record(self, fingerprint_: Fingerprint, now: float, threshold: int) -> RecordResult:
        """
        Record an observation of `fingerprint_` at `now`.

        The result is triggered once the count reaches `threshold`, and stays triggered for every further
        observation until the entry is evicted.
        """
        with self._lock:
            entry = self._entries.get(fingerprint_)
            if entry is None:
                entry = self._entries[fingerprint_] = FingerprintEntry(count=0, last_seen=now)

            entry.count += 1
            entry.last_seen = now
            count = entry.count

        return RecordResult(fingerprint_, count, count >= threshold)

    def evict_stale(self, now: float, watch_window: float, on_evict: EvictionCallback | None = None) -> int:
        """
        Remove every entry which was last seen more than `watch_window` seconds before `now`.

        Keys are snapshotted first, so fingerprints first recorded during the scan are left for the next pass.
        Each candidate is checked again under the lock before removal, as it may have been refreshed since.
        `on_evict` is called with each removed entry once the lock is released.

        Return the number of removed entries.
        """
        with self._lock:
            candidates = list(self._entries)

        removed = 0
        for key in candidates:
            with self._lock:
                entry = self._entries.get(key)
                if entry is None or now - entry.last_seen <= watch_window:
                    continue
                del self._entries[key]

            removed += 1
            if on_evict is not None:
                on_evict(key, entry)

        return removed
