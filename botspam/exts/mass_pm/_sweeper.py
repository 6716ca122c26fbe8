from botspam.exts.mass_pm._tracker import Fingerprint, FingerprintEntry, FingerprintTracker
from botspam.log import get_logger

log = get_logger(__name__)


class Sweeper:
    """Evicts message hashes which haven't been seen for longer than the watch window."""

    def __init__(self, tracker: FingerprintTracker):
        self.tracker = tracker

    def sweep(self, now: float, watch_window: float) -> int:
        """Run one eviction pass over the tracker and return how many hashes were removed."""
        removed = self.tracker.evict_stale(now, watch_window, on_evict=self._note_eviction)

        if removed:
            log.debug(f"Sweep removed {removed} stale message hashes, {len(self.tracker)} still tracked.")
        else:
            log.trace("Sweep found no stale message hashes.")

        return removed

    @staticmethod
    def _note_eviction(fingerprint: Fingerprint, entry: FingerprintEntry) -> None:
        log.debug(f"Removing hash {fingerprint.hex()} from the message map (seen {entry.count} times).")
