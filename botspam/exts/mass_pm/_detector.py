from collections.abc import Awaitable, Callable

import arrow

from botspam.exts.mass_pm._policy import PolicyConfig, Sender, format_alert, should_record
from botspam.exts.mass_pm._sweeper import Sweeper
from botspam.exts.mass_pm._tracker import FingerprintTracker, RecordResult, fingerprint
from botspam.log import get_logger

log = get_logger(__name__)

ConfigSource = Callable[[], PolicyConfig]
Notifier = Callable[[str], Awaitable[None]]
Clock = Callable[[], float]


def utc_timestamp() -> float:
    """Seconds since the epoch, according to the current UTC time."""
    return arrow.utcnow().timestamp()


class MassPMDetector:
    """
    Detects the same direct message content being sent over and over.

    The policy is read from `config_source` once at the start of every operation, so a new snapshot takes
    effect on the next message without any restart. Alerts are handed to `notifier`, and `clock` is used for
    both recording and sweeping.
    """

    def __init__(
        self,
        config_source: ConfigSource,
        notifier: Notifier,
        *,
        clock: Clock = utc_timestamp,
        tracker: FingerprintTracker | None = None,
    ):
        self.config_source = config_source
        self.notifier = notifier
        self.clock = clock
        self.tracker = tracker if tracker is not None else FingerprintTracker()
        self.sweeper = Sweeper(self.tracker)

    @property
    def tracked(self) -> int:
        """Number of distinct message contents currently tracked."""
        return len(self.tracker)

    async def on_private_message(self, sender: Sender, text: str | bytes, *, direct: bool = True) -> RecordResult | None:
        """
        Count a message from `sender` and notify about a flood once the threshold is reached.

        Every message at or above the threshold notifies again for as long as the flood continues.
        Return None when the message isn't tracked at all.
        """
        config = self.config_source()
        if not should_record(config, sender, direct=direct):
            return None

        result = self.tracker.record(fingerprint(text), self.clock(), config.repeat_threshold)
        log.trace(f"Message hash {result.fingerprint.hex()} from {sender.identity} seen {result.count} times.")

        if result.triggered:
            alert = format_alert(sender, config)
            log.info(alert)
            await self.notifier(alert)

        return result

    def on_tick(self, now: float | None = None) -> int:
        """Run one sweep of stale message hashes and return how many were removed."""
        config = self.config_source()
        if now is None:
            now = self.clock()
        return self.sweeper.sweep(now, config.watch_window)
