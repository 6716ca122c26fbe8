from typing import NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from botspam.constants import _MassPM
from botspam.log import get_logger

log = get_logger(__name__)

ALERT_TEMPLATE = "Mass PM flood triggered by: {identity}@{origin} (limit was {threshold} in {window} seconds)"


class Sender(NamedTuple):
    """Who sent a direct message, as far as the flood policy is concerned."""

    identity: str
    origin: str
    privileged: bool = False


class PolicyConfig(BaseModel):
    """An immutable snapshot of the mass PM policy, replaced wholesale whenever it changes."""

    model_config = ConfigDict(frozen=True)

    repeat_threshold: int = Field(default=10, ge=1)
    watch_window: int = Field(default=600, gt=0)
    ignore_privileged: bool = True
    enabled: bool = False

    @classmethod
    def from_settings(cls, settings: _MassPM) -> "PolicyConfig":
        """Build a policy out of the `MassPM` configuration section."""
        return cls(
            repeat_threshold=settings.repeats,
            watch_window=settings.watch_time,
            ignore_privileged=settings.ignore_opers,
            enabled=settings.enabled,
        )

    def toggled(self, enabled: bool) -> "PolicyConfig":
        """Return a copy of this policy with the feature switched on or off."""
        return self.model_copy(update={"enabled": enabled})


def should_record(config: PolicyConfig, sender: Sender, *, direct: bool) -> bool:
    """Whether a message should count towards the flood threshold at all."""
    if not config.enabled:
        return False

    if not direct:
        return False

    if config.ignore_privileged and sender.privileged:
        log.trace(f"Not tracking direct message from privileged sender {sender.identity}.")
        return False

    return True


def format_alert(sender: Sender, config: PolicyConfig) -> str:
    """Return the operator notification for a flood triggered by `sender`."""
    return ALERT_TEMPLATE.format(
        identity=sender.identity,
        origin=sender.origin,
        threshold=config.repeat_threshold,
        window=config.watch_window,
    )
