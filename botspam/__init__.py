from typing import TYPE_CHECKING

from botspam import log

if TYPE_CHECKING:
    from botspam.bot import Bot

log.setup()

instance: "Bot" = None  # Global Bot instance.
