import logging
import os
import sys
from logging import handlers
from pathlib import Path

import coloredlogs
import sentry_sdk
from pydis_core.utils import logging as core_logging
from sentry_sdk.integrations.asyncio import AsyncioIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from botspam import constants

get_logger = core_logging.get_logger

LOG_FILE = Path("logs", "botspam.log")

# Set to INFO regardless of debug mode, their debug output is mostly gateway chatter.
NOISY_LOGGERS = ("discord.gateway", "discord.http", "discord.client")


def setup() -> None:
    """Configure console output, the optional log file and the trace loggers."""
    root_log = get_logger()

    if constants.FILE_LOGS:
        LOG_FILE.parent.mkdir(exist_ok=True)
        file_handler = handlers.RotatingFileHandler(LOG_FILE, maxBytes=5 * 2**20, backupCount=7, encoding="utf8")
        file_handler.setFormatter(core_logging.log_format)
        root_log.addHandler(file_handler)

    _install_coloredlogs(root_log)

    root_log.setLevel(logging.DEBUG if constants.DEBUG_MODE else logging.INFO)
    for name in NOISY_LOGGERS:
        get_logger(name).setLevel(logging.INFO)

    set_trace_loggers(constants.Bot.trace_loggers)


def _install_coloredlogs(root_log: logging.Logger) -> None:
    """Log to stdout through coloredlogs, unless its styles have been overridden in the environment."""
    if "COLOREDLOGS_LEVEL_STYLES" not in os.environ:
        coloredlogs.DEFAULT_LEVEL_STYLES = coloredlogs.DEFAULT_LEVEL_STYLES | {
            "trace": {"color": 246},
            "debug": coloredlogs.DEFAULT_LEVEL_STYLES["info"],
            "critical": {"background": "red"},
        }

    if "COLOREDLOGS_LOG_FORMAT" not in os.environ:
        coloredlogs.DEFAULT_LOG_FORMAT = core_logging.log_format._fmt

    coloredlogs.install(level=core_logging.TRACE_LEVEL, logger=root_log, stream=sys.stdout)


def set_trace_loggers(level_filter: str) -> None:
    """
    Set loggers to the trace level according to `level_filter`, taken from `BOT_TRACE_LOGGERS`.

    "*" traces everything. Otherwise the value is a comma separated list of logger names,
    e.g. `botspam.exts.mass_pm._detector,botspam.exts.mass_pm._sweeper`.
    """
    if not level_filter:
        return

    if level_filter.startswith("*"):
        get_logger().setLevel(core_logging.TRACE_LEVEL)
        return

    for name in filter(None, (part.strip() for part in level_filter.split(","))):
        get_logger(name).setLevel(core_logging.TRACE_LEVEL)


def setup_sentry() -> None:
    """Report warnings and errors to Sentry, keeping lower levels as breadcrumbs."""
    sentry_sdk.init(
        dsn=constants.Bot.sentry_dsn,
        integrations=[
            LoggingIntegration(level=logging.DEBUG, event_level=logging.WARNING),
            AsyncioIntegration(),
        ],
        release=f"botspam@{os.environ.get('GIT_SHA', 'development')}",
    )
