"""Logging levels and root configuration.

Registers a TRACE level (5) below DEBUG and a ``Logger.trace`` method on
import, so every module logger can call ``log.trace(...)``.
"""

import logging

TRACE = 5
logging.TRACE = TRACE
logging.addLevelName(TRACE, "TRACE")


def trace_method(self, msg, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, msg, args, **kwargs)


logging.Logger.trace = trace_method


def configure_logging(level_name: str) -> None:
    """
    Configure the root logger from a level name.

    VERBOSE keeps the root at DEBUG but opens up HTTP client and connector
    traces; TRACE opens everything. Other levels quiet httpx/httpcore.
    """
    level_str = level_name.upper()
    level = TRACE if level_str == "TRACE" else getattr(logging, level_str, logging.INFO)
    if logging.getLogger().hasHandlers():
        return

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)-8s - %(message)s'
    )
    root = logging.getLogger()

    if level_str == "VERBOSE":
        root_level = logging.DEBUG
        http_level = logging.DEBUG
        connectors_level = TRACE
        sync_level = logging.DEBUG
        root.info("VERBOSE mode enabled: HTTP details and connector traces active for debugging.")
    elif level_str == "TRACE":
        root_level = TRACE
        http_level = TRACE
        connectors_level = TRACE
        sync_level = TRACE
    else:
        root_level = level
        http_level = logging.WARNING
        connectors_level = logging.DEBUG if level <= logging.DEBUG else level
        sync_level = root_level

    root.setLevel(root_level)
    logging.getLogger("httpcore").setLevel(http_level)
    logging.getLogger("httpx").setLevel(http_level)
    logging.getLogger("lifesync.connectors").setLevel(connectors_level)
    logging.getLogger("lifesync.services.sync_service").setLevel(sync_level)

    if level_str == "TRACE":
        root.trace("Trace logging enabled at startup (verbose details).")
    else:
        root.debug("Debug logging enabled at startup.")
