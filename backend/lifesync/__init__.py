"""LifeSync backend: Clockify time tracking sync and weekly snapshots."""

from lifesync import logging_setup  # noqa: F401  registers the TRACE level

__version__ = "1.0.0"
