"""Shared route dependencies."""

from typing import Callable

from lifesync.connectors.base import TimeTrackingConnector
from lifesync.connectors.clockify_connector import ClockifyConnector


def get_client_factory() -> Callable[[str], TimeTrackingConnector]:
    """Builds Clockify clients from a decrypted API key; overridden in tests."""
    return ClockifyConnector
