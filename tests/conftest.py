"""Shared fixtures for RemindStream tests.

Zones are always passed explicitly; tests that need a local zone use the
`local_tz` fixture (Europe/Berlin, observes DST).
"""

from __future__ import annotations

from zoneinfo import ZoneInfo

import pytest


@pytest.fixture
def local_tz() -> ZoneInfo:
    """Europe/Berlin, for DST and local-date testing."""
    return ZoneInfo("Europe/Berlin")
