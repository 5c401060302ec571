"""Shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Manually advanced clock returning aware datetimes."""

    def __init__(self):
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock()
