from datetime import datetime

import pytest

from domain import Shift


def dt(text: str) -> datetime:
    return datetime.fromisoformat(text)


@pytest.fixture
def planned():
    return Shift(id="p1", start=dt("2024-01-01T08:00"))


@pytest.fixture
def running():
    return Shift(id="r1", start=dt("2024-01-01T09:00"), actual_start=dt("2024-01-01T09:00"), running=True)
