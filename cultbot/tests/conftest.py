from __future__ import annotations

import pytest

from cultbot.config import Settings


def _make_settings(**overrides) -> Settings:
    # Fake values only: tests must never talk to the real API or Telegram.
    values = dict(
        host="cult.test",
        st="ST_TOKEN",
        at="AT_TOKEN",
        osname="ios",
        center_id="42",
        workout_ids=("37", "9"),
        slot="07:00:00",
        retry_attempts=3,
        retry_delay_seconds=5,
        http_timeout_seconds=1.0,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def make_settings():
    return _make_settings


@pytest.fixture
def settings() -> Settings:
    return _make_settings()
