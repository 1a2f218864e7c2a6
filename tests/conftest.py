"""Shared fixtures: an isolated config and a reference week of costs."""

from datetime import datetime, timezone

import pytest

from config import Config
from models import DailyCost, DateWindow


@pytest.fixture
def config(tmp_path) -> Config:
    return Config(
        proxy_url="http://proxy.local",
        proxy_token="test",
        state_file=tmp_path / "memory" / "claude-usage-state.json",
        weekly_budget=625.0,
        alert_threshold=0.5,
        reset_hour=21,
        timezone="Europe/Paris",
        usd_to_eur=0.92,
        alert_phone_number=None,
    )


@pytest.fixture
def wednesday() -> datetime:
    # 15:00 in Paris
    return datetime(2026, 2, 18, 14, 0, tzinfo=timezone.utc)


@pytest.fixture
def window() -> DateWindow:
    return DateWindow(
        today="2026-02-18",
        yesterday="2026-02-17",
        day_before="2026-02-16",
        three_days_ago="2026-02-15",
        seven_days_ago="2026-02-11",
        tomorrow="2026-02-19",
        hour=15,
        dow="wednesday",
        dow_num=3,
        week_start="2026-02-16",
        week_end="2026-02-23",
    )


@pytest.fixture
def days() -> list[DailyCost]:
    return [
        DailyCost(date="2026-02-11", cost=80),
        DailyCost(date="2026-02-12", cost=90),
        DailyCost(date="2026-02-13", cost=75),
        DailyCost(date="2026-02-14", cost=85),
        DailyCost(date="2026-02-15", cost=70),
        DailyCost(date="2026-02-16", cost=100, tokens_input=1000, tokens_output=200),
        DailyCost(date="2026-02-17", cost=95, tokens_input=900, tokens_output=150),
    ]
