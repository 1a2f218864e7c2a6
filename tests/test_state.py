import json
from datetime import datetime, timezone

import httpx
import pytest

from collectors.proxy import ProxyError, fetch_full_report
from models import DailyCost, UsageState
from state import default_state, load_state, record_failure, refresh, save_state


def test_load_state_missing_file_returns_defaults(tmp_path):
    s = load_state(tmp_path / "nope.json")

    assert s == default_state()
    assert s.protection_mode is False
    assert s.alerts == []
    assert s.error is None
    assert s.budget.weekly_limit == 625.0


def test_load_state_corrupt_file_returns_defaults(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    assert load_state(path) == default_state()


def test_load_state_non_object_returns_defaults(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    assert load_state(path) == default_state()


def test_load_state_fills_missing_nested_fields(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({
        "lastCheck": 1700000000000,
        "protection_mode": True,
        "budget": {"weekly_limit": 400},
        "some_future_field": "ignored",
    }), encoding="utf-8")

    s = load_state(path)

    assert s.last_check == 1700000000000
    assert s.protection_mode is True
    assert s.budget.weekly_limit == 400
    assert s.budget.alert_threshold == 0.5
    assert s.current_week.total_cost == 0


def test_load_state_invalid_field_falls_back_alone(tmp_path):
    path = tmp_path / "state.json"
    path.write_text(json.dumps({
        "protection_mode": True,
        "current_week": "garbage",
        "alerts": ["budget_50: $400.00/$625.00"],
    }), encoding="utf-8")

    s = load_state(path)

    assert s.protection_mode is True
    assert s.alerts == ["budget_50: $400.00/$625.00"]
    assert s.current_week.start_date == ""


def test_save_state_writes_json_with_trailing_newline(tmp_path):
    path = tmp_path / "nested" / "dir" / "state.json"
    state = UsageState(last_check=42, protection_mode=True, alerts=["x"])

    save_state(path, state)

    raw = path.read_text(encoding="utf-8")
    assert raw.endswith("}\n")
    data = json.loads(raw)
    assert data["lastCheck"] == 42
    assert data["protection_mode"] is True
    assert data["error"] is None
    assert list(path.parent.iterdir()) == [path]


def test_save_then_load_keeps_state(tmp_path):
    path = tmp_path / "state.json"
    state = UsageState(
        last_check=42,
        daily_costs_7d=[DailyCost(date="2026-02-16", cost=1.5, tokens_input=10)],
        last_alert_ts=99,
    )
    save_state(path, state)

    assert load_state(path) == state


def test_record_failure_keeps_last_good_values(tmp_path):
    path = tmp_path / "state.json"
    good = UsageState(last_check=1, alerts=["budget_50: $400.00/$625.00"], protection_mode=True)
    good.current_week.total_cost = 400
    save_state(path, good)
    now = datetime(2026, 2, 18, 14, 0, tzinfo=timezone.utc)

    s = record_failure(path, "Proxy HTTP 500: Internal Server Error", now)

    assert s.error == "Proxy HTTP 500: Internal Server Error"
    assert s.last_check == int(now.timestamp() * 1000)
    assert s.current_week.total_cost == 400
    assert s.alerts == ["budget_50: $400.00/$625.00"]
    assert load_state(path) == s


def test_refresh_runs_full_cycle(config, days, wednesday):
    calls = []

    def fetch(cfg, start, end):
        calls.append((start, end))
        return days

    save_state(config.state_file, UsageState(protection_mode=True, error="old", last_alert_ts=7))

    s = refresh(config, now=wednesday, fetch=fetch)

    assert calls == [("2026-02-11", "2026-02-19")]
    assert s.current_week.total_cost == 195
    assert s.protection_mode is True
    assert s.error is None
    assert s.last_alert_ts == 7
    assert load_state(config.state_file) == s


def test_refresh_records_failure_and_reraises(config, wednesday):
    def fetch(cfg, start, end):
        raise ProxyError("Proxy timeout - server may be waking up (cold start). Retry in 1-2 min.")

    save_state(config.state_file, UsageState(alerts=["projection: $700.00 > $625.00"]))

    with pytest.raises(ProxyError):
        refresh(config, now=wednesday, fetch=fetch)

    s = load_state(config.state_file)
    assert s.error.startswith("Proxy timeout")
    assert s.last_check == int(wednesday.timestamp() * 1000)
    assert s.alerts == ["projection: $700.00 > $625.00"]


def test_refresh_success_clears_previous_error(config, days, wednesday):
    save_state(config.state_file, UsageState(error="Proxy HTTP 502: Bad Gateway"))

    s = refresh(config, now=wednesday, fetch=lambda cfg, start, end: days)

    assert s.error is None


def test_refresh_records_malformed_usage_report(config, wednesday):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/cost_report"):
            return httpx.Response(200, json={"data": [
                {"starting_at": "2026-02-17T00:00:00Z", "results": [{"amount": "95"}]},
            ]})
        return httpx.Response(200, json={"data": [
            {"starting_at": "2026-02-17T00:00:00Z", "results": [{"input_tokens": "12"}]},
        ]})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    save_state(config.state_file, UsageState(alerts=["projection: $700.00 > $625.00"]))

    with pytest.raises(ProxyError):
        refresh(
            config,
            now=wednesday,
            fetch=lambda cfg, start, end: fetch_full_report(cfg, start, end, client=client),
        )

    s = load_state(config.state_file)
    assert s.error.startswith("Proxy returned a malformed usage report")
    assert s.last_check == int(wednesday.timestamp() * 1000)
    assert s.alerts == ["projection: $700.00 > $625.00"]
