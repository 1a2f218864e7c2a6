import json
import logging
import os
import tempfile
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

import calculations
from collectors.proxy import ProxyError, fetch_full_report
from config import Config
from models import DailyCost, UsageState

log = logging.getLogger(__name__)

Fetcher = Callable[[Config, str, str], list[DailyCost]]


def default_state() -> UsageState:
    return UsageState()


def _parse_state(raw: dict) -> UsageState:
    """Validate field by field so one bad field does not discard the rest."""
    try:
        return UsageState.model_validate(raw)
    except ValidationError:
        pass

    kept = {}
    for key, value in raw.items():
        try:
            UsageState.model_validate({key: value})
        except ValidationError as exc:
            log.warning("Ignoring invalid state field %r: %s", key, exc.errors()[0]["msg"])
            continue
        kept[key] = value
    return UsageState.model_validate(kept)


def load_state(path: Path) -> UsageState:
    if not path.exists():
        return default_state()
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.warning("Unreadable state file %s, using defaults: %s", path, exc)
        return default_state()
    if not isinstance(raw, dict):
        log.warning("State file %s does not hold an object, using defaults", path)
        return default_state()
    return _parse_state(raw)


def save_state(path: Path, state: UsageState) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = state.model_dump_json(by_alias=True, indent=2) + "\n"
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".json.tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload)
        os.replace(tmp_path, path)
    except Exception:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def _now_ms(now: datetime | None) -> int:
    now = now or datetime.now(timezone.utc)
    return int(now.timestamp() * 1000)


def record_failure(path: Path, message: str, now: datetime | None = None) -> UsageState:
    """Stamp the last good state with an error, keeping its figures visible."""
    state = load_state(path)
    state.error = message
    state.last_check = _now_ms(now)
    save_state(path, state)
    return state


def refresh(
    config: Config,
    now: datetime | None = None,
    fetch: Fetcher = fetch_full_report,
) -> UsageState:
    """Run one check cycle: fetch, compute, persist."""
    window = calculations.resolve_window(config, now)
    try:
        days = fetch(config, window.seven_days_ago, window.tomorrow)
    except ProxyError as exc:
        log.error("Check failed: %s", exc)
        record_failure(config.state_file, str(exc), now)
        raise

    metrics = calculations.compute_metrics(config, days, window)
    alert_result = calculations.compute_alerts(config, metrics)
    current = load_state(config.state_file)
    new_state = calculations.build_state(config, current, metrics, alert_result, now)
    save_state(config.state_file, new_state)

    if alert_result.alerts:
        log.warning("Alerts: %s", " | ".join(alert_result.alerts))
    log.info(
        "Week %s: $%.2f (%s%%), protection=%s",
        metrics.week.start_date, metrics.week.total, metrics.week.pct, new_state.protection_mode,
    )
    return new_state
