import logging
from datetime import datetime, timezone
from pathlib import Path

from config import Config
from models import ProtectionStatus, UsageState
from state import load_state, save_state

log = logging.getLogger(__name__)


def get_protection_status(config: Config, state: UsageState) -> ProtectionStatus:
    last_check = (
        datetime.fromtimestamp(state.last_check / 1000, tz=timezone.utc).isoformat()
        if state.last_check
        else "never"
    )
    pct = state.current_week.pct or "0"

    reason = "Under budget threshold"
    if state.protection_mode:
        reason = (
            f"Weekly cost at {pct}% of budget "
            f"(${state.current_week.total_cost:.2f}/${config.weekly_budget:.2f})"
        )

    return ProtectionStatus(
        enabled=state.protection_mode,
        reason=reason,
        week_total=state.current_week.total_cost,
        weekly_budget=config.weekly_budget,
        week_pct=pct,
        last_check=last_check,
    )


def _set_protection(path: Path, enabled: bool) -> UsageState:
    state = load_state(path)
    state.protection_mode = enabled
    save_state(path, state)
    log.info("Protection mode %s", "enabled" if enabled else "disabled")
    return state


def enable_protection(path: Path) -> UsageState:
    return _set_protection(path, True)


def disable_protection(path: Path) -> UsageState:
    """The only way protection mode is ever cleared."""
    return _set_protection(path, False)
