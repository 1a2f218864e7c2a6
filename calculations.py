"""Date windows, weekly metrics, alerts and state building.

Everything here is pure: the same inputs (including ``now``) always produce
the same outputs, and nothing is read from or written to disk.
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from config import Config
from models import (
    AlertResult,
    BudgetInfo,
    DailyCost,
    DateWindow,
    DayInfo,
    DaySnapshot,
    Metrics,
    SevenDayInfo,
    SevenDayStats,
    UsageState,
    WeekInfo,
    WeekMetrics,
    Weekday,
)

DAY = timedelta(hours=24)
ANOMALY_FACTOR = 2.0
HIGH_BUDGET_RATIO = 0.8


def _utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def _day_string(instant: datetime, zone: ZoneInfo) -> str:
    return instant.astimezone(zone).strftime("%Y-%m-%d")


def resolve_window(config: Config, now: datetime | None = None) -> DateWindow:
    """Derive all relative calendar dates for ``now`` in the configured zone.

    Offsets are applied to the UTC instant in whole 24h steps before the
    result is rendered in the target zone, so across a DST change "yesterday"
    is 24 elapsed hours ago rather than one calendar day back.
    """
    zone = ZoneInfo(config.timezone)
    instant = _utc(now)
    local = instant.astimezone(zone)
    weekday = Weekday.from_iso(local.isoweekday())

    days_back = weekday - 1
    if weekday is Weekday.MONDAY and local.hour < config.reset_hour:
        # Budget week has not rolled over yet: still last week
        days_back = 7

    return DateWindow(
        today=_day_string(instant, zone),
        yesterday=_day_string(instant - DAY, zone),
        day_before=_day_string(instant - 2 * DAY, zone),
        three_days_ago=_day_string(instant - 3 * DAY, zone),
        seven_days_ago=_day_string(instant - 7 * DAY, zone),
        tomorrow=_day_string(instant + DAY, zone),
        hour=local.hour,
        dow=weekday.label,
        dow_num=int(weekday),
        week_start=_day_string(instant - days_back * DAY, zone),
        week_end=_day_string(instant + (7 - days_back) * DAY, zone),
    )


def cost_for_date(days: list[DailyCost], date: str) -> float:
    """Sum the cost of every entry for ``date``; duplicates add up."""
    return sum(d.cost for d in days if d.date == date)


def _snapshot(days: list[DailyCost], date: str) -> DaySnapshot:
    matches = [d for d in days if d.date == date]
    return DaySnapshot(
        date=date,
        cost=sum(d.cost for d in matches),
        tokens_input=sum(d.tokens_input for d in matches),
        tokens_output=sum(d.tokens_output for d in matches),
    )


def compute_metrics(config: Config, days: list[DailyCost], window: DateWindow) -> Metrics:
    # Upper edge is bounded by the fetch range [seven_days_ago, tomorrow)
    week_days = [d for d in days if d.date >= window.week_start]
    week_total = sum(d.cost for d in week_days)
    week_day_count = len(week_days)
    projection = (week_total / week_day_count) * 7 if week_day_count > 0 else 0.0

    total_7 = sum(d.cost for d in days)
    avg_7 = total_7 / len(days) if days else 0.0

    ratio = week_total / config.weekly_budget if config.weekly_budget > 0 else 0.0

    return Metrics(
        yesterday=_snapshot(days, window.yesterday),
        day_before=_snapshot(days, window.day_before),
        three_days_ago=_snapshot(days, window.three_days_ago),
        week=WeekMetrics(
            start_date=window.week_start,
            end_date=window.week_end,
            total=week_total,
            projection=projection,
            pct=f"{ratio * 100:.1f}",
            ratio=ratio,
            day_count=week_day_count,
        ),
        seven_days=SevenDayStats(total=total_7, avg=avg_7),
        daily_costs=list(days),
    )


def compute_alerts(config: Config, metrics: Metrics) -> AlertResult:
    alerts: list[str] = []
    protection_mode = False

    yesterday, week, seven_days = metrics.yesterday, metrics.week, metrics.seven_days
    budget = config.weekly_budget

    if seven_days.avg > 0 and yesterday.cost > ANOMALY_FACTOR * seven_days.avg:
        alerts.append(f"anomaly: J-1 ${yesterday.cost:.2f} > 2x avg ${seven_days.avg:.2f}")

    if week.total > config.alert_threshold * budget:
        protection_mode = True
        alerts.append(f"budget_50: ${week.total:.2f}/${budget:.2f}")

    if week.total > HIGH_BUDGET_RATIO * budget:
        alerts.append(f"budget_80: ${week.total:.2f}/${budget:.2f}")

    if week.projection > budget:
        alerts.append(f"projection: ${week.projection:.2f} > ${budget:.2f}")

    return AlertResult(alerts=alerts, protection_mode=protection_mode)


def _day_info(snapshot: DaySnapshot) -> DayInfo:
    return DayInfo(**snapshot.model_dump())


def build_state(
    config: Config,
    current: UsageState,
    metrics: Metrics,
    alert_result: AlertResult,
    now: datetime | None = None,
) -> UsageState:
    return UsageState(
        last_check=int(_utc(now).timestamp() * 1000),
        # Sticky: only an explicit disable clears it
        protection_mode=alert_result.protection_mode or current.protection_mode,
        weekly_reset_day=Weekday.MONDAY.label,
        weekly_reset_hour=config.reset_hour,
        budget=BudgetInfo(
            weekly_limit=config.weekly_budget,
            alert_threshold=config.alert_threshold,
        ),
        current_week=WeekInfo(
            start_date=metrics.week.start_date,
            end_date=metrics.week.end_date,
            total_cost=metrics.week.total,
            projection=metrics.week.projection,
            pct=metrics.week.pct,
        ),
        last_7_days=SevenDayInfo(
            avg_daily=metrics.seven_days.avg,
            total=metrics.seven_days.total,
        ),
        yesterday=_day_info(metrics.yesterday),
        day_before=_day_info(metrics.day_before),
        three_days_ago=_day_info(metrics.three_days_ago),
        daily_costs_7d=[d.model_copy() for d in metrics.daily_costs],
        alerts=list(alert_result.alerts),
        last_alert_ts=current.last_alert_ts,
        error=None,
    )
