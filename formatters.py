"""Text, JSON and HTML renderings of the persisted usage state.

Amounts are stored in USD; EUR figures are derived here with the configured
rate and never written back.
"""

import html
from datetime import datetime, timezone
from typing import Literal
from zoneinfo import ZoneInfo

from config import Config
from models import ProtectionStatus, UsageState

Format = Literal["text", "json", "html"]

RULE = "─" * 45
BAR_WIDTH = 20


# --- Currency helpers ---

def _eur(usd: float, config: Config) -> float:
    return usd * config.eur_rate


def format_eur(usd: float, config: Config) -> str:
    return f"€{_eur(usd, config):.2f}"


def format_dual(usd: float, config: Config) -> str:
    return f"${usd:.2f} (€{_eur(usd, config):.2f})"


def format_dual_budget(usd: float, config: Config) -> str:
    return f"${usd:.0f} (€{_eur(usd, config):.0f})"


def _level(pct: float) -> str:
    if pct >= 80:
        return "!!"
    if pct >= 50:
        return "!"
    return ""


def _projection_label(projection: float, config: Config) -> str:
    label = format_dual(projection, config)
    if projection > config.weekly_budget:
        return f"{label} ⚠️"
    return label


def _last_check_label(state: UsageState, config: Config) -> str:
    if not state.last_check:
        return "never"
    ts = datetime.fromtimestamp(state.last_check / 1000, tz=timezone.utc)
    return ts.astimezone(ZoneInfo(config.timezone)).strftime("%Y-%m-%d %H:%M:%S %Z")


# --- Text ---

def _format_text(state: UsageState, config: Config) -> str:
    week = state.current_week
    pct = week.pct or "0"
    lines = ["Claude Usage Report", RULE]

    if state.error:
        lines.append(f"⚠️  Last check failed: {state.error}")
        lines.append("   Figures below are from the last successful check.")
        lines.append("")

    lines.append(f"Protection mode: {'🛡️  ACTIVE' if state.protection_mode else '✅ OFF'}")
    lines.append("")

    lines.append("📊 Current Week")
    lines.append(f"  Period: {week.start_date} → {week.end_date}")
    lines.append(
        f"  Total:  {format_dual(week.total_cost, config)} / "
        f"{format_dual_budget(config.weekly_budget, config)}"
    )
    lines.append(f"  Budget: {pct}% {_level(float(pct))}".rstrip())
    lines.append(f"  Proj:   {_projection_label(week.projection, config)}")
    lines.append("")

    lines.append("📅 Recent Days")
    lines.append(f"  J-1 ({state.yesterday.date}):  {format_dual(state.yesterday.cost, config)}")
    lines.append(f"  J-2 ({state.day_before.date}):  {format_dual(state.day_before.cost, config)}")
    lines.append(f"  J-3 ({state.three_days_ago.date}):  {format_dual(state.three_days_ago.cost, config)}")
    lines.append("")

    lines.append("📈 7-Day Stats")
    lines.append(f"  Total:   {format_dual(state.last_7_days.total, config)}")
    lines.append(f"  Avg/day: {format_dual(state.last_7_days.avg_daily, config)}")
    lines.append("")

    if state.alerts:
        lines.append("⚠️  Alerts")
        lines.extend(f"  • {a}" for a in state.alerts)
        lines.append("")

    if state.daily_costs_7d:
        lines.append(format_seven_days_detail(state, config))
        lines.append("")

    lines.append(f"Last check: {_last_check_label(state, config)}")
    return "\n".join(lines)


# --- JSON ---

def _format_json(state: UsageState) -> str:
    return state.model_dump_json(by_alias=True, indent=2)


# --- HTML (email briefings) ---

def _format_html(state: UsageState, config: Config) -> str:
    week = state.current_week
    pct = float(week.pct or 0)
    cost_color = "#dc3545" if pct >= 80 else "#ffc107" if pct >= 50 else "#28a745"
    proj_color = "#dc3545" if week.projection > config.weekly_budget else "#28a745"
    badge = (
        '<span style="color:#dc3545;font-weight:bold">🛡️ ACTIVE</span>'
        if state.protection_mode
        else '<span style="color:#28a745">✅ OFF</span>'
    )

    def row(label: str, value: str, style: str = "") -> str:
        return (
            "    <tr>\n"
            f'      <td style="padding:4px 12px 4px 0">{label}</td>\n'
            f'      <td style="padding:4px 0;{style}">{value}</td>\n'
            "    </tr>"
        )

    rows = [
        row(
            "<strong>Week total</strong>",
            f"{format_eur(week.total_cost, config)} / €{_eur(config.weekly_budget, config):.0f} "
            f"({html.escape(week.pct or '0')}%)",
            f"color:{cost_color};font-weight:bold",
        ),
        row("<strong>Projection</strong>", format_eur(week.projection, config), f"color:{proj_color}"),
        row(f"<strong>J-1</strong> ({state.yesterday.date})", format_eur(state.yesterday.cost, config)),
        row(f"<strong>J-2</strong> ({state.day_before.date})", format_eur(state.day_before.cost, config)),
        row(f"<strong>J-3</strong> ({state.three_days_ago.date})", format_eur(state.three_days_ago.cost, config)),
        row("<strong>7-day avg</strong>", f"{format_eur(state.last_7_days.avg_daily, config)}/day"),
    ]

    extra = ""
    if state.alerts:
        alerts = " | ".join(html.escape(a) for a in state.alerts)
        extra += f'\n  <p style="color:#dc3545;margin-top:8px"><strong>⚠️ Alerts:</strong> {alerts}</p>'
    if state.error:
        extra += (
            '\n  <p style="color:#6c757d;margin-top:8px">'
            f"Last check failed: {html.escape(state.error)} (figures may be stale)</p>"
        )

    return (
        '<div style="font-family:system-ui,sans-serif;max-width:500px">\n'
        '  <h3 style="margin-bottom:8px">Claude Usage</h3>\n'
        f"  <p>Protection: {badge}</p>\n"
        '  <table style="border-collapse:collapse;width:100%">\n'
        + "\n".join(rows)
        + "\n  </table>"
        + extra
        + "\n</div>"
    )


def format_report(state: UsageState, config: Config, fmt: Format = "text") -> str:
    if fmt == "json":
        return _format_json(state)
    if fmt == "html":
        return _format_html(state, config)
    return _format_text(state, config)


# --- Compact views ---

def format_week_summary(state: UsageState, config: Config) -> str:
    week = state.current_week
    return "\n".join([
        "📊 Current Week",
        f"  Period:     {week.start_date} → {week.end_date}",
        f"  Total:      {format_dual(week.total_cost, config)} / {format_dual_budget(config.weekly_budget, config)}",
        f"  Budget:     {week.pct or '0'}%",
        f"  Projection: {_projection_label(week.projection, config)}",
        f"  Protection: {'🛡️  ACTIVE' if state.protection_mode else '✅ OFF'}",
    ])


def make_bar(value: float, target: float) -> str:
    """Bar of value against target; overspend extends it, up to 2x."""
    ratio = min(value / target, 2.0) if target > 0 else 0.0
    width = round(ratio * BAR_WIDTH)
    return "█" * width + "░" * max(BAR_WIDTH - width, 0)


def format_daily_breakdown(state: UsageState, config: Config) -> str:
    daily_budget = config.weekly_budget / 7
    lines = ["📅 Daily Breakdown", ""]
    for label, day in (
        ("J-1", state.yesterday),
        ("J-2", state.day_before),
        ("J-3", state.three_days_ago),
    ):
        lines.append(f"  {label} ({day.date}): {format_dual(day.cost, config)} {make_bar(day.cost, daily_budget)}")
    lines.append("")
    lines.append(f"  7-day total: {format_dual(state.last_7_days.total, config)}")
    lines.append(f"  7-day avg:   {format_dual(state.last_7_days.avg_daily, config)}/day")
    lines.append(f"  Daily budget: {format_dual(daily_budget, config)}/day")
    return "\n".join(lines)


def format_protection_status(status: ProtectionStatus, config: Config) -> str:
    return "\n".join([
        "🛡️  Protection Mode",
        f"  Status:  {'ACTIVE' if status.enabled else 'OFF'}",
        f"  Reason:  {status.reason}",
        f"  Budget:  {format_eur(status.week_total, config)}/€{_eur(status.weekly_budget, config):.0f} ({status.week_pct}%)",
        f"  Checked: {status.last_check}",
    ])


def format_seven_days_detail(state: UsageState, config: Config) -> str:
    lines = ["📊 7-Day Detail (Tokens + Cost)", ""]
    days = state.daily_costs_7d
    if not days:
        lines.append("  No data available")
        return "\n".join(lines)

    lines.append("  Date         Tokens In   Tokens Out            Cost (USD + EUR)")
    lines.append("  ───────────  ──────────  ───────────  ──────────────────────")
    for day in sorted(days, key=lambda d: d.date, reverse=True)[:7]:
        marker = " *" if day.cost > config.weekly_budget / 7 else ""
        lines.append(
            f"  {day.date:<11}  {day.tokens_input:>10,}  {day.tokens_output:>11,}  "
            f"{format_dual(day.cost, config):>22}{marker}"
        )

    lines.append("")
    total_in = sum(d.tokens_input for d in days)
    total_out = sum(d.tokens_output for d in days)
    total_cost = sum(d.cost for d in days)
    lines.append(
        f"  {'TOTAL':<11}  {total_in:>10,}  {total_out:>11,}  {format_dual(total_cost, config):>22}"
    )
    return "\n".join(lines)
