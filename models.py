from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field


class Weekday(IntEnum):
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7

    @classmethod
    def from_iso(cls, number: int) -> "Weekday":
        # Raises ValueError outside 1..7
        return cls(number)

    @property
    def label(self) -> str:
        return self.name.lower()


class DailyCost(BaseModel):
    date: str  # YYYY-MM-DD
    cost: float = Field(default=0.0, ge=0)
    tokens_input: int = 0
    tokens_output: int = 0


class DailyTokens(BaseModel):
    date: str
    tokens_input: int = 0
    tokens_output: int = 0


class DateWindow(BaseModel):
    model_config = ConfigDict(frozen=True)

    today: str
    yesterday: str
    day_before: str
    three_days_ago: str
    seven_days_ago: str
    tomorrow: str
    hour: int
    dow: str
    dow_num: int
    week_start: str  # inclusive
    week_end: str  # exclusive


class DaySnapshot(BaseModel):
    date: str
    cost: float = 0.0
    tokens_input: int = 0
    tokens_output: int = 0


class WeekMetrics(BaseModel):
    start_date: str
    end_date: str
    total: float = 0.0
    projection: float = 0.0
    pct: str = "0.0"
    ratio: float = 0.0  # unrounded, used for comparisons
    day_count: int = 0


class SevenDayStats(BaseModel):
    total: float = 0.0
    avg: float = 0.0


class Metrics(BaseModel):
    yesterday: DaySnapshot
    day_before: DaySnapshot
    three_days_ago: DaySnapshot
    week: WeekMetrics
    seven_days: SevenDayStats
    daily_costs: list[DailyCost] = []


class AlertResult(BaseModel):
    alerts: list[str] = []
    protection_mode: bool = False


# --- Persisted state ---

STATE_SCHEMA_VERSION = 1


class BudgetInfo(BaseModel):
    weekly_limit: float = 625.0
    alert_threshold: float = 0.5


class WeekInfo(BaseModel):
    start_date: str = ""
    end_date: str = ""
    total_cost: float = 0.0
    projection: float = 0.0
    pct: str | None = None


class SevenDayInfo(BaseModel):
    avg_daily: float = 0.0
    total: float = 0.0


class DayInfo(BaseModel):
    date: str = ""
    cost: float = 0.0
    tokens_input: int = 0
    tokens_output: int = 0


class UsageState(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schema_version: int = STATE_SCHEMA_VERSION
    last_check: int = Field(default=0, alias="lastCheck")  # epoch millis
    protection_mode: bool = False
    weekly_reset_day: str = "monday"
    weekly_reset_hour: int = 21
    budget: BudgetInfo = Field(default_factory=BudgetInfo)
    current_week: WeekInfo = Field(default_factory=WeekInfo)
    last_7_days: SevenDayInfo = Field(default_factory=SevenDayInfo)
    yesterday: DayInfo = Field(default_factory=DayInfo)
    day_before: DayInfo = Field(default_factory=DayInfo)
    three_days_ago: DayInfo = Field(default_factory=DayInfo)
    daily_costs_7d: list[DailyCost] = []
    alerts: list[str] = []
    last_alert_ts: int = 0
    error: str | None = None


class ProtectionStatus(BaseModel):
    enabled: bool
    reason: str
    week_total: float
    weekly_budget: float
    week_pct: str
    last_check: str  # ISO timestamp or "never"
