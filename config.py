"""Runtime configuration for the usage monitor."""

import logging
from pathlib import Path

import httpx
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)

DEFAULT_PROXY_URL = "https://hal9000-claude-usage-proxy.onrender.com"
DEFAULT_STATE_FILE = Path.home() / ".openclaw" / "workspace" / "memory" / "claude-usage-state.json"
EXCHANGE_RATE_URL = "https://api.frankfurter.app/latest"
FALLBACK_USD_TO_EUR = 0.92


class Config(BaseSettings):
    """Immutable settings, read from the environment or a local .env file."""

    model_config = SettingsConfigDict(
        extra="ignore",
        case_sensitive=False,
        frozen=True,
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    proxy_url: str = Field(default=DEFAULT_PROXY_URL, alias="CLAUDE_USAGE_PROXY_URL")
    proxy_token: str = Field(default="", alias="CLAUDE_USAGE_PROXY_TOKEN")
    state_file: Path = Field(default=DEFAULT_STATE_FILE, alias="CLAUDE_USAGE_STATE_FILE")
    weekly_budget: float = Field(default=625.0, alias="CLAUDE_USAGE_WEEKLY_BUDGET")
    alert_threshold: float = Field(default=0.5, alias="CLAUDE_USAGE_ALERT_THRESHOLD")
    reset_hour: int = Field(default=21, ge=0, le=23, alias="CLAUDE_USAGE_RESET_HOUR")  # Monday, local time
    timezone: str = Field(default="Europe/Paris", alias="CLAUDE_USAGE_TIMEZONE")
    usd_to_eur: float | None = Field(default=None, alias="USD_TO_EUR")  # None: use the live rate

    # Failure notifications
    alert_phone_number: str | None = Field(default=None, alias="ALERT_PHONE_NUMBER")
    alert_command: Path = Field(
        default=Path.home() / "bin" / "send-imsg.sh", alias="ALERT_COMMAND"
    )

    @property
    def eur_rate(self) -> float:
        return self.usd_to_eur if self.usd_to_eur is not None else FALLBACK_USD_TO_EUR


def load_config() -> Config:
    return Config()


def fetch_exchange_rate(client: httpx.Client | None = None) -> float | None:
    """Query the live USD -> EUR rate. Returns None when unavailable."""
    own_client = client is None
    client = client or httpx.Client(timeout=5.0)
    try:
        resp = client.get(EXCHANGE_RATE_URL, params={"from": "USD", "to": "EUR"})
        resp.raise_for_status()
        rate = resp.json().get("rates", {}).get("EUR")
    except (httpx.HTTPError, ValueError, AttributeError) as exc:
        log.debug("Exchange rate lookup failed: %s", exc)
        return None
    finally:
        if own_client:
            client.close()
    if isinstance(rate, (int, float)) and rate > 0:
        return float(rate)
    return None


def with_live_rate(config: Config, client: httpx.Client | None = None) -> Config:
    """Return a copy of config using the live exchange rate.

    An explicitly configured USD_TO_EUR always wins.
    """
    if config.usd_to_eur is not None:
        return config
    rate = fetch_exchange_rate(client)
    if rate is None:
        return config
    return config.model_copy(update={"usd_to_eur": rate})
