import logging
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager

import httpx

from config import Config
from models import DailyCost, DailyTokens

log = logging.getLogger(__name__)

COST_REPORT_PATH = "/v1/organizations/cost_report"
USAGE_REPORT_PATH = "/v1/organizations/usage_report/messages"
REQUEST_TIMEOUT = 45.0


class ProxyError(Exception):
    """Fetching a report failed; the message is meant for humans."""


def _get_report(
    config: Config, path: str, start_date: str, end_date: str, client: httpx.Client
) -> list[dict]:
    if not config.proxy_token:
        raise ProxyError("CLAUDE_USAGE_PROXY_TOKEN not set. Configure it in env or .env file.")

    url = f"{config.proxy_url.rstrip('/')}{path}"
    params = {
        "starting_at": f"{start_date}T00:00:00Z",
        "ending_at": f"{end_date}T00:00:00Z",
    }
    log.debug("GET %s %s", url, params)
    try:
        resp = client.get(
            url,
            params=params,
            headers={"Authorization": f"Bearer {config.proxy_token}"},
            timeout=REQUEST_TIMEOUT,
        )
    except httpx.TimeoutException as exc:
        raise ProxyError(
            "Proxy timeout - server may be waking up (cold start). Retry in 1-2 min."
        ) from exc
    except httpx.HTTPError as exc:
        raise ProxyError(f"Proxy connection error: {exc}") from exc

    if resp.status_code == 429:
        raise ProxyError("Rate limited by proxy (HTTP 429). Retry later.")
    if resp.status_code >= 400:
        raise ProxyError(f"Proxy HTTP {resp.status_code}: {resp.reason_phrase}")

    try:
        body = resp.json()
    except ValueError as exc:
        raise ProxyError("Proxy returned a non-JSON body") from exc
    if not isinstance(body, dict):
        raise ProxyError("Proxy returned an unexpected payload")

    # The proxy relays upstream API errors with a 200 status
    if body.get("type") == "error" or body.get("statusCode"):
        msg = (body.get("error") or {}).get("message") or body.get("message") or "Unknown proxy error"
        raise ProxyError(f"Proxy error: {msg}")

    data = body.get("data") or []
    if not isinstance(data, list):
        raise ProxyError("Proxy returned an unexpected payload: data is not a list")
    return data


@contextmanager
def _client(client: httpx.Client | None) -> Iterator[httpx.Client]:
    if client is not None:
        yield client
        return
    with httpx.Client(timeout=REQUEST_TIMEOUT) as owned:
        yield owned


MALFORMED = (TypeError, ValueError, AttributeError)  # ValidationError is a ValueError


def _entry_date(entry: dict) -> str:
    return entry.get("starting_at", "").split("T")[0]


def _parse_cost(entry: dict) -> DailyCost:
    return DailyCost(
        date=_entry_date(entry),
        cost=sum(float(r.get("amount") or 0) for r in entry.get("results") or []),
    )


def _parse_tokens(entry: dict) -> DailyTokens:
    results = entry.get("results") or []
    return DailyTokens(
        date=_entry_date(entry),
        tokens_input=sum(r.get("input_tokens") or 0 for r in results),
        tokens_output=sum(r.get("output_tokens") or 0 for r in results),
    )


def fetch_cost_report(
    config: Config, start_date: str, end_date: str, client: httpx.Client | None = None
) -> list[DailyCost]:
    with _client(client) as c:
        entries = _get_report(config, COST_REPORT_PATH, start_date, end_date, c)
    try:
        return [_parse_cost(entry) for entry in entries]
    except MALFORMED as exc:
        raise ProxyError(f"Proxy returned a malformed cost report: {exc}") from exc


def fetch_usage_report(
    config: Config, start_date: str, end_date: str, client: httpx.Client | None = None
) -> list[DailyTokens]:
    with _client(client) as c:
        entries = _get_report(config, USAGE_REPORT_PATH, start_date, end_date, c)
    try:
        return [_parse_tokens(entry) for entry in entries]
    except MALFORMED as exc:
        raise ProxyError(f"Proxy returned a malformed usage report: {exc}") from exc


def fetch_full_report(
    config: Config, start_date: str, end_date: str, client: httpx.Client | None = None
) -> list[DailyCost]:
    """Fetch cost and token reports for [start_date, end_date) and merge by date."""
    with _client(client) as c, ThreadPoolExecutor(max_workers=2) as pool:
        costs_future = pool.submit(fetch_cost_report, config, start_date, end_date, c)
        usage_future = pool.submit(fetch_usage_report, config, start_date, end_date, c)
        costs = costs_future.result()
        usage = usage_future.result()

    usage_by_date = {u.date: u for u in usage}
    merged = []
    for day in costs:
        tokens = usage_by_date.get(day.date)
        merged.append(DailyCost(
            date=day.date,
            cost=day.cost,
            tokens_input=tokens.tokens_input if tokens else 0,
            tokens_output=tokens.tokens_output if tokens else 0,
        ))
    log.info("Fetched %d daily entries for %s..%s", len(merged), start_date, end_date)
    return merged

