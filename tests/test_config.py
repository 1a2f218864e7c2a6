import httpx

from config import Config, fetch_exchange_rate, with_live_rate


def _rate_client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_config_reads_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("CLAUDE_USAGE_WEEKLY_BUDGET", "400")
    monkeypatch.setenv("CLAUDE_USAGE_RESET_HOUR", "9")
    monkeypatch.setenv("CLAUDE_USAGE_STATE_FILE", str(tmp_path / "s.json"))

    config = Config()

    assert config.weekly_budget == 400
    assert config.reset_hour == 9
    assert config.state_file == tmp_path / "s.json"
    assert config.alert_threshold == 0.5


def test_fetch_exchange_rate():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["from"] == "USD"
        return httpx.Response(200, json={"rates": {"EUR": 0.87}})

    assert fetch_exchange_rate(_rate_client(handler)) == 0.87


def test_fetch_exchange_rate_failure_returns_none():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    assert fetch_exchange_rate(_rate_client(handler)) is None


def test_with_live_rate_uses_api_when_not_configured(monkeypatch):
    monkeypatch.delenv("USD_TO_EUR", raising=False)
    config = Config(proxy_token="t")

    updated = with_live_rate(config, _rate_client(lambda r: httpx.Response(200, json={"rates": {"EUR": 0.9}})))

    assert updated.usd_to_eur == 0.9
    assert config.usd_to_eur is None


def test_with_live_rate_keeps_explicit_rate(config):
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("should not be called")

    assert with_live_rate(config, _rate_client(handler)).usd_to_eur == 0.92


def test_with_live_rate_falls_back(monkeypatch):
    monkeypatch.delenv("USD_TO_EUR", raising=False)
    config = Config(proxy_token="t")

    updated = with_live_rate(config, _rate_client(lambda r: httpx.Response(200, json={})))

    assert updated.usd_to_eur is None
    assert updated.eur_rate == 0.92

