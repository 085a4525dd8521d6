from pumpfun_mcp.config import Settings


def test_defaults(monkeypatch):
    for name in ("CACHE_TTL_SECONDS", "FEED_MAX_RECONNECT_ATTEMPTS", "FEED_RECONNECT_DELAY_SECONDS", "PUMPPORTAL_WS_URL"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.cache_ttl_seconds == 30
    assert settings.feed_max_reconnect_attempts == 5
    assert settings.feed_reconnect_delay_seconds == 5.0
    assert settings.pumpportal_ws_url == "wss://pumpportal.fun/api/data"


def test_bitquery_key_from_env(monkeypatch):
    """Env vars are case-insensitive and flip the key flag."""

    monkeypatch.setenv("bitquery_api_key", "bq-key")

    settings = Settings(_env_file=None)

    assert settings.bitquery_api_key == "bq-key"
    assert settings.has_bitquery_key


def test_missing_key(monkeypatch):
    monkeypatch.setenv("BITQUERY_API_KEY", "")

    settings = Settings(_env_file=None)

    assert not settings.has_bitquery_key


def test_feed_overrides(monkeypatch):
    monkeypatch.setenv("FEED_MAX_RECONNECT_ATTEMPTS", "2")
    monkeypatch.setenv("FEED_RECONNECT_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("ENABLE_LIVE_FEED", "true")

    settings = Settings(_env_file=None)

    assert settings.feed_max_reconnect_attempts == 2
    assert settings.feed_reconnect_delay_seconds == 0.5
    assert settings.enable_live_feed is True
