import pytest

from src.core.config import Settings
from src.core.exceptions import ConfigError


def test_defaults():
    config = Settings(_env_file=None)
    assert config.RESOLVE_MAX_REDIRECTS == 8
    assert config.RESOLVE_TIMEOUT == 8
    assert config.CACHE_TTL == 1800
    assert config.ALIEXPRESS_API_URL == "https://api-sg.aliexpress.com/sync"


def test_ensure_required_lists_missing(monkeypatch):
    for name in ("BOT_TOKEN", "ALIEXPRESS_APP_KEY", "ALIEXPRESS_APP_SECRET", "ALIEXPRESS_TRACKING_ID", "CHANNEL_ID"):
        monkeypatch.delenv(name, raising=False)
    config = Settings(_env_file=None, BOT_TOKEN="42:x", CHANNEL_ID="@c")
    with pytest.raises(ConfigError) as exc_info:
        config.ensure_required()
    message = str(exc_info.value)
    assert "ALIEXPRESS_APP_KEY" in message
    assert "ALIEXPRESS_TRACKING_ID" in message
    assert "BOT_TOKEN" not in message


def test_ensure_required_passes(test_settings):
    test_settings.ensure_required()


def test_admin_ids_merge(test_settings):
    config = test_settings.model_copy(update={"ADMIN_IDS": "5, 6,bad,"})
    assert config.admin_ids() == {1001, 5, 6}
