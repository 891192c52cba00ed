import json

import pytest

import config as config_module
from config import (DEFAULT_CONFIG, format_config_for_display, load_config, load_config_from_env,
                    pause, resume, save_config, set_alert_threshold, set_min_token_age, validate_config)
from errors import ConfigurationError


@pytest.fixture
def config():
    return dict(DEFAULT_CONFIG)


def test_defaults_are_valid(config):
    validate_config(config)


def test_cooldown_default_is_thirty_minutes():
    assert DEFAULT_CONFIG["ALERT_COOLDOWN_SECONDS"] == 30 * 60


def test_telegram_requires_credentials(config):
    config["ENABLE_TELEGRAM"] = True
    with pytest.raises(ConfigurationError):
        validate_config(config)

    config["TELEGRAM_BOT_TOKEN"] = "123:abc"
    with pytest.raises(ConfigurationError):
        validate_config(config)

    config["TELEGRAM_CHAT_ID"] = "42"
    validate_config(config)


@pytest.mark.parametrize("key, value", [
    ("BATCH_SIZE", 0),
    ("BATCH_SIZE", 31),
    ("POLLING_INTERVAL_SECONDS", 0),
    ("RETRY_MAX_ATTEMPTS", 0),
    ("MIN_TOKEN_AGE_HOURS", -1),
])
def test_invalid_values_are_fatal(config, key, value):
    config[key] = value
    with pytest.raises(ConfigurationError):
        validate_config(config)


def test_runtime_setters(config):
    pause(config)
    assert config["IS_PAUSED"]
    resume(config)
    assert not config["IS_PAUSED"]

    set_min_token_age(config, 6)
    assert config["MIN_TOKEN_AGE_HOURS"] == 6
    with pytest.raises(ValueError):
        set_min_token_age(config, -1)

    set_alert_threshold(config, "25", False)
    set_alert_threshold(config, "50", False)
    assert not config["ALERT_THRESHOLD_25_ENABLED"]
    assert not config["ALERT_THRESHOLD_50_ENABLED"]
    with pytest.raises(ValueError):
        set_alert_threshold(config, "75", True)


def test_format_for_display(config):
    config["ALERT_THRESHOLD_25_ENABLED"] = False
    pause(config)
    text = format_config_for_display(config)
    assert "PAUSED" in text
    assert "+50%" in text
    assert "+25%" not in text
    assert "30 minutes" in text


def test_load_config_creates_default_file(tmp_path, monkeypatch):
    monkeypatch.delenv("USE_ENV_CONFIG", raising=False)
    path = tmp_path / "config.json"

    loaded = load_config(str(path))

    assert loaded == DEFAULT_CONFIG
    assert json.loads(path.read_text()) == DEFAULT_CONFIG


def test_load_config_merges_missing_keys(tmp_path, monkeypatch):
    monkeypatch.delenv("USE_ENV_CONFIG", raising=False)
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"MAX_MARKET_CAP": 250000}))

    loaded = load_config(str(path))

    assert loaded["MAX_MARKET_CAP"] == 250000
    assert loaded["MIN_LIQUIDITY_USD"] == DEFAULT_CONFIG["MIN_LIQUIDITY_USD"]


def test_save_config_roundtrip(tmp_path, monkeypatch, config):
    monkeypatch.delenv("USE_ENV_CONFIG", raising=False)
    path = tmp_path / "config.json"
    config["MIN_TOKEN_AGE_HOURS"] = 12
    assert save_config(config, str(path))
    assert load_config(str(path))["MIN_TOKEN_AGE_HOURS"] == 12


def test_env_config_parses_types(monkeypatch):
    monkeypatch.setenv("USE_ENV_CONFIG", "true")
    monkeypatch.setenv("ENABLE_TELEGRAM", "true")
    monkeypatch.setenv("BATCH_SIZE", "20")
    monkeypatch.setenv("DORMANT_VOLUME_THRESHOLD_USD", "750.5")
    monkeypatch.setenv("POLLING_INTERVAL_SECONDS", "not-a-number")

    loaded = config_module.load_config()

    assert loaded["ENABLE_TELEGRAM"] is True
    assert loaded["BATCH_SIZE"] == 20
    assert loaded["DORMANT_VOLUME_THRESHOLD_USD"] == 750.5
    assert loaded["POLLING_INTERVAL_SECONDS"] == DEFAULT_CONFIG["POLLING_INTERVAL_SECONDS"]
    assert load_config_from_env()["BATCH_SIZE"] == 20
