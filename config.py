"""
Configuration of the dormant token spike detector.

The loaded dict is passed as-is to every component. Components read values at
use time, so the runtime setters below take effect on the next evaluation.
"""

import os
import json
import logging
from typing import Dict, Any

from errors import ConfigurationError

logger = logging.getLogger("config")

# Default configuration
DEFAULT_CONFIG = {
    # Token filters
    "MIN_TOKEN_AGE_HOURS": 1,
    "MAX_MARKET_CAP": 100_000,
    "MIN_LIQUIDITY_USD": 2_000,

    # Alert thresholds
    "ALERT_THRESHOLD_25_ENABLED": True,
    "ALERT_THRESHOLD_50_ENABLED": True,
    "ALERT_COOLDOWN_SECONDS": 1800,
    "ALERT_DELAY_SECONDS": 0.5,

    # Dormant detection
    "DORMANT_VOLATILITY_THRESHOLD_PCT": 5.0,
    "DORMANT_VOLUME_THRESHOLD_USD": 1_000.0,
    "BASELINE_WINDOW_MINUTES": 60,

    # Scan & Timing
    "POLLING_INTERVAL_SECONDS": 10,
    "DISCOVERY_INTERVAL_SECONDS": 3600,
    "CLEANUP_INTERVAL_SECONDS": 6 * 3600,
    "STATS_INTERVAL_SECONDS": 300,
    "MAX_IDLE_HOURS": 24,
    "IS_PAUSED": False,

    # DexScreener
    "DEXSCREENER_BASE_URL": "https://api.dexscreener.com",
    "REQUEST_TIMEOUT_SECONDS": 15,
    "BATCH_SIZE": 30,
    "RATE_LIMIT_MAX_REQUESTS": 250,
    "RATE_LIMIT_WINDOW_SECONDS": 60,
    "RETRY_MAX_ATTEMPTS": 3,
    "RETRY_BASE_DELAY_SECONDS": 1.0,

    # Notifier
    "ENABLE_TELEGRAM": False,
    "TELEGRAM_BOT_TOKEN": "",
    "TELEGRAM_CHAT_ID": "",
}

# DexScreener bulk lookup accepts at most 30 addresses
MAX_BATCH_SIZE = 30


def load_config(config_file: str = "config.json") -> Dict[str, Any]:
    """
    Load the configuration from config.json.
    If the file does not exist it is created with the default configuration.

    Returns:
        Configuration dict
    """
    if os.environ.get("USE_ENV_CONFIG", "").lower() == "true":
        logger.info("Loading configuration from environment variables")
        return load_config_from_env()

    if not os.path.exists(config_file):
        with open(config_file, "w") as f:
            json.dump(DEFAULT_CONFIG, f, indent=2)
        logger.info(f"Configuration file created: {config_file}")
        return dict(DEFAULT_CONFIG)

    try:
        with open(config_file, "r") as f:
            config = json.load(f)
        logger.info(f"Configuration loaded from: {config_file}")
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load configuration: {e}")
        logger.info("Using default configuration")
        return dict(DEFAULT_CONFIG)

    # Merge missing keys
    for key, value in DEFAULT_CONFIG.items():
        if key not in config:
            config[key] = value

    return config


def load_config_from_env() -> Dict[str, Any]:
    """
    Load the configuration from environment variables.

    Returns:
        Configuration dict
    """
    config = {}

    for key, default_value in DEFAULT_CONFIG.items():
        env_value = os.environ.get(key)

        if env_value is not None:
            try:
                if isinstance(default_value, bool):
                    config[key] = env_value.lower() == "true"
                elif isinstance(default_value, int):
                    config[key] = int(env_value)
                elif isinstance(default_value, float):
                    config[key] = float(env_value)
                else:
                    config[key] = env_value
            except ValueError as parse_err:
                logger.warning(f"Could not parse env variable {key}: {parse_err}. Using default value.")
                config[key] = default_value
        else:
            config[key] = default_value

    return config


def save_config(config: Dict[str, Any], config_file: str = "config.json") -> bool:
    """
    Save the configuration to config.json

    Args:
        config: Configuration dict

    Returns:
        True on success, False otherwise
    """
    try:
        with open(config_file, "w") as f:
            json.dump(config, f, indent=2)
        logger.info(f"Configuration saved to: {config_file}")
        return True
    except OSError as e:
        logger.error(f"Failed to save configuration: {e}")
        return False


def validate_config(config: Dict[str, Any]) -> None:
    """Raise ConfigurationError when the bot cannot start with this configuration."""
    if config.get("ENABLE_TELEGRAM"):
        if not config.get("TELEGRAM_BOT_TOKEN"):
            raise ConfigurationError("TELEGRAM_BOT_TOKEN is required when ENABLE_TELEGRAM is true")
        if not config.get("TELEGRAM_CHAT_ID"):
            raise ConfigurationError("TELEGRAM_CHAT_ID is required when ENABLE_TELEGRAM is true")

    if not config.get("DEXSCREENER_BASE_URL"):
        raise ConfigurationError("DEXSCREENER_BASE_URL is required")

    batch_size = config.get("BATCH_SIZE", 0)
    if not 1 <= batch_size <= MAX_BATCH_SIZE:
        raise ConfigurationError(f"BATCH_SIZE must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")

    for key in ("POLLING_INTERVAL_SECONDS", "DISCOVERY_INTERVAL_SECONDS", "CLEANUP_INTERVAL_SECONDS",
                "RATE_LIMIT_MAX_REQUESTS", "RATE_LIMIT_WINDOW_SECONDS", "RETRY_MAX_ATTEMPTS"):
        if config.get(key, 0) <= 0:
            raise ConfigurationError(f"{key} must be positive")

    if config.get("MIN_TOKEN_AGE_HOURS", 0) < 0:
        raise ConfigurationError("MIN_TOKEN_AGE_HOURS must be non-negative")


def pause(config: Dict[str, Any]) -> None:
    config["IS_PAUSED"] = True


def resume(config: Dict[str, Any]) -> None:
    config["IS_PAUSED"] = False


def set_min_token_age(config: Dict[str, Any], hours: float) -> None:
    if hours < 0:
        raise ValueError("Minimum token age must be non-negative")
    config["MIN_TOKEN_AGE_HOURS"] = hours


def set_alert_threshold(config: Dict[str, Any], tier: str, enabled: bool) -> None:
    if tier == "25":
        config["ALERT_THRESHOLD_25_ENABLED"] = enabled
    elif tier == "50":
        config["ALERT_THRESHOLD_50_ENABLED"] = enabled
    else:
        raise ValueError(f"Invalid tier {tier!r}, use 25 or 50")


def format_config_for_display(config: Dict[str, Any]) -> str:
    status = "⏸ PAUSED" if config.get("IS_PAUSED") else "▶️ RUNNING"
    thresholds = []
    if config.get("ALERT_THRESHOLD_25_ENABLED"):
        thresholds.append("+25%")
    if config.get("ALERT_THRESHOLD_50_ENABLED"):
        thresholds.append("+50%")

    return f"""
🤖 *Bot Status:* {status}

📊 *Alert Thresholds:* {', '.join(thresholds) if thresholds else 'None enabled'}

⚙️ *Configuration:*
- Min Token Age: {config['MIN_TOKEN_AGE_HOURS']}h
- Max Market Cap: ${config['MAX_MARKET_CAP']:,.0f}
- Min Liquidity: ${config['MIN_LIQUIDITY_USD']:,.0f}
- Polling Interval: {config['POLLING_INTERVAL_SECONDS']}s

🔍 *Dormant Detection:*
- Volatility Threshold: {config['DORMANT_VOLATILITY_THRESHOLD_PCT']}%
- Volume Threshold: ${config['DORMANT_VOLUME_THRESHOLD_USD']:,.0f}
- Baseline Period: {config['BASELINE_WINDOW_MINUTES']} minutes
- Alert Cooldown: {config['ALERT_COOLDOWN_SECONDS'] / 60:g} minutes
    """.strip()
