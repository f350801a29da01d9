import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from tokenwatch.errors import ConfigError

# ---- Defaults ----
ETHERSCAN_API = "https://api.etherscan.io/api"
HEARTBEAT_INTERVAL = 30  # seconds between liveness probes
HEARTBEAT_TIMEOUT = 10  # seconds before a probe counts as lost
RECONNECT_DELAY = 5  # fixed backoff before rebuilding the connection
VERIFICATION_GRACE_PERIOD = 120  # wait for explorers to index new source
MAX_CONCURRENT_DISCOVERIES = 0  # 0 = unbounded
RECENT_TOKENS_MAX = 500
HOST = "0.0.0.0"
PORT = 8888

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class Settings:
    api_key: str
    wss_url: str
    etherscan_api: str = ETHERSCAN_API
    heartbeat_interval: float = HEARTBEAT_INTERVAL
    heartbeat_timeout: float = HEARTBEAT_TIMEOUT
    reconnect_delay: float = RECONNECT_DELAY
    grace_period: float = VERIFICATION_GRACE_PERIOD
    max_concurrent_discoveries: int = MAX_CONCURRENT_DISCOVERIES
    recent_tokens_max: int = RECENT_TOKENS_MAX
    host: str = HOST
    port: int = PORT
    log_level: str = "INFO"


def _required(env, name: str) -> str:
    value = env.get(name, "").strip()
    if not value:
        raise ConfigError(f"{name} is not set")
    return value


def _number(env, name: str, default, cast=float):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = cast(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if value < 0:
        raise ConfigError(f"{name} must not be negative, got {raw!r}")
    return value


def validate_ws_url(url: str) -> str:
    if not url.startswith(("ws://", "wss://")) or len(url.split("://", 1)[1]) == 0:
        raise ConfigError(f"Not a websocket endpoint: {url!r}")
    return url


def load_settings(env: Optional[dict] = None) -> Settings:
    """Read settings from the environment (and a .env file when present).

    Raises ConfigError when the API key or the node endpoint is missing, or
    when a numeric setting cannot be parsed.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    return Settings(
        api_key=_required(env, "API_KEY"),
        wss_url=validate_ws_url(_required(env, "INFURA_WSS_URL")),
        etherscan_api=env.get("ETHERSCAN_API_URL") or ETHERSCAN_API,
        heartbeat_interval=_number(env, "HEARTBEAT_INTERVAL", HEARTBEAT_INTERVAL),
        heartbeat_timeout=_number(env, "HEARTBEAT_TIMEOUT", HEARTBEAT_TIMEOUT),
        reconnect_delay=_number(env, "RECONNECT_DELAY", RECONNECT_DELAY),
        grace_period=_number(env, "VERIFICATION_GRACE_PERIOD", VERIFICATION_GRACE_PERIOD),
        max_concurrent_discoveries=_number(env, "MAX_CONCURRENT_DISCOVERIES", MAX_CONCURRENT_DISCOVERIES, int),
        recent_tokens_max=_number(env, "RECENT_TOKENS_MAX", RECENT_TOKENS_MAX, int),
        host=env.get("HOST") or HOST,
        port=_number(env, "PORT", PORT, int),
        log_level=(env.get("LOG_LEVEL") or "INFO").upper(),
    )


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
