"""PipWatch — application configuration.

Loads .env variables into a typed config object.
Validates required variables on startup.
"""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from pipwatch.pricing.pips import normalize_symbol


_REQUIRED_VARS = [
    "OANDA_ACCOUNT_ID",
    "OANDA_API_TOKEN",
]

MONITOR_INTERVAL_MIN = 5
MONITOR_INTERVAL_MAX = 15


@dataclass(frozen=True)
class Config:
    """Typed configuration loaded from environment variables."""

    oanda_account_id: str
    oanda_api_token: str
    oanda_environment: str  # "practice" or "live"
    symbols: tuple[str, ...]
    monitor_interval_seconds: int
    generation_interval_seconds: int
    risk_per_trade_pct: float
    account_equity: float
    session_start_utc: int
    session_end_utc: int
    db_path: str
    log_level: str
    api_port: int

    @property
    def oanda_base_url(self) -> str:
        """Return the OANDA v20 API base URL based on environment."""
        if self.oanda_environment == "live":
            return "https://api-fxtrade.oanda.com"
        return "https://api-fxpractice.oanda.com"


def _int_var(name: str, default: str) -> int:
    raw = os.environ.get(name, default)
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None


def _float_var(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'") from None


def load_config(env_path: str | None = None) -> Config:
    """Load configuration from environment variables.

    Raises ``ValueError`` with a message naming the variable when a
    required variable is absent or a value is out of range.
    """
    load_dotenv(dotenv_path=env_path)

    missing = [v for v in _REQUIRED_VARS if not os.environ.get(v)]
    if missing:
        raise ValueError(
            f"Missing required environment variable(s): {', '.join(missing)}"
        )

    environment = os.environ.get("OANDA_ENVIRONMENT", "practice")
    if environment not in ("practice", "live"):
        raise ValueError(
            f"OANDA_ENVIRONMENT must be 'practice' or 'live', got '{environment}'"
        )

    symbols = tuple(
        normalize_symbol(s)
        for s in os.environ.get("SYMBOLS", "EURUSD,GBPUSD,USDJPY").split(",")
        if s.strip()
    )
    if not symbols:
        raise ValueError("SYMBOLS must name at least one pair")

    monitor_interval = _int_var("MONITOR_INTERVAL_SECONDS", "10")
    if not MONITOR_INTERVAL_MIN <= monitor_interval <= MONITOR_INTERVAL_MAX:
        raise ValueError(
            f"MONITOR_INTERVAL_SECONDS must be between {MONITOR_INTERVAL_MIN} "
            f"and {MONITOR_INTERVAL_MAX}, got {monitor_interval}"
        )

    return Config(
        oanda_account_id=os.environ["OANDA_ACCOUNT_ID"],
        oanda_api_token=os.environ["OANDA_API_TOKEN"],
        oanda_environment=environment,
        symbols=symbols,
        monitor_interval_seconds=monitor_interval,
        generation_interval_seconds=_int_var("GENERATION_INTERVAL_SECONDS", "900"),
        risk_per_trade_pct=_float_var("RISK_PER_TRADE_PCT", "1.0"),
        account_equity=_float_var("ACCOUNT_EQUITY", "10000"),
        session_start_utc=_int_var("SESSION_START_UTC", "7"),
        session_end_utc=_int_var("SESSION_END_UTC", "21"),
        db_path=os.environ.get("DB_PATH", "data/pipwatch.db"),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
        api_port=_int_var("API_PORT", "8080"),
    )
