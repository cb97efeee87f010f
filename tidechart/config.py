"""
Runtime configuration.

Values come from environment variables, optionally loaded from a ``.env``
file in the working directory. Unparseable values fall back to defaults.
"""
import os
from dataclasses import dataclass
from typing import Optional, Tuple

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _get_float_env(key: str, default: float) -> float:
    """Get a float value from environment variable or use default."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return float(value)
        except ValueError:
            pass
    return default


def _get_int_env(key: str, default: int) -> int:
    """Get an int value from environment variable or use default."""
    value = os.environ.get(key)
    if value is not None:
        try:
            return int(value)
        except ValueError:
            pass
    return default


def _get_choice_env(key: str, choices: Tuple[str, ...], default: str) -> str:
    """Get one of ``choices`` from environment variable or use default."""
    value = os.environ.get(key)
    if value is not None and value.strip() in choices:
        return value.strip()
    return default


@dataclass(frozen=True)
class Settings:
    chart_width: int = 240
    chart_height: int = 64
    extra_hours: float = 0.0
    unit: str = 'm'
    # 0 disables the fetch deadline
    fetch_timeout_seconds: float = 0.0

    @property
    def fetch_timeout(self) -> Optional[float]:
        return self.fetch_timeout_seconds if self.fetch_timeout_seconds > 0 else None


def load_settings() -> Settings:
    """Read settings from the environment."""
    return Settings(
        chart_width=_get_int_env('TIDECHART_WIDTH', 240),
        chart_height=_get_int_env('TIDECHART_HEIGHT', 64),
        extra_hours=_get_float_env('TIDECHART_EXTRA_HOURS', 0.0),
        unit=_get_choice_env('TIDECHART_UNIT', ('m', 'ft'), 'm'),
        fetch_timeout_seconds=_get_float_env('TIDE_FETCH_TIMEOUT_SECONDS', 0.0),
    )
