"""
Analysis configuration - window sizes and thresholds.
Defaults reproduce the original report: 7-day moving average, 30-day
standard deviation, 5% alerts, 50/200-day crossover.
"""

import logging
import os
from dataclasses import dataclass, fields, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Dict, Any, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when configuration cannot be loaded or is invalid."""
    pass


ENV_PREFIX = 'PRICE_ANALYTICS_'


@dataclass(frozen=True)
class AnalysisConfig:
    """Configuration for a price analysis run."""
    moving_average_window: int = 7
    stddev_window: int = 30
    stddev_kind: str = 'sample'
    alert_threshold_pct: Decimal = Decimal('5')
    fast_window: int = 50
    slow_window: int = 200
    require_full_windows: bool = False

    def __post_init__(self):
        """Validate window sizes and thresholds."""
        for name in ('moving_average_window', 'stddev_window', 'fast_window', 'slow_window'):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

        if self.stddev_kind not in ('sample', 'population'):
            raise ValueError(f"stddev_kind must be 'sample' or 'population', got {self.stddev_kind!r}")

        if self.stddev_kind == 'sample' and self.stddev_window < 2:
            raise ValueError("stddev_window must be >= 2 for sample standard deviation")

        if not isinstance(self.alert_threshold_pct, Decimal) or self.alert_threshold_pct < 0:
            raise ValueError(f"alert_threshold_pct must be a non-negative Decimal, got {self.alert_threshold_pct!r}")

        if self.fast_window >= self.slow_window:
            raise ValueError(
                f"fast_window ({self.fast_window}) must be smaller than slow_window ({self.slow_window})"
            )

    @classmethod
    def from_mapping(cls, values: Dict[str, Any]) -> 'AnalysisConfig':
        """
        Build config from a mapping of field names to raw values.

        Unknown keys are logged and ignored. Values are coerced to each
        field's type so strings from env or YAML are accepted.

        Raises:
            ConfigError: If a value cannot be coerced or fails validation
        """
        known = {f.name: f for f in fields(cls)}
        kwargs = {}
        for key, raw in values.items():
            if key not in known:
                logger.warning(f"Ignoring unknown analysis config key: {key}")
                continue
            kwargs[key] = _coerce(key, raw, known[key].type)

        try:
            return cls(**kwargs)
        except ValueError as e:
            raise ConfigError(f"Invalid analysis config: {e}") from e

    @classmethod
    def from_env(cls, base: Optional['AnalysisConfig'] = None) -> 'AnalysisConfig':
        """
        Apply PRICE_ANALYTICS_* environment variables on top of base (or defaults).

        e.g. PRICE_ANALYTICS_MOVING_AVERAGE_WINDOW=20
        """
        base = base or cls()
        overrides = {}
        for f in fields(cls):
            raw = os.getenv(ENV_PREFIX + f.name.upper())
            if raw is not None:
                overrides[f.name] = _coerce(f.name, raw, f.type)

        try:
            return replace(base, **overrides)
        except ValueError as e:
            raise ConfigError(f"Invalid analysis config from environment: {e}") from e


def _coerce(name: str, raw: Any, field_type: Any) -> Any:
    """Coerce a raw env/YAML value to a config field type."""
    try:
        if field_type in (bool, 'bool'):
            if isinstance(raw, bool):
                return raw
            text = str(raw).strip().lower()
            if text in ('1', 'true', 'yes', 'on'):
                return True
            if text in ('0', 'false', 'no', 'off'):
                return False
            raise ValueError(f"not a boolean: {raw!r}")

        if field_type in (int, 'int'):
            if isinstance(raw, bool):
                raise ValueError(f"not an integer: {raw!r}")
            return int(str(raw).strip())

        if field_type in (Decimal, 'Decimal'):
            return Decimal(str(raw).strip())

        return str(raw).strip()
    except (ValueError, InvalidOperation) as e:
        raise ConfigError(f"Invalid value for {name}: {e}") from e


def load_config(config_path: Optional[str] = None) -> AnalysisConfig:
    """
    Load analysis configuration from YAML, then apply environment overrides.

    The file's 'analysis' section maps field names to values:

        analysis:
          moving_average_window: 7
          stddev_window: 30

    Args:
        config_path: Path to YAML config (defaults to PRICE_ANALYTICS_CONFIG
            or ./config/analysis.yml). A missing default file is not an error.

    Returns:
        AnalysisConfig

    Raises:
        ConfigError: If an explicit config file is missing or invalid
    """
    explicit = config_path is not None or os.getenv(ENV_PREFIX + 'CONFIG') is not None
    if config_path is None:
        config_path = os.getenv(ENV_PREFIX + 'CONFIG', './config/analysis.yml')

    config_file = Path(config_path)
    if not config_file.exists():
        if explicit:
            raise ConfigError(f"Analysis config file not found: {config_path}")
        logger.debug(f"No config file at {config_path}, using defaults")
        return AnalysisConfig.from_env()

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load analysis config: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("Analysis config must be a mapping")

    section = data.get('analysis', {}) or {}
    if not isinstance(section, dict):
        raise ConfigError("Analysis config 'analysis' section must be a mapping")

    logger.info(f"Loaded analysis config from {config_path}")
    return AnalysisConfig.from_env(AnalysisConfig.from_mapping(section))
