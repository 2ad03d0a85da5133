import json
import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


# ============ Константы по умолчанию ============

DEFAULT_TAX_RATE = 0.11  # PPN 11%
MIN_DP_PERCENT = 50
EXPIRED_THRESHOLD_HOURS = 24
DP_QUICK_OPTIONS = (30, 50, 75)
DEFAULT_PAYMENT_METHODS = ("cash", "transfer", "qris", "e-wallet")
DEFAULT_SEED_PATH = "data/seed.json"

ENV_PREFIX = "PRINPOS_"


class ConfigurationError(Exception):
    """Некорректная конфигурация (единственная ошибка, которая бросается)"""


@dataclass(frozen=True)
class Settings:
    default_tax_rate: float = DEFAULT_TAX_RATE
    min_dp_percent: float = MIN_DP_PERCENT
    expired_threshold_hours: float = EXPIRED_THRESHOLD_HOURS
    dp_quick_options: Tuple[int, ...] = DP_QUICK_OPTIONS
    payment_methods: Tuple[str, ...] = DEFAULT_PAYMENT_METHODS
    seed_path: str = DEFAULT_SEED_PATH
    log_level: str = "INFO"


def _to_float(key: str, raw, low: float, high: Optional[float] = None) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{key}: expected a number, got {raw!r}")
    if value < low or (high is not None and value > high):
        bound = f"[{low}, {high}]" if high is not None else f">= {low}"
        raise ConfigurationError(f"{key}: {value} is outside {bound}")
    return value


def _validated(settings: Settings) -> Settings:
    _to_float("default_tax_rate", settings.default_tax_rate, 0, 1)
    _to_float("min_dp_percent", settings.min_dp_percent, 0, 100)
    _to_float("expired_threshold_hours", settings.expired_threshold_hours, 0)
    if not isinstance(logging.getLevelName(settings.log_level.upper()), int):
        raise ConfigurationError(f"log_level: unknown level {settings.log_level!r}")
    return settings


def _from_file(path: str) -> dict:
    """Блок settings из seed-файла; отсутствие файла - не ошибка"""
    if not os.path.exists(path):
        logger.info("Seed file %s not found, using defaults", path)
        return {}
    with open(path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"{path}: invalid JSON ({exc})")
    return data.get("settings", {})


def _from_env(env: Mapping[str, str]) -> dict:
    keys = {
        "TAX_RATE": "default_tax_rate",
        "MIN_DP_PERCENT": "min_dp_percent",
        "EXPIRED_THRESHOLD_HOURS": "expired_threshold_hours",
        "LOG_LEVEL": "log_level",
        "SEED_PATH": "seed_path",
    }
    return {
        field: env[ENV_PREFIX + name]
        for name, field in keys.items()
        if env.get(ENV_PREFIX + name, "").strip()
    }


def load_settings(
    path: Optional[str] = None, env: Optional[Mapping[str, str]] = None
) -> Settings:
    """
    Настройки: значения по умолчанию <- settings из seed.json <- PRINPOS_* из окружения
    """
    env = os.environ if env is None else env
    env_values = _from_env(env)
    seed_path = path or env_values.get("seed_path") or DEFAULT_SEED_PATH
    merged = {**_from_file(seed_path), **env_values}

    settings = Settings(seed_path=seed_path)
    for name, caster in (
        ("default_tax_rate", float),
        ("min_dp_percent", float),
        ("expired_threshold_hours", float),
        ("log_level", str),
    ):
        if name in merged:
            try:
                settings = replace(settings, **{name: caster(merged[name])})
            except ValueError:
                raise ConfigurationError(f"{name}: cannot parse {merged[name]!r}")
    if "dp_quick_options" in merged:
        try:
            options = tuple(int(x) for x in merged["dp_quick_options"])
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"dp_quick_options: expected a list of integers, got {merged['dp_quick_options']!r}"
            )
        settings = replace(settings, dp_quick_options=options)
    if "payment_methods" in merged:
        settings = replace(
            settings, payment_methods=tuple(str(m) for m in merged["payment_methods"])
        )
    return _validated(settings)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
