"""Configuration helpers for the machining quoter."""
from __future__ import annotations

import copy
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

from machining_quoter.resources import default_app_settings_json

APP_SETTINGS_ENV_VAR = "MACHINING_QUOTER_APP_SETTINGS"
DEBUG_ENV_VAR = "MACHINING_QUOTER_DEBUG"
_APP_SETTINGS_CACHE: dict[str, Any] | None = None

LOGGER_NAME = "machining_quoter"


def get_logger(*names: str) -> logging.Logger:
    """Return a logger under the shared machining quoter namespace."""

    if not names:
        return logging.getLogger(LOGGER_NAME)
    qualified = ".".join((LOGGER_NAME, *names))
    return logging.getLogger(qualified)


logger = get_logger()


def configure_logging(level: int = logging.INFO, *, force: bool = False) -> None:
    """Initialise a basic logging configuration if none is present."""

    root = logging.getLogger()
    if root.handlers and not force:
        root.setLevel(level)
        return
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        force=force,
    )


def env_flag(name: str, *, default: bool = False) -> bool:
    """Return a boolean from the environment with tolerant parsing."""

    raw = os.getenv(name)
    if raw is None:
        return default

    normalized = raw.strip().lower()
    if not normalized:
        return default

    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False

    try:
        return bool(int(normalized))
    except ValueError:
        return default


class ConfigError(RuntimeError):
    """Raised when configuration data cannot be loaded or validated."""


def _load_json_mapping(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Malformed JSON in {path.name}: {exc}") from exc

    if not isinstance(raw, Mapping):
        raise ConfigError(f"Configuration root must be an object in {path.name}")

    return dict(raw)


def _merge_mappings(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    for key, value in override.items():
        if key in base and isinstance(base[key], Mapping) and isinstance(value, Mapping):
            base[key] = _merge_mappings(dict(base[key]), value)
        else:
            base[key] = value
    return base


def _load_app_settings_raw() -> dict[str, Any]:
    base = _load_json_mapping(default_app_settings_json())

    override_raw = os.getenv(APP_SETTINGS_ENV_VAR)
    if override_raw:
        override_path = Path(override_raw).expanduser()
        if override_path.exists():
            try:
                override = _load_json_mapping(override_path)
            except ConfigError as exc:
                raise ConfigError(f"Failed to load override settings: {exc}") from exc
            base = _merge_mappings(base, override)
        else:
            logger.warning("Override settings path does not exist: %s", override_path)

    return base


def load_app_settings(*, reload: bool = False) -> dict[str, Any]:
    """Return the merged application settings, applying optional overrides."""

    global _APP_SETTINGS_CACHE
    if reload or _APP_SETTINGS_CACHE is None:
        _APP_SETTINGS_CACHE = _load_app_settings_raw()

    return copy.deepcopy(_APP_SETTINGS_CACHE)


@dataclass(frozen=True)
class EngineSettings:
    """Numeric guard rails and defaults used by the calculation engine."""

    efficiency_epsilon: float = 1e-6
    max_formula_depth: int = 200
    max_formula_length: int = 4000
    default_region: str = "Default"
    default_currency: str = "USD"
    currency_rates_to_usd: Mapping[str, float] = field(default_factory=lambda: {"USD": 1.0})

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "EngineSettings":
        engine = raw.get("engine")
        if not isinstance(engine, Mapping):
            raise ConfigError("'engine' section missing from app settings")

        rates_raw = raw.get("currency_rates_to_usd") or {}
        if not isinstance(rates_raw, Mapping):
            raise ConfigError("'currency_rates_to_usd' must be an object")

        rates: dict[str, float] = {}
        for code, value in rates_raw.items():
            try:
                rate = float(value)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"Invalid currency rate for {code!r}: {value!r}") from exc
            if rate <= 0:
                raise ConfigError(f"Currency rate for {code!r} must be positive")
            rates[str(code).upper()] = rate
        rates.setdefault("USD", 1.0)

        try:
            return cls(
                efficiency_epsilon=float(engine.get("efficiency_epsilon", cls.efficiency_epsilon)),
                max_formula_depth=int(engine.get("max_formula_depth", cls.max_formula_depth)),
                max_formula_length=int(engine.get("max_formula_length", cls.max_formula_length)),
                default_region=str(engine.get("default_region", cls.default_region)),
                default_currency=str(engine.get("default_currency", cls.default_currency)).upper(),
                currency_rates_to_usd=rates,
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid engine settings: {exc}") from exc


def load_engine_settings(*, reload: bool = False) -> EngineSettings:
    """Return the :class:`EngineSettings` built from the merged app settings."""

    return EngineSettings.from_mapping(load_app_settings(reload=reload))


def describe_runtime_environment() -> dict[str, str]:
    """Return a snapshot of the runtime configuration for diagnostics."""

    return {
        "app_settings_override": os.getenv(APP_SETTINGS_ENV_VAR, ""),
        "debug_enabled": str(env_flag(DEBUG_ENV_VAR)),
        "app_settings_path": str(default_app_settings_json()),
    }


__all__ = [
    "APP_SETTINGS_ENV_VAR",
    "ConfigError",
    "DEBUG_ENV_VAR",
    "EngineSettings",
    "LOGGER_NAME",
    "configure_logging",
    "describe_runtime_environment",
    "env_flag",
    "get_logger",
    "load_app_settings",
    "load_engine_settings",
    "logger",
]
