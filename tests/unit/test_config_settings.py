from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from machining_quoter import config


def test_bundled_engine_settings() -> None:
    settings = config.load_engine_settings(reload=True)

    assert settings.efficiency_epsilon == pytest.approx(1e-6)
    assert settings.max_formula_depth == 200
    assert settings.default_region == "Default"
    assert settings.default_currency == "USD"
    assert settings.currency_rates_to_usd["EUR"] == pytest.approx(1.07)
    assert settings.currency_rates_to_usd["INR"] == pytest.approx(0.012)


def test_override_file_is_deep_merged(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    override = tmp_path / "settings.json"
    override.write_text(
        json.dumps({"engine": {"default_currency": "eur"}, "currency_rates_to_usd": {"CHF": 1.1}}),
        encoding="utf-8",
    )
    monkeypatch.setenv(config.APP_SETTINGS_ENV_VAR, str(override))

    settings = config.load_engine_settings(reload=True)

    assert settings.default_currency == "EUR"
    assert settings.max_formula_depth == 200
    assert settings.currency_rates_to_usd["CHF"] == pytest.approx(1.1)
    assert settings.currency_rates_to_usd["GBP"] == pytest.approx(1.27)


def test_missing_override_logs_warning(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    monkeypatch.setenv(config.APP_SETTINGS_ENV_VAR, str(tmp_path / "absent.json"))

    with caplog.at_level(logging.WARNING):
        settings = config.load_app_settings(reload=True)

    assert "engine" in settings
    assert "does not exist" in caplog.text


def test_malformed_override_raises(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    override = tmp_path / "broken.json"
    override.write_text("{not json", encoding="utf-8")
    monkeypatch.setenv(config.APP_SETTINGS_ENV_VAR, str(override))

    with pytest.raises(config.ConfigError):
        config.load_app_settings(reload=True)


def test_load_app_settings_returns_copies() -> None:
    first = config.load_app_settings()
    first["engine"]["default_region"] = "Mars"

    assert config.load_app_settings()["engine"]["default_region"] == "Default"


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"engine": {}, "currency_rates_to_usd": {"EUR": "lots"}},
        {"engine": {}, "currency_rates_to_usd": {"EUR": 0}},
        {"engine": {"max_formula_depth": "deep"}},
        {"engine": {}, "currency_rates_to_usd": [1, 2]},
    ],
)
def test_invalid_engine_settings_raise(raw: dict) -> None:
    with pytest.raises(config.ConfigError):
        config.EngineSettings.from_mapping(raw)


@pytest.mark.parametrize(
    "value, expected",
    [("1", True), ("yes", True), ("ON", True), ("0", False), ("off", False), ("", False), ("maybe", False), ("2", True)],
)
def test_env_flag(monkeypatch: pytest.MonkeyPatch, value: str, expected: bool) -> None:
    monkeypatch.setenv("MACHINING_QUOTER_TEST_FLAG", value)

    assert config.env_flag("MACHINING_QUOTER_TEST_FLAG") is expected


def test_get_logger_uses_package_namespace() -> None:
    assert config.get_logger().name == "machining_quoter"
    assert config.get_logger("pricing", "engine").name == "machining_quoter.pricing.engine"


def test_describe_runtime_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(config.DEBUG_ENV_VAR, "1")

    info = config.describe_runtime_environment()

    assert info["debug_enabled"] == "True"
    assert info["app_settings_path"].endswith("app_settings.json")
