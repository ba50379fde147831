"""Tests for configuration loading and validation."""

from dataclasses import replace

import pytest

from tutor_scheduling.config import (
    AppConfig,
    BookingConfig,
    SchedulingConfig,
    _safe_int,
    _validate_config,
    settings,
)


class TestConfigValidation:
    def test_default_config_passes_validation(self):
        config = AppConfig()
        _validate_config(config)  # should not raise

    def test_defaults(self):
        config = AppConfig()
        assert config.scheduling.availability_window_days == 90
        assert config.scheduling.max_recurring_range_days == 366
        assert config.booking.max_sessions_per_booking == 50
        assert config.booking.amount_decimal_places == 2
        assert config.booking.rating_decimal_places == 1

    def test_zero_window_rejected(self):
        config = replace(AppConfig(), scheduling=replace(SchedulingConfig(), availability_window_days=0))
        with pytest.raises(ValueError, match="AVAILABILITY_WINDOW_DAYS"):
            _validate_config(config)

    def test_zero_range_rejected(self):
        config = replace(AppConfig(), scheduling=replace(SchedulingConfig(), max_recurring_range_days=0))
        with pytest.raises(ValueError, match="MAX_RECURRING_RANGE_DAYS"):
            _validate_config(config)

    def test_zero_sessions_rejected(self):
        config = replace(AppConfig(), booking=replace(BookingConfig(), max_sessions_per_booking=0))
        with pytest.raises(ValueError, match="MAX_SESSIONS_PER_BOOKING"):
            _validate_config(config)

    def test_negative_decimal_places_rejected(self):
        config = replace(AppConfig(), booking=replace(BookingConfig(), rating_decimal_places=-1))
        with pytest.raises(ValueError, match="RATING_DECIMAL_PLACES"):
            _validate_config(config)

    def test_zero_decimal_places_allowed(self):
        config = replace(AppConfig(), booking=replace(BookingConfig(), amount_decimal_places=0))
        _validate_config(config)


class TestSafeInt:
    def test_reads_env(self, monkeypatch):
        monkeypatch.setenv("TEST_SAFE_INT", "42")
        assert _safe_int("TEST_SAFE_INT", "1") == 42

    def test_falls_back_to_default(self, monkeypatch):
        monkeypatch.delenv("TEST_SAFE_INT", raising=False)
        assert _safe_int("TEST_SAFE_INT", "7") == 7

    def test_bad_value_names_variable(self, monkeypatch):
        monkeypatch.setenv("TEST_SAFE_INT", "ninety")
        with pytest.raises(ValueError, match="TEST_SAFE_INT"):
            _safe_int("TEST_SAFE_INT", "1")


class TestSettingsSingleton:
    def test_is_frozen(self):
        with pytest.raises(AttributeError):
            settings.log_level = "DEBUG"

    def test_app_name(self):
        assert settings.app_name
