"""Tests for environment-driven configuration."""

from datetime import date

from core.date_helper import month_bounds
from core.settings import Settings


class TestSettings:
    def test_environment_overrides_defaults(self, monkeypatch):
        monkeypatch.setenv("GATEWAY_TIMEOUT_SECONDS", "12.5")

        assert Settings(_env_file=None).GATEWAY_TIMEOUT_SECONDS == 12.5

    def test_names_are_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("currency", "USD")

        assert Settings(_env_file=None).CURRENCY == "USD"

    def test_env_file_ignores_unknown_keys(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TAHSEEEL_PHONE_CODE", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("TAHSEEEL_PHONE_CODE=974\nUNRELATED_KEY=1\n")

        loaded = Settings(_env_file=env_file)

        assert loaded.TAHSEEEL_PHONE_CODE == "974"
        assert not hasattr(loaded, "UNRELATED_KEY")

    def test_allowed_hosts_keep_only_http_urls(self):
        loaded = Settings(
            _env_file=None,
            ALLOWED_HOSTS_RAW="https://desk.test, ftp://files.test ,, http://localhost:3000",
        )

        assert loaded.ALLOWED_HOSTS == ["https://desk.test", "http://localhost:3000"]


class TestMonthBounds:
    def test_leap_february(self):
        assert month_bounds(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_december(self):
        assert month_bounds(2025, 12) == (date(2025, 12, 1), date(2025, 12, 31))
