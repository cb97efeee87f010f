"""
Tests for environment-driven settings
"""
import pytest

from tidechart.config import Settings, load_settings


class TestLoadSettings:
    """Tests for reading settings from the environment."""

    def test_defaults(self, monkeypatch):
        for key in ('TIDECHART_WIDTH', 'TIDECHART_HEIGHT', 'TIDECHART_EXTRA_HOURS',
                    'TIDECHART_UNIT', 'TIDE_FETCH_TIMEOUT_SECONDS'):
            monkeypatch.delenv(key, raising=False)
        assert load_settings() == Settings()
        assert Settings().fetch_timeout is None

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv('TIDECHART_WIDTH', '320')
        monkeypatch.setenv('TIDECHART_EXTRA_HOURS', '1.5')
        monkeypatch.setenv('TIDECHART_UNIT', 'ft')
        monkeypatch.setenv('TIDE_FETCH_TIMEOUT_SECONDS', '8')
        settings = load_settings()
        assert settings.chart_width == 320
        assert settings.extra_hours == 1.5
        assert settings.unit == 'ft'
        assert settings.fetch_timeout == 8.0

    @pytest.mark.parametrize("key,attr,default", [
        ('TIDECHART_WIDTH', 'chart_width', 240),
        ('TIDECHART_HEIGHT', 'chart_height', 64),
        ('TIDE_FETCH_TIMEOUT_SECONDS', 'fetch_timeout_seconds', 0.0),
    ])
    def test_unparseable_values_fall_back(self, monkeypatch, key, attr, default):
        monkeypatch.setenv(key, 'lots')
        assert getattr(load_settings(), attr) == default

    @pytest.mark.parametrize("value,expected", [
        ('ft', 'ft'),
        (' ft ', 'ft'),
        ('yards', 'm'),
        ('', 'm'),
    ])
    def test_unit_must_be_known(self, monkeypatch, value, expected):
        monkeypatch.setenv('TIDECHART_UNIT', value)
        assert load_settings().unit == expected
