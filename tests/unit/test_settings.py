"""
Unit Tests - Configuration
"""
import pytest
from pydantic import ValidationError

from src.config.settings import DashboardSettings, Settings, StoreSettings
from src.domain.models import TimeFrame


class TestDashboardSettings:
    """Tests for dashboard configuration"""

    def test_default_timeframe(self):
        assert DashboardSettings().default_timeframe == TimeFrame.DAILY

    def test_timeframe_from_environment(self, monkeypatch):
        """Environment values are parsed into a TimeFrame"""
        monkeypatch.setenv("DASHBOARD_DEFAULT_TIMEFRAME", "monthly")

        assert DashboardSettings().default_timeframe == TimeFrame.MONTHLY

    def test_unknown_timeframe_rejected_at_load(self, monkeypatch):
        """A bad timeframe fails when settings load, not on the first request"""
        monkeypatch.setenv("DASHBOARD_DEFAULT_TIMEFRAME", "hourly")

        with pytest.raises(ValidationError):
            DashboardSettings()


class TestSettings:
    """Tests for top-level settings validation"""

    def test_unknown_environment_rejected(self):
        with pytest.raises(ValidationError):
            Settings(app_env="qa")

    def test_unknown_store_backend_rejected(self):
        with pytest.raises(ValidationError):
            StoreSettings(backend="postgres")

    def test_backend_normalized(self):
        assert StoreSettings(backend="Memory").backend == "memory"
