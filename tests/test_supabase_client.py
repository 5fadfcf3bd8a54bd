"""
Tests for settings and Supabase client construction.
"""

from unittest.mock import AsyncMock, patch

import pytest

from lightguard_data import supabase_client
from lightguard_data.config import Settings
from lightguard_data.exceptions import ConfigurationError
from lightguard_data.logging_config import get_logger, setup_logging
from lightguard_data.record_service import RecordService


@pytest.fixture(autouse=True)
def reset_client():
    """Make sure every test starts without a cached client."""
    supabase_client.reset_supabase_client()
    yield
    supabase_client.reset_supabase_client()


class TestSettings:
    """Test settings loading."""

    def test_loads_from_environment(self):
        """Test values come from the test environment."""
        config = Settings()

        assert config.SUPABASE_URL == "https://testproject.supabase.co"
        assert config.LOG_LEVEL == "WARNING"
        assert config.supabase_configured is True

    def test_defaults(self, monkeypatch):
        """Test defaults when nothing is set."""
        monkeypatch.delenv("SUPABASE_URL")
        monkeypatch.delenv("SUPABASE_SERVICE_KEY")

        config = Settings(_env_file=None)

        assert config.DEFAULT_ID_COLUMN == "id"
        assert config.PROFILES_TABLE == "profiles"
        assert config.supabase_configured is False

    def test_invalid_log_level(self, monkeypatch):
        """Test unknown log levels are rejected."""
        monkeypatch.setenv("LOG_LEVEL", "LOUD")

        with pytest.raises(ValueError):
            Settings()


@pytest.mark.asyncio
class TestSupabaseClient:
    """Test client creation and caching."""

    async def test_missing_url(self):
        """Test an unset URL raises ConfigurationError."""
        config = Settings(SUPABASE_URL="")

        with pytest.raises(ConfigurationError) as exc_info:
            await supabase_client.get_supabase_client(config)

        assert exc_info.value.details["missing"] == "SUPABASE_URL"

    async def test_missing_key(self):
        """Test an unset service key raises ConfigurationError."""
        config = Settings(SUPABASE_SERVICE_KEY="")

        with pytest.raises(ConfigurationError):
            await supabase_client.get_supabase_client(config)

    async def test_client_is_cached(self):
        """Test the client is created once and reused."""
        fake = object()
        with patch.object(
            supabase_client, "acreate_client", AsyncMock(return_value=fake)
        ) as mock_create:
            first = await supabase_client.get_supabase_client()
            second = await supabase_client.get_supabase_client()

        assert first is fake
        assert second is fake
        mock_create.assert_awaited_once_with(
            "https://testproject.supabase.co", "test-service-key"
        )

    async def test_create_record_service_with_injected_client(self, fake_client):
        """Test the factory uses an injected client without touching globals."""
        config = Settings(DEFAULT_ID_COLUMN="uuid")

        service = await supabase_client.create_record_service(fake_client, config)

        assert isinstance(service, RecordService)
        assert service.client is fake_client
        assert service.default_id_column == "uuid"

    async def test_create_record_service_uses_shared_client(self):
        """Test the factory falls back to the shared client."""
        fake = object()
        with patch.object(supabase_client, "acreate_client", AsyncMock(return_value=fake)):
            service = await supabase_client.create_record_service()

        assert service.client is fake


class TestLogging:
    """Test logging setup."""

    def test_setup_logging_returns_bound_logger(self):
        """Test setup binds the service name."""
        logger = setup_logging("DEBUG", service_name="lightguard-test", use_json=True)

        assert logger is not None
        assert get_logger("lightguard_data.tests") is not None
