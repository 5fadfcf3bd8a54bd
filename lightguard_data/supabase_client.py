"""
Supabase client configuration for the LightGuard data layer.

Provides a lazily created async Supabase client and a record service factory.
"""

from typing import Optional

from supabase import AsyncClient, acreate_client

from .config import Settings, settings
from .exceptions import ConfigurationError
from .logging_config import get_logger
from .record_service import RecordService

logger = get_logger(__name__)

# Global Supabase client instance
_supabase_client: Optional[AsyncClient] = None


async def get_supabase_client(config: Optional[Settings] = None) -> AsyncClient:
    """
    Get or create the shared async Supabase client.

    Args:
        config: Settings to read credentials from (defaults to global settings)

    Returns:
        Configured Supabase client

    Raises:
        ConfigurationError: If SUPABASE_URL or SUPABASE_SERVICE_KEY is unset
    """
    global _supabase_client

    config = config or settings
    if not config.SUPABASE_URL:
        raise ConfigurationError("SUPABASE_URL")
    if not config.SUPABASE_SERVICE_KEY:
        raise ConfigurationError("SUPABASE_SERVICE_KEY")

    if _supabase_client is None:
        logger.info("supabase_client_init", url=config.SUPABASE_URL)
        _supabase_client = await acreate_client(
            config.SUPABASE_URL, config.SUPABASE_SERVICE_KEY
        )
        logger.info("supabase_client_ready")

    return _supabase_client


def reset_supabase_client() -> None:
    """Drop the cached client so the next call creates a new one."""
    global _supabase_client
    _supabase_client = None


async def create_record_service(
    client: Optional[AsyncClient] = None,
    config: Optional[Settings] = None,
) -> RecordService:
    """
    Build a record service.

    Uses ``client`` when given, otherwise the shared Supabase client.
    """
    config = config or settings
    if client is None:
        client = await get_supabase_client(config)
    return RecordService(client, default_id_column=config.DEFAULT_ID_COLUMN)
