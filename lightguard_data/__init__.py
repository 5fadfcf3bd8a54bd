"""LightGuard data access layer: generic Supabase record service and stateful hooks."""

from .exceptions import (ConfigurationError, HookClosedError,
                         InvalidPayloadError, RecordServiceException,
                         RemoteQueryError, RemoteStoreError, RemoteWriteError)
from .hooks import HookState, ItemHook, MutationHook, QueryHook
from .models import OrderBy, Pagination, Profile, QuerySpec
from .profiles import ProfileService
from .record_service import RecordService
from .supabase_client import create_record_service, get_supabase_client

__all__ = [
    "ConfigurationError",
    "HookClosedError",
    "HookState",
    "InvalidPayloadError",
    "ItemHook",
    "MutationHook",
    "OrderBy",
    "Pagination",
    "Profile",
    "ProfileService",
    "QueryHook",
    "QuerySpec",
    "RecordService",
    "RecordServiceException",
    "RemoteQueryError",
    "RemoteStoreError",
    "RemoteWriteError",
    "create_record_service",
    "get_supabase_client",
]

__version__ = "1.0.0"
