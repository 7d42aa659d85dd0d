"""
Configuration module.

Exports:
    settings: Application settings instance
    get_settings: Function to get settings (for dependency injection)
    get_supabase_client: Cached Supabase client
    configure_logging: structlog setup for entry points
"""

from config.settings import settings, get_settings, Settings
from config.database import (
    get_supabase_client,
    ConnectionError
)
from config.logging import configure_logging

__all__ = [
    # Settings
    "settings",
    "get_settings",
    "Settings",

    # Database
    "get_supabase_client",
    "ConnectionError",

    # Logging
    "configure_logging",
]
