# ============================================================================
# CONFIG PACKAGE INIT
# ============================================================================
# STATUS: Shared - configuration entry point
# PURPOSE: Configuration package exports and singleton accessor
# EXPORTS: AppConfig, get_config, reset_config, debug_config and domain configs
# DEPENDENCIES: pydantic, domain config modules
# ============================================================================

"""
Configuration Package - Domain-Specific Configuration Modules

Structure:
    config/
    ├── __init__.py              # This file - exports and singleton
    ├── app_config.py            # Main config (composes domain configs)
    ├── defaults.py              # Default values
    ├── database_config.py       # PostgreSQL
    ├── queue_config.py          # Service Bus topics
    ├── storage_config.py        # Blob storage
    ├── load_config.py           # Extract-load pipeline tuning
    └── auth_config.py           # Permission service

Usage:
    from config import get_config
    config = get_config()
    batch_size = config.load.batch_size
"""

from typing import Optional

from .auth_config import AuthConfig
from .database_config import DatabaseConfig
from .load_config import LoadConfig
from .queue_config import QueueConfig
from .storage_config import StorageConfig
from .app_config import AppConfig


# ============================================================================
# SINGLETON PATTERN
# ============================================================================

_config_instance: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get global configuration singleton.

    Returns:
        AppConfig instance loaded from environment
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = AppConfig.from_environment()
    return _config_instance


def reset_config() -> None:
    """Drop the cached config (tests change the environment between cases)."""
    global _config_instance
    _config_instance = None


def debug_config() -> dict:
    """
    Get sanitized configuration for debugging (masks sensitive values).

    Returns:
        Dictionary with configuration values, secrets masked
    """
    try:
        config = get_config()
        return {
            'app_name': config.app_name,
            'environment': config.environment,
            'database': config.database.debug_dict(),
            'storage': config.storage.debug_dict(),
            'queues': {
                'request_topic': config.queues.request_topic,
                'request_subscription': config.queues.request_subscription,
                'response_topic': config.queues.response_topic,
                'max_concurrent_messages': config.queues.max_concurrent_messages,
                'connection': '***MASKED***' if config.queues.connection_string else None,
                'namespace': config.queues.namespace,
            },
            'load': config.load.model_dump(),
            'auth': {
                'enabled': config.auth.enabled,
                'permission_url': config.auth.permission_url,
            },
        }
    except Exception as e:
        return {'error': f'Configuration validation failed: {e}'}


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    'AppConfig',
    'get_config',
    'reset_config',
    'debug_config',
    'AuthConfig',
    'DatabaseConfig',
    'LoadConfig',
    'QueueConfig',
    'StorageConfig',
]
