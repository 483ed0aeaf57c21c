# ============================================================================
# UNIFIED LOGGER
# ============================================================================
# STATUS: Shared - structured logging for every layer
# PURPOSE: JSON-only structured logging with per-component loggers
# EXPORTS: ComponentType, LogLevel, LogContext, ComponentConfig, JSONFormatter,
#          LoggerFactory, log_exceptions
# DEPENDENCIES: Standard library only (logging, enum, dataclasses, json)
# ============================================================================
"""
Unified Logger System.

JSON-only structured logging for the extract-load worker. Every record is
written to stdout as one JSON object so the container log collector can
index the custom dimensions (dataset id, message id, geometry kind).

Design Principles:
    - Strong typing with dataclasses (stdlib only)
    - Enum safety for categories
    - Component-specific loggers
    - Clean factory pattern

Exports:
    ComponentType: Enum for component types
    LogLevel: Enum for log levels
    LogContext: Logging context dataclass
    LoggerFactory: Factory for creating loggers
    log_exceptions: Exception logging decorator
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass
import inspect
import logging
import sys
import os
import json
import traceback
from functools import wraps


# ============================================================================
# COMPONENT TYPES
# ============================================================================

class ComponentType(Enum):
    """
    Component types aligned with the worker's layers.

    NO "UTIL" or other non-architectural types.
    """
    CONTROLLER = "controller"  # Load orchestration
    SERVICE = "service"        # Pipeline steps (archive, classifier, inserter)
    REPOSITORY = "repository"  # Database access
    ADAPTER = "adapter"        # Azure SDK / HTTP integrations
    TRIGGER = "trigger"        # Queue listener and entry point
    SCHEMA = "schema"          # Config and contracts


# ============================================================================
# LOG LEVELS
# ============================================================================

class LogLevel(Enum):
    """Standard Python log levels as enum for type safety."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)

    @classmethod
    def from_string(cls, level: str) -> 'LogLevel':
        """Create from string, case-insensitive."""
        return cls[level.upper()]


# ============================================================================
# LOG CONTEXT - Correlation and tracking
# ============================================================================

@dataclass
class LogContext:
    """
    Context for log correlation across one load.

    The message id ties worker logs to the Service Bus delivery; the dataset
    id ties them to the rows in the database.
    """
    message_id: Optional[str] = None
    dataset_id: Optional[str] = None
    data_type: Optional[str] = None
    user_id: Optional[str] = None
    project_group_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            k: v for k, v in {
                'message_id': self.message_id,
                'dataset_id': self.dataset_id,
                'data_type': self.data_type,
                'user_id': self.user_id,
                'project_group_id': self.project_group_id,
            }.items() if v is not None
        }


# ============================================================================
# COMPONENT CONFIGURATION - Per-component settings
# ============================================================================

@dataclass
class ComponentConfig:
    """Configuration for component-specific logging."""
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO


# ============================================================================
# JSON FORMATTER
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Outputs one JSON object per record so downstream collectors can parse
    custom dimensions without regexes.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# LOGGER FACTORY - Creates component-specific loggers
# ============================================================================

class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(
            ComponentType.CONTROLLER,
            "LoadOrchestrator"
        )
        logger.info("Processing dataset")
    """

    _default_level = LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO

    DEFAULT_CONFIGS = {
        ComponentType.CONTROLLER: ComponentConfig(ComponentType.CONTROLLER, _default_level),
        ComponentType.SERVICE: ComponentConfig(ComponentType.SERVICE, _default_level),
        ComponentType.REPOSITORY: ComponentConfig(ComponentType.REPOSITORY, _default_level),
        ComponentType.ADAPTER: ComponentConfig(ComponentType.ADAPTER, _default_level),
        ComponentType.TRIGGER: ComponentConfig(ComponentType.TRIGGER, _default_level),
        ComponentType.SCHEMA: ComponentConfig(ComponentType.SCHEMA, _default_level),
    }

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
        config: Optional[ComponentConfig] = None
    ) -> logging.Logger:
        """
        Create a logger for a specific component.

        Args:
            component_type: Type of component
            name: Component name (e.g., "BatchInserter")
            context: Optional log context for correlation
            config: Optional custom configuration

        Returns:
            Configured Python logger
        """
        if config is None:
            config = cls.DEFAULT_CONFIGS.get(
                component_type,
                ComponentConfig(component_type=component_type)
            )

        logger_name = f"{component_type.value}.{name}"
        logger = logging.getLogger(logger_name)

        if isinstance(config.log_level, str):
            log_level = LogLevel.from_string(config.log_level).to_python_level()
        else:
            log_level = config.log_level.to_python_level()
        logger.setLevel(log_level)

        # One JSON handler per logger, even when create_logger is called repeatedly
        has_json_handler = any(
            isinstance(h.formatter, JSONFormatter) for h in logger.handlers
        )
        if not has_json_handler:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(log_level)
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)

        logger.propagate = True

        if not hasattr(logger, '_context_wrapped'):
            original_log = logger._log

            def log_with_context(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
                """Inject component and context as custom dimensions."""
                if extra is None:
                    extra = {}

                custom_dims = context.to_dict() if context else {}
                custom_dims['component_type'] = component_type.value
                custom_dims['component_name'] = name

                if 'custom_dimensions' in extra:
                    custom_dims.update(extra['custom_dimensions'])

                extra['custom_dimensions'] = custom_dims

                original_log(level, msg, args, exc_info=exc_info, extra=extra,
                             stack_info=stack_info, stacklevel=stacklevel + 1)

            logger._log = log_with_context
            logger._context_wrapped = True

        return logger


# ============================================================================
# EXCEPTION DECORATOR - Automatic exception logging with context
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Decorator to log exceptions with full context and re-raise them.

    Works on both plain functions and coroutine functions.

    Example:
        @log_exceptions(ComponentType.ADAPTER, "BlobStorageClient")
        async def get_file_from_url(url):
            ...
    """
    def _resolve_logger(func) -> logging.Logger:
        if logger:
            return logger
        if component_type and component_name:
            return LoggerFactory.create_logger(component_type, component_name)
        return LoggerFactory.create_logger(ComponentType.SERVICE, func.__module__ or "unknown")

    def _log_failure(log: logging.Logger, func, e: Exception, args, kwargs) -> None:
        log.error(
            f"Exception in {func.__name__}",
            exc_info=True,
            extra={
                'custom_dimensions': {
                    'function_name': func.__name__,
                    'function_module': func.__module__,
                    'exception_type': type(e).__name__,
                    'exception_message': str(e),
                    'function_args': str(args)[:500],
                    'function_kwargs': str(kwargs)[:500],
                    'traceback': traceback.format_exc()
                }
            }
        )

    def decorator(func):
        if inspect.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    _log_failure(_resolve_logger(func), func, e, args, kwargs)
                    raise
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log_failure(_resolve_logger(func), func, e, args, kwargs)
                raise
        return wrapper
    return decorator
