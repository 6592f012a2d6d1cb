# ============================================================================
# CLAUDE CONTEXT - LOGGING
# ============================================================================
# STATUS: Shared - used by feature_discovery, health and function_app
# PURPOSE: JSON-only structured logging for Azure Functions with Application Insights
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: ComponentType, LogLevel, LogContext, JSONFormatter, LoggerFactory, log_exceptions
# INTERFACES: Dataclass models, enums, factory, JSON formatter, exception decorator
# DEPENDENCIES: enum, dataclasses, typing, datetime, logging, json, traceback (stdlib only!)
# PATTERNS: JSON-only output, Azure Functions integration, Exception decorator pattern
# ENTRY_POINTS: LoggerFactory.create_logger(), @log_exceptions decorator
# ============================================================================

"""
Unified Logger System

Structured JSON logging for the feature discovery Function App. Every
component gets a logger through LoggerFactory so log lines carry the
component type/name and, when supplied, click correlation context
(click id, layer, catalog strategy) as Application Insights custom
dimensions.

Design Principles:
- Strong typing with dataclasses (stdlib only)
- Enum safety for categories
- Component-specific loggers
- Clean factory pattern
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass
import logging
import os
import sys
import json
import traceback
from functools import wraps


# ============================================================================
# COMPONENT TYPES - Aligned with application layers
# ============================================================================

class ComponentType(Enum):
    """
    Component types aligned with the application layers.

    Each layer has specific logging needs and levels.
    """
    COORDINATOR = "coordinator"  # Per-click orchestration (result slot owner)
    SERVICE = "service"          # Catalog / health services
    ADAPTER = "adapter"          # Upstream HTTP transport (WMS/WFS/ZWS)
    PARSER = "parser"            # Response parsing
    TRIGGER = "trigger"          # HTTP entry points


# ============================================================================
# LOG LEVELS - Standard Python levels with enum safety
# ============================================================================

class LogLevel(Enum):
    """
    Standard Python log levels as enum for type safety.
    """
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
    Context for log correlation across one click.

    A click fans out into one request per candidate layer; click_id ties
    those requests together, layer/strategy say which one a line is about.
    """
    click_id: Optional[str] = None  # Monotonic click sequence id
    layer: Optional[str] = None  # Candidate layer being queried
    strategy: Optional[str] = None  # ZWS catalog transport strategy
    crs: Optional[str] = None  # CRS code of the click

    # Request correlation
    correlation_id: Optional[str] = None
    request_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            k: v for k, v in {
                'click_id': self.click_id,
                'layer': self.layer,
                'strategy': self.strategy,
                'crs': self.crs,
                'correlation_id': self.correlation_id,
                'request_id': self.request_id
            }.items() if v is not None
        }


# ============================================================================
# COMPONENT CONFIGURATION - Per-component settings
# ============================================================================

@dataclass
class ComponentConfig:
    """
    Configuration for component-specific logging.
    """
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO
    max_message_length: int = 1000


# ============================================================================
# JSON FORMATTER - Structured logging for Azure Functions
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in Azure Functions.
    Outputs logs in a format that Application Insights can automatically parse.
    """

    def format(self, record: logging.LogRecord) -> str:
        """
        Format log record as JSON for Application Insights.

        Args:
            record: Python LogRecord to format

        Returns:
            JSON string with structured log data
        """
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
            ComponentType.COORDINATOR,
            "DiscoveryCoordinator"
        )
        logger.info("Click resolved")
    """

    default_level = LogLevel.DEBUG if os.getenv('DEBUG_LOGGING', '').lower() == 'true' else LogLevel.INFO

    DEFAULT_CONFIGS = {
        ComponentType.COORDINATOR: ComponentConfig(
            component_type=ComponentType.COORDINATOR,
            log_level=default_level
        ),
        ComponentType.SERVICE: ComponentConfig(
            component_type=ComponentType.SERVICE,
            log_level=default_level
        ),
        ComponentType.ADAPTER: ComponentConfig(
            component_type=ComponentType.ADAPTER,
            log_level=default_level
        ),
        ComponentType.PARSER: ComponentConfig(
            component_type=ComponentType.PARSER,
            log_level=LogLevel.DEBUG  # Always debug - malformed upstream GML is logged here
        ),
        ComponentType.TRIGGER: ComponentConfig(
            component_type=ComponentType.TRIGGER,
            log_level=default_level
        )
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
            name: Component name (e.g., "LayerCatalogClient")
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

        # Remove existing handlers to avoid duplicates
        logger.handlers.clear()

        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(log_level)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

        # Allow propagation to Azure's root logger for Application Insights
        logger.propagate = True

        original_log = logger._log

        def log_with_context(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
            """Wrapper to inject context as custom dimensions."""
            if extra is None:
                extra = {}

            if context:
                custom_dims = context.to_dict()
                custom_dims['component_type'] = component_type.value
                custom_dims['component_name'] = name
            else:
                custom_dims = {
                    'component_type': component_type.value,
                    'component_name': name
                }

            if 'custom_dimensions' in extra:
                custom_dims.update(extra['custom_dimensions'])

            extra['custom_dimensions'] = custom_dims

            original_log(level, msg, args, exc_info=exc_info, extra=extra,
                         stack_info=stack_info, stacklevel=stacklevel)

        logger._log = log_with_context

        return logger


# ============================================================================
# EXCEPTION DECORATOR - Automatic exception logging with context
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Decorator to automatically log exceptions with full context.

    Works on both plain and ``async def`` functions. The exception is
    re-raised after logging.

    Example:
        @log_exceptions(ComponentType.TRIGGER, "IdentifyTrigger")
        async def handle(req):
            ...
    """
    import inspect

    def _resolve_logger(func) -> logging.Logger:
        if logger:
            return logger
        if component_type and component_name:
            return LoggerFactory.create_logger(component_type, component_name)
        return LoggerFactory.create_logger(
            ComponentType.SERVICE,
            func.__module__ or "unknown"
        )

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
