# ============================================================================
# CLAUDE CONTEXT - APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core Infrastructure - Configuration Management
# PURPOSE: Centralized configuration for the upstream OGC endpoint and its credentials
# LAST_REVIEWED: 19 OCT 2026
# EXPORTS: AppConfig, get_app_config, get_upstream_auth, validate_configuration
# DEPENDENCIES: pydantic-settings, util_logger
# SOURCE: Environment variables, .env file
# PATTERNS: Singleton pattern for config, lazy initialization
# ============================================================================

"""
Application Configuration Module

Provides centralized configuration for the feature discovery Function App:
- Base URL of the OGC proxy that fronts the WMS/WFS (`/ws`) and ZWS
  (`/zws`) services
- Optional HTTP Basic credentials for the upstream

DEBUG_LOGGING is read by util_logger.LoggerFactory, not here.

Authentication Modes:
    1. Anonymous:
       - OGC_USERNAME / OGC_PASSWORD unset
       - Use when a reverse proxy injects the Authorization header

    2. Basic:
       - Requires: OGC_USERNAME and OGC_PASSWORD
       - Credentials are sent by the discovery transport on every request

Usage:
    from config import get_app_config

    config = get_app_config()
    print(config.ogc_base_url)
"""

import logging
from typing import Optional, Tuple
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator

from util_logger import LoggerFactory

logger = logging.getLogger(__name__)

# ============================================================================
# Application Configuration
# ============================================================================

class AppConfig(BaseSettings):
    """
    Application-wide configuration loaded from environment variables.

    Attributes:
        ogc_base_url: Base URL of the OGC proxy (no trailing slash)
        ogc_username: Upstream Basic auth user (optional)
        ogc_password: Upstream Basic auth password (optional)
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    ogc_base_url: str = Field(default="http://localhost:6473", description="OGC proxy base URL")
    ogc_username: Optional[str] = Field(default=None, description="Upstream Basic auth username")
    ogc_password: Optional[str] = Field(default=None, description="Upstream Basic auth password")

    @field_validator('ogc_base_url')
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URL so endpoint paths can be appended."""
        v = v.strip()
        if not v:
            raise ValueError("OGC_BASE_URL must not be empty")
        return v.rstrip('/')

    @model_validator(mode='after')
    def validate_credentials(self) -> 'AppConfig':
        """Username and password come as a pair."""
        if bool(self.ogc_username) != bool(self.ogc_password):
            raise ValueError(
                "OGC_USERNAME and OGC_PASSWORD must be set together"
            )
        return self


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """
    Get singleton application configuration instance.

    Returns:
        AppConfig: Validated configuration object

    Raises:
        ValidationError: If environment variables are invalid
    """
    return AppConfig()


def get_upstream_auth() -> Optional[Tuple[str, str]]:
    """
    Basic auth tuple for the upstream OGC services.

    Returns:
        (username, password) or None when running anonymously
    """
    config = get_app_config()
    if config.ogc_username:
        return (config.ogc_username, config.ogc_password)
    return None


# ============================================================================
# Configuration Validation
# ============================================================================

def validate_configuration() -> bool:
    """
    Validate configuration on application startup.

    Returns:
        bool: True if configuration is valid

    Raises:
        Exception: If configuration validation fails
    """
    try:
        config = get_app_config()
        logger.info("Configuration validation:")
        logger.info(f"  OGC Base URL: {config.ogc_base_url}")
        logger.info(f"  Auth Mode: {'basic' if config.ogc_username else 'anonymous'}")
        logger.info(f"  Component Log Level: {LoggerFactory.default_level.value}")
        return True

    except Exception as e:
        logger.error(f"❌ Configuration validation failed: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    validate_configuration()
