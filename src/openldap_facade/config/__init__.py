"""Configuration module for the OpenLDAP facade."""

from .loader import load_config, validate_config
from .models import (
    LDAPConfig,
    SecurityConfig,
    LoggingConfig,
    Config,
)

__all__ = [
    "load_config",
    "validate_config",
    "LDAPConfig",
    "SecurityConfig",
    "LoggingConfig",
    "Config",
]
