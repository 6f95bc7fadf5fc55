"""Configuration loader for the OpenLDAP facade."""

import json
import os
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ldap3.core.exceptions import LDAPInvalidDnError
from ldap3.utils.dn import parse_dn

from .models import Config

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "OPENLDAP_CONFIG"


def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from JSON file.

    Args:
        config_path: Path to configuration file. If None, uses OPENLDAP_CONFIG
                    environment variable.

    Returns:
        Config: Loaded and validated configuration

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
        json.JSONDecodeError: If config file is not valid JSON
    """
    if config_path is None:
        config_path = os.getenv(CONFIG_ENV_VAR)
        if not config_path:
            raise ValueError(
                f"No configuration file specified. Either provide config_path or set {CONFIG_ENV_VAR} environment variable."
            )

    config_file = Path(config_path)
    if not config_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from: {config_path}")

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = json.load(f)

        config = Config(**config_data)
        logger.info("Configuration loaded successfully")

        # Never log credentials
        logger.debug(f"LDAP host: {config.ldap.host}:{config.ldap.port}")
        logger.debug(f"Base DN: {config.ldap.base_dn}")
        logger.debug(f"User container: {config.ldap.base_userdn}")
        logger.debug(f"Group container: {config.ldap.groupdn}")

        return config

    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in configuration file: {e}")
        raise
    except Exception as e:
        logger.error(f"Error loading configuration: {e}")
        raise


def _rdns(dn: str) -> List[Tuple[str, str]]:
    """Split a DN into lower-cased (attribute, value) pairs."""
    return [(attr.lower(), value.lower()) for attr, value, _ in parse_dn(dn, strip=True)]


def _is_under(dn: str, base_dn: str) -> bool:
    """Return True if dn is base_dn or an entry below it."""
    try:
        rdns, base_rdns = _rdns(dn), _rdns(base_dn)
    except LDAPInvalidDnError:
        return False

    return len(rdns) >= len(base_rdns) and rdns[len(rdns) - len(base_rdns):] == base_rdns


def validate_config(config: Config) -> None:
    """
    Perform additional validation on configuration.

    Problems found here are logged as warnings; none of them prevents the
    facade from connecting.

    Args:
        config: Configuration to validate
    """
    ldap_config = config.ldap
    base_dn = ldap_config.base_dn

    if base_dn:
        containers = {
            "User container": ldap_config.base_userdn,
            "Group container": ldap_config.groupdn,
            "Admin DN": ldap_config.admin_dn,
        }
        for label, dn in containers.items():
            if dn and not _is_under(dn, base_dn):
                logger.warning(f"{label} {dn} is not under base DN {base_dn}")

    host = ldap_config.host.lower()
    if host.startswith('ldaps://') and not config.security.use_ssl:
        logger.warning("Host uses ldaps:// but use_ssl is disabled")
    if config.security.use_ssl and host.startswith('ldap://'):
        logger.warning("SSL enabled but host URL uses ldap://")

    logger.info("Configuration validation completed")
