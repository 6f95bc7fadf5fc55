"""
openldap-facade - a thin object-oriented facade over an OpenLDAP directory.

This package wraps an ldap3 connection bound as the directory administrator
and offers helpers to search, add, modify and delete entries, authenticate
users, list groups and allocate numeric user ids.
"""

__version__ = "0.1.0"

from .config import Config, load_config
from .core.openldap import OpenLDAP

__all__ = ["OpenLDAP", "Config", "load_config"]
