"""Core functionality for the OpenLDAP facade."""

from .openldap import OpenLDAP
from .logging import setup_logging

__all__ = ["OpenLDAP", "setup_logging"]
