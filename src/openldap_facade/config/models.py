"""Configuration models for the OpenLDAP facade."""

from typing import Optional
from pydantic import BaseModel, Field, field_validator


class LDAPConfig(BaseModel):
    """Directory server connection and layout configuration."""

    host: str = Field(..., description="LDAP server host name or ldap:// / ldaps:// URL")
    port: int = Field(default=389, description="LDAP server port")
    admin_dn: Optional[str] = Field(default=None, description="Administrative bind DN")
    admin_password: Optional[str] = Field(default=None, description="Administrative bind password")
    login_attribute: str = Field(default="", description="RDN attribute used for user logins")
    base_userdn: str = Field(default="", description="Container DN holding user entries")
    groupdn: str = Field(default="", description="Container DN holding group entries")
    base_dn: str = Field(default="", description="Directory root DN")
    connect_timeout: int = Field(default=10, description="Connection timeout in seconds")
    receive_timeout: int = Field(default=10, description="Receive timeout in seconds")
    page_size: int = Field(default=500, description="Paged search page size")

    @field_validator('host')
    @classmethod
    def validate_host(cls, v):
        """Validate that a host was given."""
        if not v or not v.strip():
            raise ValueError('Host must not be empty')
        return v.strip()

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        """Validate port range."""
        if not 0 < v < 65536:
            raise ValueError('Port must be between 1 and 65535')
        return v

    @field_validator('login_attribute', 'base_userdn', 'groupdn', 'base_dn')
    @classmethod
    def strip_value(cls, v):
        return v.strip()

    @field_validator('connect_timeout', 'receive_timeout', 'page_size')
    @classmethod
    def validate_positive_int(cls, v):
        """Validate positive integers."""
        if v <= 0:
            raise ValueError('Value must be positive')
        return v


class SecurityConfig(BaseModel):
    """Security configuration for LDAP connections."""

    use_ssl: bool = Field(default=False, description="Connect over LDAPS")
    validate_certificate: bool = Field(default=True, description="Validate server certificate")
    ca_cert_file: Optional[str] = Field(default=None, description="CA certificate file path")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Logging level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log message format"
    )
    file: Optional[str] = Field(default=None, description="Log file path")

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f'Level must be one of: {valid_levels}')
        return v.upper()


class Config(BaseModel):
    """Main configuration class."""

    ldap: LDAPConfig
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
