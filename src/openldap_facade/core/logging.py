"""Log handler setup and the audit trail of directory operations."""

import logging
import logging.handlers
import sys
from typing import Any, Dict, Optional, Union

from ..config.models import LoggingConfig

LOGGER_NAME = "openldap_facade"
AUDIT_LOGGER_NAME = f"{LOGGER_NAME}.audit"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUP_COUNT = 5

Outcome = Union[Dict[str, Any], Exception, None]


def setup_logging(config: LoggingConfig) -> logging.Logger:
    """
    Route the package logger to stdout and, if configured, a rotating file.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        config: Logging configuration

    Returns:
        The package logger
    """
    level = getattr(logging, config.level)
    formatter = logging.Formatter(config.format)

    handlers = [logging.StreamHandler(sys.stdout)]
    file_error = None
    if config.file:
        try:
            handlers.append(logging.handlers.RotatingFileHandler(
                config.file,
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUP_COUNT,
                encoding='utf-8'
            ))
        except OSError as e:
            file_error = e

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    logger.handlers.clear()
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # ldap3 logs every PDU below WARNING
    logging.getLogger("ldap3").setLevel(logging.WARNING)

    if file_error:
        logger.warning(f"Could not open log file {config.file}: {file_error}")
    elif config.file:
        logger.info(f"Logging to file: {config.file}")

    logger.info(f"Logging initialized at level: {config.level}")
    return logger


def describe_outcome(outcome: Outcome) -> Optional[str]:
    """
    Summarize an ldap3 result dict or a raised exception.

    ``{'result': 68, 'description': 'entryAlreadyExists', 'message': ''}``
    becomes ``entryAlreadyExists (68)``; a non-empty server message is
    appended after a colon.
    """
    if outcome is None:
        return None
    if isinstance(outcome, Exception):
        return f"{type(outcome).__name__}: {outcome}"

    summary = f"{outcome.get('description')} ({outcome.get('result')})"
    if outcome.get('message'):
        summary += f": {outcome['message']}"
    return summary


def log_ldap_operation(operation: str, dn: str, success: bool, outcome: Outcome = None) -> None:
    """
    Write an audit line for a directory operation.

    Successful operations are logged at INFO, failures at WARNING together
    with the server result or exception that caused them.
    """
    audit = logging.getLogger(AUDIT_LOGGER_NAME)

    if success:
        audit.info(f"LDAP {operation.upper()} SUCCESS: {dn}")
        return

    message = f"LDAP {operation.upper()} FAILED: {dn}"
    details = describe_outcome(outcome)
    if details:
        message += f" - {details}"
    audit.warning(message)
