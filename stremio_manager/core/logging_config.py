"""
Simple logging configuration.
"""
import logging
import logging.handlers
import re
from enum import Enum
from pathlib import Path


class LogCategory(str, Enum):
    """Enumeration for standardized log categories."""
    APP = "stremio_manager"
    ERRORS = "stremio_manager.errors"
    SECURITY = "stremio_manager.security"
    SYNC = "stremio_manager.sync"
    REMOTE = "stremio_manager.remote"
    STORAGE = "stremio_manager.storage"
    ACCOUNT_ACTIONS = "stremio_manager.account_actions"


DEFAULT_LOG_LEVEL = logging.INFO

# Fields that should be masked in logs
SENSITIVE_FIELDS = {
    'password',
    'authkey',
    'auth_key',
    'token',
    'secret',
    'api_key',
    'apikey',
    'debrid_key',
    'debridkey',
    'passphrase',
    'master_password',
}

# Debrid keys embedded in addon URLs, e.g. ".../qualityfilter=4k|realdebrid=ABC/manifest.json"
_URL_SECRET_PATTERN = re.compile(r"(realdebrid|torbox|premiumize|alldebrid|debridlink|offcloud)=([^|/%]+)", re.IGNORECASE)


def mask_url_secrets(value: str) -> str:
    """Mask debrid keys embedded in an addon transport URL."""
    return _URL_SECRET_PATTERN.sub(lambda m: f"{m.group(1)}=***", value)


def _sanitize_data(data):
    """
    Sanitize data to mask sensitive fields.

    Recursively processes dictionaries, lists, and strings to mask sensitive information.
    Addon URLs carrying debrid keys are masked in place.

    Args:
        data: Data to sanitize (dict, list, str, or any other type)

    Returns:
        Sanitized version of the data with sensitive fields masked
    """
    if data is None:
        return data

    if isinstance(data, dict):
        sanitized = {}
        for key, value in data.items():
            key_lower = str(key).lower()
            if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
                sanitized[key] = '***MASKED***'
            else:
                sanitized[key] = _sanitize_data(value)
        return sanitized

    if isinstance(data, (list, tuple)):
        return [_sanitize_data(item) for item in data]

    if isinstance(data, str):
        if '://' in data:
            data = mask_url_secrets(data)

        # Very long opaque strings are most likely keys or ciphertext
        if len(data) > 64 and all(c.isalnum() or c in '-_=' for c in data):
            return '***MASKED***'

        return data

    return data


def _resolve_log_level(level_value, default=DEFAULT_LOG_LEVEL):
    """Resolve string/integer log level inputs to a logging level."""
    if isinstance(level_value, str):
        candidate = level_value.strip()
        if not candidate:
            return default, True
        if candidate.isdigit():
            level_value = int(candidate)
        else:
            candidate = candidate.upper()
            try:
                return logging._checkLevel(candidate), False
            except (ValueError, TypeError):
                return default, True
    try:
        return logging._checkLevel(level_value), False
    except (ValueError, TypeError):
        return default, True


def _get_settings():
    """Lazy import to avoid circular dependency with config module."""
    from stremio_manager.core.config import settings  # local import to break circular dependency
    return settings


def setup_logging(level=None, log_to_file=None):
    """Setup logging configuration."""
    settings = _get_settings()

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    resolved_level, used_default_level = _resolve_log_level(level if level is not None else settings.log_level)
    if log_to_file is None:
        log_to_file = settings.log_to_file

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(resolved_level)

    root_logger.setLevel(resolved_level)
    root_logger.addHandler(console_handler)

    log_file = None
    if log_to_file:
        log_dir = settings.effective_log_dir
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = Path(log_dir) / "stremio-manager.log"
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=5 * 1024 * 1024,  # 5MB
            backupCount=3,
            encoding='utf-8'
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(resolved_level)
        root_logger.addHandler(file_handler)

    logging.getLogger(LogCategory.APP).setLevel(resolved_level)
    logging.getLogger(LogCategory.SECURITY).setLevel(logging.INFO)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    if used_default_level:
        logger.warning(
            "Invalid log level '%s' in configuration, falling back to INFO",
            settings.log_level
        )
    logger.info(
        "Logging configured - Level: %s",
        logging.getLevelName(resolved_level)
    )
    if log_file:
        logger.info(f"File logging: {log_file}")


def _log_with_context(logger: logging.Logger, level: int, message: str, exc_info: bool = False, **kwargs):
    """Internal helper to format logs with extra context.

    Args:
        logger: Logger instance to use
        level: Logging level
        message: Log message
        exc_info: Whether to include exception traceback
        **kwargs: Additional context to append to message (e.g., account_id, addon_id)
                   Sensitive fields will be automatically masked
    """
    log_message = _sanitize_data(message) if isinstance(message, str) else str(message)

    if kwargs:
        sanitized_kwargs = _sanitize_data(kwargs)
        extra_context = ", ".join(f"{k}={v}" for k, v in sanitized_kwargs.items())
        log_message = f"{log_message} ({extra_context})"

    logger.log(level, log_message, exc_info=exc_info)


def log_account_action(account_id: str, action: str, **kwargs):
    """Log an operation performed on an account."""
    logger = logging.getLogger(LogCategory.ACCOUNT_ACTIONS)
    message = f"Account {account_id} {action}"
    _log_with_context(logger, logging.INFO, message, **kwargs)


def log_info(message: str, **kwargs):
    """Log info messages."""
    logger = logging.getLogger(LogCategory.APP)
    _log_with_context(logger, logging.INFO, message, **kwargs)


def log_error(error: Exception | str, **kwargs):
    """Log errors.

    Args:
        error: Exception object or error message string
        **kwargs: Additional context (e.g., account_id, addon_id)
    """
    logger = logging.getLogger(LogCategory.ERRORS)
    message = f"Error: {str(error)}"
    # exc_info should only be True if we have an actual Exception
    exc_info = isinstance(error, Exception)
    _log_with_context(logger, logging.ERROR, message, exc_info=exc_info, **kwargs)
