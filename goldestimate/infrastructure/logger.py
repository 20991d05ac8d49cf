#!/usr/bin/env python
import logging
import logging.handlers
import os
import sqlite3
from datetime import datetime, timedelta
from pathlib import Path

from goldestimate.infrastructure.app_constants import LOG_DIR
from goldestimate.infrastructure.settings import get_app_settings


def setup_logging(app_name="gold_app", log_dir=LOG_DIR, debug_mode=False,
                  enable_info=True, enable_error=True, enable_debug=True):
    """
    Configure the logging system for the Gold Estimation App.

    Args:
        app_name (str): Base name for log files
        log_dir (str): Directory to store log files
        debug_mode (bool): Whether to enable debug logging
        enable_info (bool): Whether to enable INFO level logs
        enable_error (bool): Whether to enable ERROR and CRITICAL level logs
        enable_debug (bool): Whether to enable DEBUG level logs (only when debug_mode is True)

    Returns:
        logging.Logger: Configured root logger
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if debug_mode else logging.INFO)

    # Clear any existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
        handler.close()

    log_format = logging.Formatter(
        '%(asctime)s [%(levelname)s] [%(module)s:%(lineno)d] [%(funcName)s] %(message)s'
    )

    # Main log file (INFO and above)
    if enable_info:
        main_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{app_name}.log",
            maxBytes=5*1024*1024,  # 5MB
            backupCount=10,
            encoding='utf-8'
        )
        main_handler.setLevel(logging.INFO)
        main_handler.setFormatter(log_format)
        root_logger.addHandler(main_handler)

    # Error log file (ERROR and CRITICAL only)
    if enable_error:
        error_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{app_name}_error.log",
            maxBytes=5*1024*1024,  # 5MB
            backupCount=10,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(log_format)
        root_logger.addHandler(error_handler)

    # Debug log file (all levels, only in debug mode)
    if debug_mode and enable_debug:
        debug_handler = logging.handlers.RotatingFileHandler(
            log_path / f"{app_name}_debug.log",
            maxBytes=10*1024*1024,  # 10MB
            backupCount=5,
            encoding='utf-8'
        )
        debug_handler.setLevel(logging.DEBUG)
        debug_handler.setFormatter(log_format)
        root_logger.addHandler(debug_handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if debug_mode else logging.WARNING)
    console_handler.setFormatter(log_format)
    root_logger.addHandler(console_handler)

    root_logger.info(f"Logging initialized at {datetime.now().isoformat()}")
    if debug_mode:
        root_logger.info("Debug logging enabled")

    return root_logger


class DatabaseOperation:
    """Context manager for database operations with proper logging and error handling."""

    def __init__(self, operation_name, logger=None):
        self.operation_name = operation_name
        self.logger = logger or logging.getLogger()
        self.success = False

    def __enter__(self):
        self.logger.debug(f"Starting database operation: {self.operation_name}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.logger.debug(f"Completed database operation: {self.operation_name}")
            self.success = True
            return False

        if issubclass(exc_type, sqlite3.Error):
            self.logger.error(f"Database error during {self.operation_name}: {str(exc_val)}", exc_info=True)
        elif issubclass(exc_type, ValueError):
            self.logger.warning(f"Value error during {self.operation_name}: {str(exc_val)}", exc_info=True)
        else:
            self.logger.error(f"Unexpected error during {self.operation_name}: {str(exc_val)}", exc_info=True)

        # Don't suppress the exception
        return False


def sanitize_for_logging(data, sensitive_keys=None):
    """
    Sanitize potentially sensitive data for logging.

    Args:
        data: Dictionary containing data to sanitize
        sensitive_keys: List of keys to mask

    Returns:
        Dict: Sanitized copy of the data
    """
    if sensitive_keys is None:
        sensitive_keys = ['password', 'key', 'salt', 'token', 'secret', 'mobile', 'email']

    if not isinstance(data, dict):
        return data

    result = {}
    for key, value in data.items():
        if any(s_key in key.lower() for s_key in sensitive_keys):
            result[key] = '********'
        elif isinstance(value, dict):
            result[key] = sanitize_for_logging(value, sensitive_keys)
        else:
            result[key] = value

    return result


def cleanup_old_logs(log_dir=LOG_DIR, max_age_days=1):
    """
    Remove log files older than max_age_days.

    Returns:
        int: Number of files removed
    """
    logger = logging.getLogger(__name__)

    if max_age_days < 1:
        logger.warning(f"Invalid max_age_days value ({max_age_days}), using default of 1 day")
        max_age_days = 1

    log_path = Path(log_dir)
    if not log_path.exists():
        logger.warning(f"Log directory {log_dir} does not exist, nothing to clean up")
        return 0

    cutoff = datetime.now() - timedelta(days=max_age_days)
    removed_count = 0

    for file_path in log_path.glob("*.log*"):
        if not file_path.is_file():
            continue
        file_time = datetime.fromtimestamp(file_path.stat().st_mtime)
        if file_time < cutoff:
            try:
                file_path.unlink()
                removed_count += 1
                logger.debug(f"Removed old log file: {file_path}")
            except OSError as e:
                logger.warning(f"Failed to remove old log file {file_path}: {e}")

    logger.info(f"Log cleanup completed: removed {removed_count} files older than {max_age_days} days")
    return removed_count


def get_log_config():
    """
    Get logging configuration from environment variables or settings.

    Returns:
        dict: Dictionary containing all logging configuration settings
    """
    settings = get_app_settings()

    # Environment variables take precedence
    debug_mode = os.environ.get('GOLD_APP_DEBUG', '').lower() in ('true', '1', 'yes')
    if 'GOLD_APP_DEBUG' not in os.environ:
        debug_mode = settings.value("logging/debug_mode", False, type=bool)

    log_dir = os.environ.get('GOLD_APP_LOG_DIR', LOG_DIR)

    enable_info = settings.value("logging/enable_info", True, type=bool)
    enable_error = settings.value("logging/enable_error", True, type=bool)
    enable_debug = settings.value("logging/enable_debug", True, type=bool)

    auto_cleanup = settings.value("logging/auto_cleanup", False, type=bool)
    cleanup_days = settings.value("logging/cleanup_days", 1, type=int)

    if cleanup_days < 1:
        cleanup_days = 1
    elif cleanup_days > 365:
        cleanup_days = 365

    return {
        'debug_mode': debug_mode,
        'log_dir': log_dir,
        'enable_info': enable_info,
        'enable_error': enable_error,
        'enable_debug': enable_debug,
        'auto_cleanup': auto_cleanup,
        'cleanup_days': cleanup_days
    }


def configure_logging(app_name="gold_app"):
    """
    Configure logging from the current settings and prune old logs when enabled.

    Returns:
        logging.Logger: Configured root logger
    """
    config = get_log_config()

    root_logger = setup_logging(
        app_name=app_name,
        debug_mode=config['debug_mode'],
        log_dir=config['log_dir'],
        enable_info=config['enable_info'],
        enable_error=config['enable_error'],
        enable_debug=config['enable_debug']
    )

    if config['auto_cleanup']:
        cleanup_old_logs(config['log_dir'], config['cleanup_days'])

    root_logger.debug(f"Logging configuration: {config}")
    return root_logger
