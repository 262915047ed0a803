# src/masterlist/utils/logging_config.py

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

from masterlist.config import ConfigManager

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(config: Optional[ConfigManager] = None) -> None:
    """Configures logging based on the configuration system."""

    if config:
        log_level_str = str(config.get("logging.level", "INFO")).upper()
        log_file_path = config.path("logs") if config.get_bool("logging.file") else None
    else:
        print("Warning: configuration not available. Using default logging settings (INFO, console).", file=sys.stderr)
        log_level_str = 'INFO'
        log_file_path = None

    log_level = getattr(logging, log_level_str, None)
    if not isinstance(log_level, int):
        print(f"Warning: invalid log level '{log_level_str}'. Using INFO.", file=sys.stderr)
        log_level = logging.INFO

    log_formatter = logging.Formatter(LOG_FORMAT)

    root_logger = logging.getLogger()

    # Drop existing handlers so repeated setup does not duplicate output
    if root_logger.hasHandlers():
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()

    root_logger.setLevel(log_level)

    # Console handler (always added)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_formatter)
    console_handler.setLevel(log_level)
    root_logger.addHandler(console_handler)

    if log_file_path:
        try:
            log_file_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                filename=log_file_path,
                maxBytes=5 * 1024 * 1024,  # 5 MB
                backupCount=3,
                encoding='utf-8'
            )
            file_handler.setFormatter(log_formatter)
            file_handler.setLevel(log_level)
            root_logger.addHandler(file_handler)

            logging.info(f"File logging configured: level={log_level_str}, file={log_file_path}")
        except OSError as e:
            print(f"Warning: could not configure file handler for {log_file_path}: {e}", file=sys.stderr)
            logging.error(f"Failed to configure file handler: {e}")
    else:
        logging.info(f"Console logging configured: level={log_level_str}. File logging disabled.")
