# src/masterlist/config/__init__.py
import os
import logging
import argparse
from typing import Optional

from .manager import ConfigManager, PROFILE_ENV_VAR

logger = logging.getLogger(__name__)

# Process-wide configured instance
_config_instance: Optional[ConfigManager] = None


def get_active_profile() -> Optional[str]:
    """
    Determines the active profile from CLI arguments or environment variables.
    """
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument('--profile', type=str, help='Profile name')
    args, _ = parser.parse_known_args()

    # Priority: CLI > ENV > None (file default)
    return args.profile or os.environ.get(PROFILE_ENV_VAR)


def get_config(profile: Optional[str] = None) -> ConfigManager:
    """
    Returns the ConfigManager instance, creating it if necessary.
    Passing a profile forces a reload for that profile.
    """
    global _config_instance

    if _config_instance is None or (profile and profile != _config_instance.profile):
        try:
            _config_instance = ConfigManager(profile_name=profile or get_active_profile())
            logger.info(f"Configuration loaded for profile: {_config_instance.profile}")
        except Exception as e:
            logger.critical(f"Error initializing configuration: {e}", exc_info=True)
            raise

    return _config_instance


def reset_config() -> None:
    """Drops the cached instance so the next get_config() reloads the files."""
    global _config_instance
    _config_instance = None


__all__ = ["ConfigManager", "get_config", "get_active_profile", "reset_config"]
