# src/masterlist/config/manager.py

import os
import re
import yaml
import logging
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

PROFILE_ENV_VAR = "MASTERLIST_PROFILE"
_PLACEHOLDER = re.compile(r'\{([a-zA-Z0-9_.]+)\}')


class ConfigManager:
    """
    Central configuration manager for MasterList.
    Loads settings from YAML files and provides structured access.

    Layering: configs/default.yaml < configs/local.yaml < active profile.
    Each profile gets its own persisted slot via the {profile.name}
    placeholder in the paths section.
    """

    def __init__(self, profile_name: Optional[str] = None, root_dir: Optional[Path] = None):
        self.config_data: Dict[str, Any] = {}
        self.profile_name = profile_name
        self.root_dir = Path(root_dir).resolve() if root_dir else Path(__file__).parent.parent.parent.parent.resolve()

        # Load base configuration
        self._load_config()

        # Interpolate variables in paths
        self._interpolate_paths()

    def _load_config(self) -> None:
        """Loads the base and local configuration."""
        default_config_path = self.root_dir / "configs" / "default.yaml"

        if default_config_path.exists():
            with open(default_config_path, 'r', encoding='utf-8') as f:
                self.config_data = yaml.safe_load(f) or {}
            logger.info(f"Base configuration loaded: {default_config_path}")
        else:
            logger.warning(f"Base configuration file not found: {default_config_path}")
            self.config_data = {}

        # Local overrides
        local_config_path = self.root_dir / "configs" / "local.yaml"
        if local_config_path.exists():
            try:
                with open(local_config_path, 'r', encoding='utf-8') as f:
                    local_config = yaml.safe_load(f)
                    if local_config:
                        self._merge_configs(self.config_data, local_config)
                        logger.info(f"Local configuration applied from: {local_config_path}")
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Error loading local configuration: {e}")

        # Profile given via CLI or env wins over active_profile from the files
        external_profile = self.profile_name or os.environ.get(PROFILE_ENV_VAR)
        if external_profile:
            self.config_data["active_profile"] = external_profile
            logger.info(f"Using externally specified profile: {external_profile}")
        self._apply_active_profile()

        self.profile_name = self.config_data.get("profile", {}).get("name", "default")

    def _merge_configs(self, base: Dict, override: Dict) -> None:
        """Recursively merges override settings into base."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_configs(base[key], value)
            else:
                base[key] = value

    def _apply_active_profile(self) -> None:
        """Apply the active profile configuration."""
        active_profile = self.config_data.get("active_profile")
        profiles = self.config_data.get("profiles") or {}

        if not active_profile:
            return

        profile_config = profiles.get(active_profile)
        if profile_config is None:
            # Unknown profiles still get their own slot, just no overrides
            logger.warning(f"Active profile '{active_profile}' not found in profiles; using defaults")
            profile_config = {}
        else:
            logger.info(f"Using active profile: {active_profile}")

        self.config_data["profile"] = {
            "name": active_profile,
            "description": profile_config.get("description", f"Profile {active_profile}")
        }

        for key, value in profile_config.items():
            if key == "description":
                continue
            if key in self.config_data and isinstance(self.config_data[key], dict) and isinstance(value, dict):
                self._merge_configs(self.config_data[key], value)
            else:
                self.config_data[key] = value

    def _interpolate_paths(self) -> None:
        """Fills placeholders in paths, e.g. {profile.name} -> 'work'. Unknown ones are left as-is."""
        paths = self.config_data.get("paths") or {}
        for key, value in paths.items():
            if isinstance(value, str):
                paths[key] = _PLACEHOLDER.sub(lambda m: str(self.get(m.group(1), m.group(0))), value)

    def get(self, path: str, default: Any = None) -> Any:
        """
        Accesses a configuration value using dot notation.
        Example: config.get('profile.name')
        """
        value = self.config_data
        try:
            for part in path.split('.'):
                value = value[part]
        except (KeyError, TypeError):
            return default
        return default if value is None else value

    def resolve(self, path_str: str) -> Path:
        """Expands ~ and resolves a relative path against the repository root."""
        path = Path(path_str).expanduser()
        return path if path.is_absolute() else self.root_dir / path

    def path(self, config_path: str) -> Path:
        """
        Returns a Path from a path setting, relative paths resolved against
        the repository root. Ensures the parent directory exists.
        """
        path_str = self.get(f"paths.{config_path}")
        if not path_str:
            raise ValueError(f"Path '{config_path}' not found in configuration")

        path = self.resolve(path_str)

        # Simple heuristic: names with a suffix are files
        if path.suffix:
            path.parent.mkdir(parents=True, exist_ok=True)
        else:
            path.mkdir(parents=True, exist_ok=True)

        return path

    @property
    def profile(self) -> str:
        """Name of the current profile"""
        return self.profile_name

    def get_str(self, path: str, default: str = "") -> str:
        return str(self.get(path, default))

    def get_float(self, path: str, default: float = 0.0) -> float:
        return float(self.get(path, default))

    def get_bool(self, path: str, default: bool = False) -> bool:
        value = self.get(path, default)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
