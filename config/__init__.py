"""
Settings for order extraction.

``settings.yaml`` beside this module holds the engine choice, hosted-model
pricing, OCR and local-model parameters, header label aliases and the
default rules object. ``ORDER_EXTRACTION_CONFIG`` or an explicit path
points at a different file.
"""

import os
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

DEFAULT_SETTINGS = Path(__file__).parent / "settings.yaml"
ENV_VAR = "ORDER_EXTRACTION_CONFIG"


class ConfigurationManager:
    """
    Process-wide settings store.

    The first construction loads the YAML file; later constructions return
    the same object regardless of the path argument until ``reset()``.

    Example:
        >>> ConfigurationManager().get("cloud.pricing.input_per_million")
        0.075
    """

    _instance: Optional['ConfigurationManager'] = None
    _config: Dict[str, Any] = {}

    def __new__(cls, config_path: Optional[str] = None) -> 'ConfigurationManager':
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, config_path: Optional[str] = None) -> None:
        """
        Args:
            config_path: Settings file; falls back to ``$ORDER_EXTRACTION_CONFIG``
                and then to the bundled ``settings.yaml``.
        """
        if self._initialized:
            return

        config_path = config_path or os.environ.get(ENV_VAR)
        self.config_path = Path(config_path) if config_path else DEFAULT_SETTINGS

        self._load_config()
        self._initialized = True

    def _load_config(self) -> None:
        """
        Read the YAML settings.

        Raises:
            FileNotFoundError: If the settings file is missing.
            yaml.YAMLError: If it is not valid YAML.
        """
        if not self.config_path.exists():
            raise FileNotFoundError(f"Settings file not found: {self.config_path}")

        with open(self.config_path, 'r', encoding='utf-8') as f:
            self._config = yaml.safe_load(f) or {}

        self._resolve_paths()

    def _resolve_paths(self) -> None:
        """Anchor relative ``paths.*`` entries at the repository root."""
        repo_root = Path(__file__).parent.parent

        for key, value in (self._config.get('paths') or {}).items():
            if value and not Path(value).is_absolute():
                self._config['paths'][key] = str(repo_root / value)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Look up a dotted key such as ``"local.model.max_new_tokens"``.

        Returns ``default`` when any segment is missing.
        """
        node = self._config
        try:
            for part in key.split('.'):
                node = node[part]
        except (KeyError, TypeError):
            return default
        return node

    @classmethod
    def reset(cls) -> None:
        """Forget the loaded settings; the next construction reloads."""
        cls._instance = None


def get_config(key: str, default: Any = None) -> Any:
    """Shorthand for ``ConfigurationManager().get(key, default)``."""
    return ConfigurationManager().get(key, default)


__all__ = ['ConfigurationManager', 'get_config']
