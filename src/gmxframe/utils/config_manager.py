"""
Configuration management module for gmxframe.

This module provides functionality for loading, validating, and managing
the YAML description of a system: its declarative structure, an optional
type registry file and an optional trajectory.
"""
import yaml
from pathlib import Path
import logging
from typing import Dict, Any, Optional, Union

from .helpers import update_dict_recursively

logger = logging.getLogger(__name__)

class ConfigManager:
    """Class for managing gmxframe configuration settings."""

    def __init__(self, config_file: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_file: Path to the configuration file (optional)
        """
        self.config: Dict[str, Any] = {}
        if config_file is not None:
            self.load_config(config_file)

    def load_config(self, config_file: Union[str, Path]) -> None:
        """
        Load configuration from a YAML file.

        Args:
            config_file: Path to the configuration file
        """
        config_path = Path(config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

        logger.info(f"Loading configuration from {config_path}")
        with open(config_path, 'r') as f:
            self.config = yaml.safe_load(f) or {}

        self._validate_config()

    def _validate_config(self) -> None:
        """Validate the loaded configuration."""
        if 'structure' not in self.config:
            raise ValueError("Missing required configuration key: structure")

        structure = self.config['structure']
        if not isinstance(structure, dict):
            raise ValueError("Configuration key 'structure' must be a mapping")
        if 'box' not in structure:
            raise ValueError("Missing required structure setting: box")
        box = structure['box']
        if not isinstance(box, (list, tuple)) or len(box) != 3:
            raise ValueError(f"Structure setting 'box' must have 3 values, got {box!r}")

        for key in ['free_atoms', 'residues']:
            counts = structure.get(key) or {}
            if not isinstance(counts, dict):
                raise ValueError(f"Structure setting '{key}' must map abbreviations to counts")
            for abbr, n in counts.items():
                if not isinstance(n, int):
                    raise ValueError(f"Count for '{abbr}' in '{key}' must be an integer, got {n!r}")

    def get_structure_config(self) -> Dict[str, Any]:
        """
        Get structure configuration settings.

        Returns:
            Dictionary of structure settings
        """
        return self.config.get('structure', {})

    def get_registry_config(self) -> Dict[str, Any]:
        return self.config.get('registry') or {}

    def get_trajectory_config(self) -> Dict[str, Any]:
        return self.config.get('trajectory') or {}

    def update_config(self, updates: Dict[str, Any]) -> None:
        """
        Update configuration settings.

        Args:
            updates: Dictionary of configuration updates
        """
        update_dict_recursively(self.config, updates)
        self._validate_config()

    def save_config(self, output_file: Union[str, Path]) -> None:
        """
        Save current configuration to a file.

        Args:
            output_file: Path to save the configuration to
        """
        output_path = Path(output_file)
        logger.info(f"Saving configuration to {output_path}")

        with open(output_path, 'w') as f:
            yaml.dump(self.config, f, default_flow_style=False)

    def to_dict(self) -> Dict[str, Any]:
        return self.config.copy()

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'ConfigManager':
        """
        Create a ConfigManager instance from a dictionary.

        Args:
            config_dict: Dictionary of configuration settings

        Returns:
            ConfigManager instance
        """
        instance = cls()
        instance.config = config_dict
        instance._validate_config()
        return instance
