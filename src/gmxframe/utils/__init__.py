"""
Utilities module for gmxframe.

This module provides configuration management and helper functions
shared across the package.
"""

from .config_manager import ConfigManager
from .helpers import (
    update_dict_recursively,
    validate_array_shape,
    validate_box,
)

__all__ = [
    'ConfigManager',
    'update_dict_recursively',
    'validate_array_shape',
    'validate_box',
]
