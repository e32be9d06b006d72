"""
Utility functions for gmxframe.

This module provides helper functions shared by the builders and the
configuration layer.
"""
import numpy as np
import logging
from typing import Optional, Sequence, Type

from ..core.exceptions import InvalidBoxError

logger = logging.getLogger(__name__)

def update_dict_recursively(base_dict: dict, update_with: dict) -> dict:
    """
    Recursively update a dictionary with another dictionary.

    Args:
        base_dict: Base dictionary to update
        update_with: Dictionary containing updates

    Returns:
        Updated dictionary
    """
    for k, v_update in update_with.items():
        if isinstance(v_update, dict) and k in base_dict and isinstance(base_dict[k], dict):
            update_dict_recursively(base_dict[k], v_update)
        else:
            base_dict[k] = v_update
    return base_dict

def validate_array_shape(arr: np.ndarray, expected_shape: tuple, name: str,
                         error_cls: Type[Exception] = ValueError) -> None:
    """
    Validate that an array has the expected shape.

    Args:
        arr: Array to validate
        expected_shape: Expected shape tuple
        name: Name of the array for error messages
        error_cls: Exception type to raise

    Raises:
        error_cls: If array shape doesn't match expected shape
    """
    if arr.shape != expected_shape:
        raise error_cls(f"{name} has shape {arr.shape}, expected {expected_shape}")

def validate_box(box: Optional[Sequence[float]]) -> np.ndarray:
    """
    Check simulation box dimensions and return them as a float32 array.

    Raises:
        InvalidBoxError: If the box is unset, not 3 values, or not strictly positive
    """
    if box is None:
        raise InvalidBoxError("Box dimensions are not set.")
    box_arr = np.asarray(box, dtype=np.float32)
    validate_array_shape(box_arr, (3,), "Box", InvalidBoxError)
    if not np.all(np.isfinite(box_arr)) or np.any(box_arr <= 0):
        raise InvalidBoxError(f"Box dimensions must be positive, got {box_arr.tolist()}")
    return box_arr

def frozen_array(arr: np.ndarray) -> np.ndarray:
    """Return ``arr`` with its writeable flag cleared."""
    arr.flags.writeable = False
    return arr
