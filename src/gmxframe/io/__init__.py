"""
Input/Output module for gmxframe.

This module provides the .gro structure/coordinate reader and the .xtc
trajectory stream.
"""

from .gro import (
    read_gro,
    FrameStructureFromGroFileBuilder,
    FrameCoordinatesFromGroFileBuilder,
)
from .xtc_reader import TrajectoryReader, TrajectorySession, TrajectoryDecoder

__all__ = [
    'read_gro',
    'FrameStructureFromGroFileBuilder',
    'FrameCoordinatesFromGroFileBuilder',
    'TrajectoryReader',
    'TrajectorySession',
    'TrajectoryDecoder',
]
