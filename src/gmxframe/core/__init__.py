"""
Core module for gmxframe.

This module provides the frame data structures, the type registry and the
builders that assemble and validate frames.
"""

from .registry import AtomType, ResidueType, TypeRegistry, default_registry
from .structure import FrameStructure
from .structure_builders import (
    FrameStructureBuilder,
    FrameStructureFromScratchBuilder,
    FrameStructureFromArraysBuilder,
)
from .coordinates import (
    FrameCoordinates,
    FrameCoordinatesFromArraysBuilder,
    FrameCoordinatesFromScratchBuilder,
)
from .frame import Frame, create_frame

__all__ = [
    'AtomType',
    'ResidueType',
    'TypeRegistry',
    'default_registry',
    'FrameStructure',
    'FrameStructureBuilder',
    'FrameStructureFromScratchBuilder',
    'FrameStructureFromArraysBuilder',
    'FrameCoordinates',
    'FrameCoordinatesFromArraysBuilder',
    'FrameCoordinatesFromScratchBuilder',
    'Frame',
    'create_frame',
]
