"""
gmxframe: molecular frame assembly and trajectory streaming
"""

__version__ = "0.1.0"

# Core components
from .core.registry import AtomType, ResidueType, TypeRegistry, default_registry
from .core.structure import FrameStructure
from .core.structure_builders import FrameStructureFromScratchBuilder, FrameStructureFromArraysBuilder
from .core.coordinates import (
    FrameCoordinates,
    FrameCoordinatesFromArraysBuilder,
    FrameCoordinatesFromScratchBuilder,
)
from .core.frame import Frame, create_frame

# IO components
from .io.gro import read_gro, FrameStructureFromGroFileBuilder, FrameCoordinatesFromGroFileBuilder
from .io.xtc_reader import TrajectoryReader

# Utility components
from .utils.config_manager import ConfigManager

__all__ = [
    # Core
    'AtomType',
    'ResidueType',
    'TypeRegistry',
    'default_registry',
    'FrameStructure',
    'FrameStructureFromScratchBuilder',
    'FrameStructureFromArraysBuilder',
    'FrameCoordinates',
    'FrameCoordinatesFromArraysBuilder',
    'FrameCoordinatesFromScratchBuilder',
    'Frame',
    'create_frame',
    # IO
    'read_gro',
    'FrameStructureFromGroFileBuilder',
    'FrameCoordinatesFromGroFileBuilder',
    'TrajectoryReader',
    # Utils
    'ConfigManager',
]
