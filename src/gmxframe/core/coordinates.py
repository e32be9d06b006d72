"""
Per-atom coordinates of one frame, and the builders that produce them.
"""
from dataclasses import dataclass
from typing import Optional, Sequence
import logging

import numpy as np

from .exceptions import CoordinatesInconsistencyError, EmptySpecificationError
from .structure import FrameStructure
from ..utils.helpers import frozen_array, validate_array_shape, validate_box

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameCoordinates:
    positions: np.ndarray  # (atoms, xyz), nm
    velocities: Optional[np.ndarray] = None  # (atoms, xyz), nm/ps
    box: Optional[np.ndarray] = None
    step: int = 0
    time: float = 0.0  # ps
    precision: Optional[float] = None
    residues_num: Optional[int] = None  # Only set by sources that know residue boundaries
    description: Optional[str] = None

    def __post_init__(self):
        positions = np.array(self.positions, dtype=np.float32)
        if positions.ndim != 2 or positions.shape[1] != 3:
            raise CoordinatesInconsistencyError(
                f"Positions must be 2D (atoms, xyz) and last dimension must be 3, got {positions.shape}.")
        object.__setattr__(self, 'positions', frozen_array(positions))

        if self.velocities is not None:
            velocities = np.array(self.velocities, dtype=np.float32)
            validate_array_shape(velocities, positions.shape, "Velocities", CoordinatesInconsistencyError)
            object.__setattr__(self, 'velocities', frozen_array(velocities))
        if self.box is not None:
            object.__setattr__(self, 'box', frozen_array(validate_box(self.box).copy()))
        if self.residues_num is not None and self.residues_num < 0:
            raise CoordinatesInconsistencyError(f"Residue count must not be negative, got {self.residues_num}.")

    @property
    def atoms_num(self) -> int:
        return self.positions.shape[0]

    def copy(self) -> 'FrameCoordinates':
        return FrameCoordinates(
            positions=self.positions.copy(),
            velocities=None if self.velocities is None else self.velocities.copy(),
            box=None if self.box is None else self.box.copy(),
            step=self.step,
            time=self.time,
            precision=self.precision,
            residues_num=self.residues_num,
            description=self.description,
        )


class FrameCoordinatesFromArraysBuilder:
    """Wrap raw position/velocity arrays, validating them only."""

    def __init__(self):
        self._positions = None
        self._velocities = None
        self._box = None
        self._step = 0
        self._time = 0.0
        self._precision = None
        self._residues_num = None
        self._description = None

    def with_positions(self, positions) -> 'FrameCoordinatesFromArraysBuilder':
        self._positions = positions
        return self

    def with_velocities(self, velocities) -> 'FrameCoordinatesFromArraysBuilder':
        self._velocities = velocities
        return self

    def with_box(self, x: float, y: float, z: float) -> 'FrameCoordinatesFromArraysBuilder':
        self._box = (x, y, z)
        return self

    def with_step(self, step: int, time: float = 0.0) -> 'FrameCoordinatesFromArraysBuilder':
        self._step = int(step)
        self._time = float(time)
        return self

    def with_precision(self, precision: float) -> 'FrameCoordinatesFromArraysBuilder':
        self._precision = precision
        return self

    def with_residues_num(self, residues_num: int) -> 'FrameCoordinatesFromArraysBuilder':
        self._residues_num = residues_num
        return self

    def with_description(self, description: str) -> 'FrameCoordinatesFromArraysBuilder':
        self._description = description
        return self

    def build(self) -> FrameCoordinates:
        if self._positions is None:
            raise EmptySpecificationError("Positions are not set.")
        return FrameCoordinates(positions=self._positions, velocities=self._velocities, box=self._box,
                                step=self._step, time=self._time, precision=self._precision,
                                residues_num=self._residues_num, description=self._description)


class FrameCoordinatesFromScratchBuilder:
    """Place every atom of a structure on a simple cubic lattice inside the box.

    Atoms fill lattice cells in index order, so atoms of one residue end up
    next to each other. Velocities are zero when requested.
    """

    def __init__(self, structure: FrameStructure):
        self.structure = structure
        self._box: Optional[Sequence[float]] = None
        self._zero_velocities = False

    def with_box(self, x: float, y: float, z: float) -> 'FrameCoordinatesFromScratchBuilder':
        self._box = (x, y, z)
        return self

    def with_zero_velocities(self) -> 'FrameCoordinatesFromScratchBuilder':
        self._zero_velocities = True
        return self

    def build(self) -> FrameCoordinates:
        box = validate_box(self._box) if self._box is not None else self.structure.box
        n_atoms = self.structure.atoms_num
        per_side = max(1, int(round(n_atoms ** (1.0 / 3.0))))
        while per_side ** 3 < n_atoms:
            per_side += 1

        cells = np.indices((per_side,) * 3).reshape(3, -1).T[:n_atoms]
        positions = (cells + 0.5) * (box / per_side)
        velocities = np.zeros_like(positions) if self._zero_velocities else None
        logger.debug(f"Placed {n_atoms} atoms on a {per_side}^3 lattice.")
        return FrameCoordinates(positions=positions, velocities=velocities, box=box,
                                description=self.structure.description)
