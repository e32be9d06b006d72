"""
Frame aggregate: one structure paired with one set of coordinates.
"""
from dataclasses import dataclass
from typing import List, Optional, Union
import logging

import numpy as np

from .coordinates import FrameCoordinates
from .exceptions import AtomCountMismatchError, ResidueCountMismatchError
from .registry import AtomType, ResidueType
from .structure import FrameStructure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AtomView:
    index: int
    abbreviation: str
    atom_type: AtomType
    position: np.ndarray
    velocity: Optional[np.ndarray]
    residue_index: Optional[int]


@dataclass(frozen=True)
class ResidueView:
    index: int
    residue_type: ResidueType
    atom_indexes: np.ndarray
    positions: np.ndarray


@dataclass(frozen=True)
class Frame:
    structure: FrameStructure
    coordinates: FrameCoordinates
    sequence_number: int

    def __post_init__(self):
        if self.coordinates.atoms_num != self.structure.atoms_num:
            raise AtomCountMismatchError(
                f"Frame {self.sequence_number}: coordinates have {self.coordinates.atoms_num} atoms, "
                f"structure has {self.structure.atoms_num}.")
        residues_num = self.coordinates.residues_num
        if residues_num is not None and residues_num != self.structure.residues_num:
            raise ResidueCountMismatchError(
                f"Frame {self.sequence_number}: coordinates have {residues_num} residues, "
                f"structure has {self.structure.residues_num}.")
        # Index of the owning residue for every atom, -1 for free atoms.
        atom_residue = np.full(self.structure.atoms_num, -1, dtype=np.int64)
        for res_idx, atom_idx in self.structure.residue_atoms.items():
            atom_residue[atom_idx] = res_idx
        atom_residue.flags.writeable = False
        object.__setattr__(self, '_atom_residue', atom_residue)

    @property
    def atoms_num(self) -> int:
        return self.structure.atoms_num

    @property
    def residues_num(self) -> int:
        return self.structure.residues_num

    @property
    def box(self) -> np.ndarray:
        return self.coordinates.box if self.coordinates.box is not None else self.structure.box

    @property
    def positions(self) -> np.ndarray:
        return self.coordinates.positions

    def atom(self, index: int) -> AtomView:
        if not 0 <= index < self.atoms_num:
            raise IndexError(f"Atom index {index} out of range [0, {self.atoms_num}).")
        velocities = self.coordinates.velocities
        res_idx = int(self._atom_residue[index])
        return AtomView(index=index,
                        abbreviation=self.structure.atom_abbreviations[index],
                        atom_type=self.structure.atom_types[index],
                        position=self.coordinates.positions[index],
                        velocity=None if velocities is None else velocities[index],
                        residue_index=None if res_idx < 0 else res_idx)

    def residue(self, index: int) -> ResidueView:
        if index not in self.structure.residue_atoms:
            raise IndexError(f"Residue index {index} out of range [0, {self.residues_num}).")
        atom_idx = self.structure.residue_atoms[index]
        return ResidueView(index=index,
                           residue_type=self.structure.residue_type_of(index),
                           atom_indexes=atom_idx,
                           positions=self.coordinates.positions[atom_idx])

    def residues_of_type(self, residue_type: Union[str, ResidueType]) -> List[ResidueView]:
        """Residues whose type matches a descriptor, or a descriptor name."""
        views = []
        for rtype, res_idx in self.structure.residue_indexes_by_type.items():
            if rtype == residue_type or rtype.name == residue_type:
                views.extend(self.residue(int(i)) for i in res_idx)
        return views


def create_frame(structure: FrameStructure, coordinates: FrameCoordinates, sequence_number: int) -> Frame:
    """
    Pair a structure with coordinates after checking that they agree.

    The frame receives its own copies of both, so frames built from the same
    structure never share arrays.

    Args:
        structure: Validated frame structure
        coordinates: Coordinates for the same atom index space
        sequence_number: Frame number, fixed for the frame's lifetime

    Returns:
        Frame instance

    Raises:
        AtomCountMismatchError: If the atom counts differ
        ResidueCountMismatchError: If the coordinates carry a residue count that differs
    """
    frame = Frame(structure.copy(), coordinates.copy(), int(sequence_number))
    logger.debug(f"Frame No {frame.sequence_number} successfully created")
    return frame
