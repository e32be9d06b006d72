"""
Core frame structure (topology) data structure.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional
import numpy as np

from .exceptions import StructureInconsistencyError
from .registry import ResidueType
from ..utils.helpers import frozen_array, validate_box


@dataclass(frozen=True)
class FrameStructure:
    """Validated topology of one frame.

    Atoms live in a flat index space ``[0, atoms_num)``; residues are dense
    indices ``[0, residues_num)``, each owning a disjoint set of atom indexes.
    Atoms not claimed by any residue are free atoms. Instances are read-only:
    arrays are not writeable and mappings are proxies.
    """
    box: np.ndarray
    atom_types: np.ndarray
    atom_abbreviations: np.ndarray
    residue_indexes_by_type: Mapping[ResidueType, np.ndarray]
    residue_atoms: Mapping[int, np.ndarray]
    description: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'box', frozen_array(validate_box(self.box).copy()))

        types = np.array(self.atom_types, dtype=object)
        abbrs = np.array(self.atom_abbreviations, dtype=object)
        if types.ndim != 1 or abbrs.ndim != 1:
            raise StructureInconsistencyError("Atom types and abbreviations must be 1D sequences.")
        if len(types) != len(abbrs):
            raise StructureInconsistencyError(
                f"Atom count mismatch: {len(types)} types vs {len(abbrs)} abbreviations.")
        if len(types) == 0:
            raise StructureInconsistencyError("Frame structure has no atoms.")
        unset = [i for i in range(len(types)) if types[i] is None or abbrs[i] is None]
        if unset:
            raise StructureInconsistencyError(
                f"{len(unset)} atom slot(s) have no type or abbreviation, first at index {unset[0]}.")
        object.__setattr__(self, 'atom_types', frozen_array(types))
        object.__setattr__(self, 'atom_abbreviations', frozen_array(abbrs))

        n_atoms = len(types)
        residue_atoms = {}
        claimed = np.zeros(n_atoms, dtype=np.int32)
        for res_idx, atom_idx in self.residue_atoms.items():
            atom_idx = np.array(atom_idx, dtype=np.int64).ravel()
            if atom_idx.size == 0:
                raise StructureInconsistencyError(f"Residue {res_idx} has no atoms.")
            if atom_idx.min() < 0 or atom_idx.max() >= n_atoms:
                raise StructureInconsistencyError(
                    f"Residue {res_idx} refers to atom indexes outside [0, {n_atoms}).")
            np.add.at(claimed, atom_idx, 1)
            residue_atoms[int(res_idx)] = frozen_array(atom_idx)
        if np.any(claimed > 1):
            shared = np.where(claimed > 1)[0]
            raise StructureInconsistencyError(
                f"{shared.size} atom(s) claimed by more than one residue, first at index {shared[0]}.")

        n_residues = len(residue_atoms)
        if set(residue_atoms) != set(range(n_residues)):
            raise StructureInconsistencyError(f"Residue indexes are not dense in [0, {n_residues}).")

        by_type = {}
        typed = np.zeros(n_residues, dtype=np.int32)
        for rtype, res_idx in self.residue_indexes_by_type.items():
            res_idx = np.array(res_idx, dtype=np.int64).ravel()
            if res_idx.size and (res_idx.min() < 0 or res_idx.max() >= n_residues):
                raise StructureInconsistencyError(
                    f"Residue type '{rtype.name}' refers to residues outside [0, {n_residues}).")
            np.add.at(typed, res_idx, 1)
            by_type[rtype] = frozen_array(res_idx)
        if np.any(typed != 1):
            raise StructureInconsistencyError("Every residue must be listed under exactly one residue type.")

        object.__setattr__(self, 'residue_atoms', MappingProxyType(residue_atoms))
        object.__setattr__(self, 'residue_indexes_by_type', MappingProxyType(by_type))

    @property
    def atoms_num(self) -> int:
        return len(self.atom_types)

    @property
    def residues_num(self) -> int:
        return sum(len(v) for v in self.residue_indexes_by_type.values())

    def free_atom_indexes(self) -> np.ndarray:
        in_residue = np.zeros(self.atoms_num, dtype=bool)
        for atom_idx in self.residue_atoms.values():
            in_residue[atom_idx] = True
        return np.where(~in_residue)[0]

    def residue_type_of(self, residue_index: int) -> ResidueType:
        for rtype, res_idx in self.residue_indexes_by_type.items():
            if residue_index in res_idx:
                return rtype
        raise IndexError(f"Residue index {residue_index} out of range [0, {self.residues_num}).")

    def copy(self) -> 'FrameStructure':
        return FrameStructure(
            box=self.box.copy(),
            atom_types=self.atom_types.copy(),
            atom_abbreviations=self.atom_abbreviations.copy(),
            residue_indexes_by_type={k: v.copy() for k, v in self.residue_indexes_by_type.items()},
            residue_atoms={k: v.copy() for k, v in self.residue_atoms.items()},
            description=self.description,
        )
