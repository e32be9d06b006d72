"""
Builders producing FrameStructure objects.

Every builder exposes the same capability, ``build() -> FrameStructure``;
they differ only in where the topology comes from.
"""
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Mapping, Optional, Sequence, Tuple
import logging
import operator
import threading

import numpy as np

from .exceptions import EmptySpecificationError, InvalidCountError, raise_for_unrecognized
from .registry import AtomType, ResidueType, TypeRegistry, default_registry
from .structure import FrameStructure
from ..utils.helpers import validate_box

logger = logging.getLogger(__name__)


class FrameStructureBuilder(ABC):

    @abstractmethod
    def build(self) -> FrameStructure:
        """Assemble and validate a FrameStructure"""
        pass


class IndexArena:
    """Hands out disjoint ``[start, start + length)`` blocks of a fixed index space.

    Each reservation is one locked counter advance, so concurrent workers
    never receive overlapping blocks.
    """

    def __init__(self, capacity: int):
        self.capacity = capacity
        self._offset = 0
        self._lock = threading.Lock()

    def reserve(self, length: int) -> range:
        with self._lock:
            start = self._offset
            if start + length > self.capacity:
                raise RuntimeError(f"Cannot reserve {length} indexes at {start}: capacity is {self.capacity}.")
            self._offset = start + length
        return range(start, start + length)

    @property
    def used(self) -> int:
        return self._offset


def _check_count(abbreviation: str, count: int) -> int:
    try:
        count = operator.index(count)
    except TypeError as e:
        raise InvalidCountError(f"Count for '{abbreviation}' must be an integer, got {count!r}.") from e
    if count < 0:
        raise InvalidCountError(f"Count for '{abbreviation}' must not be negative, got {count}.")
    return count


class FrameStructureFromScratchBuilder(FrameStructureBuilder):
    """Build a structure from counts of free atoms and residues.

    Counts are additive: requesting the same abbreviation twice sums the
    counts. Free atoms are placed before residue atoms; the order between
    different abbreviations is not fixed, but every abbreviation group and
    every residue occupies a contiguous block of atom indexes.
    """

    def __init__(self, registry: Optional[TypeRegistry] = None, max_workers: Optional[int] = None):
        self.registry = registry or default_registry()
        self.max_workers = max_workers
        self._free_atoms: Dict[str, int] = {}
        self._residues: Dict[str, int] = {}
        self._box: Optional[Tuple[float, float, float]] = None
        self._description: Optional[str] = None

    def with_free_atoms(self, abbreviation: str, count: int) -> 'FrameStructureFromScratchBuilder':
        count = _check_count(abbreviation, count)
        if count or abbreviation in self._free_atoms:
            self._free_atoms[abbreviation] = self._free_atoms.get(abbreviation, 0) + count
        return self

    def with_residues(self, abbreviation: str, count: int) -> 'FrameStructureFromScratchBuilder':
        count = _check_count(abbreviation, count)
        if count or abbreviation in self._residues:
            self._residues[abbreviation] = self._residues.get(abbreviation, 0) + count
        return self

    def with_box(self, x: float, y: float, z: float) -> 'FrameStructureFromScratchBuilder':
        self._box = (x, y, z)
        return self

    def with_description(self, description: str) -> 'FrameStructureFromScratchBuilder':
        self._description = description
        return self

    def build(self) -> FrameStructure:
        if not self._free_atoms and not self._residues:
            raise EmptySpecificationError("Both maps (atoms and residues) are empty.")
        box = validate_box(self._box)
        raise_for_unrecognized(self.registry.unrecognized_atoms(list(self._free_atoms)),
                               self.registry.unrecognized_residues(list(self._residues)))

        atom_types = self._resolve_free_atoms()
        residue_templates = self._resolve_residues()

        n_free = sum(self._free_atoms.values())
        n_residues = sum(self._residues.values())
        n_atoms = n_free + sum(count * len(residue_templates[abbr][1])
                               for abbr, count in self._residues.items())

        types_seq = np.empty(n_atoms, dtype=object)
        abbrs_seq = np.empty(n_atoms, dtype=object)
        atom_arena = IndexArena(n_atoms)
        residue_arena = IndexArena(n_residues)
        logger.debug(f"Allocating {n_atoms} atoms ({n_free} free) and {n_residues} residues.")

        residue_indexes_by_type: Dict[ResidueType, np.ndarray] = {}
        residue_atoms: Dict[int, np.ndarray] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            free_jobs = [pool.submit(self._place_free_atoms, abbr, count, atom_types[abbr],
                                     atom_arena, types_seq, abbrs_seq)
                         for abbr, count in self._free_atoms.items()]
            for job in free_jobs:
                job.result()

            residue_jobs = [pool.submit(self._place_residues, count, residue_templates[abbr],
                                        atom_arena, residue_arena, types_seq, abbrs_seq)
                            for abbr, count in self._residues.items()]
            for job in residue_jobs:
                rtype, res_indexes, res_atoms = job.result()
                if rtype in residue_indexes_by_type:
                    res_indexes = np.concatenate([residue_indexes_by_type[rtype], res_indexes])
                residue_indexes_by_type[rtype] = res_indexes
                residue_atoms.update(res_atoms)

        if atom_arena.used != n_atoms or residue_arena.used != n_residues:
            raise RuntimeError(f"Allocation incomplete: {atom_arena.used}/{n_atoms} atoms, "
                               f"{residue_arena.used}/{n_residues} residues.")

        frame_structure = FrameStructure(box=box, atom_types=types_seq, atom_abbreviations=abbrs_seq,
                                         residue_indexes_by_type=residue_indexes_by_type,
                                         residue_atoms=residue_atoms, description=self._description)
        logger.info(f"Frame structure successfully created from scratch: "
                    f"{frame_structure.atoms_num} atoms, {frame_structure.residues_num} residues.")
        return frame_structure

    def _resolve_free_atoms(self) -> Dict[str, AtomType]:
        return {abbr: self.registry.resolve_atom_type(abbr) for abbr in self._free_atoms}

    def _resolve_residues(self) -> Dict[str, Tuple[ResidueType, Sequence[Tuple[str, AtomType]]]]:
        templates = {}
        for abbr in self._residues:
            rtype = self.registry.resolve_residue_type(abbr)
            template = [(a, self.registry.resolve_atom_type(a)) for a in self.registry.residue_template(rtype)]
            templates[abbr] = (rtype, template)
        return templates

    @staticmethod
    def _place_free_atoms(abbreviation: str, count: int, atom_type: AtomType,
                          atom_arena: IndexArena, types_seq: np.ndarray, abbrs_seq: np.ndarray) -> None:
        block = atom_arena.reserve(count)
        types_seq[block.start:block.stop] = atom_type
        abbrs_seq[block.start:block.stop] = abbreviation

    @staticmethod
    def _place_residues(count: int, residue_template: Tuple[ResidueType, Sequence[Tuple[str, AtomType]]],
                        atom_arena: IndexArena, residue_arena: IndexArena,
                        types_seq: np.ndarray, abbrs_seq: np.ndarray):
        rtype, template = residue_template
        length = len(template)
        residues = residue_arena.reserve(count)
        block = atom_arena.reserve(count * length)

        template_types = np.empty(length, dtype=object)
        template_abbrs = np.empty(length, dtype=object)
        for j, (abbr, atom_type) in enumerate(template):
            template_abbrs[j] = abbr
            template_types[j] = atom_type
        types_seq[block.start:block.stop] = np.tile(template_types, count)
        abbrs_seq[block.start:block.stop] = np.tile(template_abbrs, count)

        atom_indexes = np.arange(block.start, block.stop, dtype=np.int64).reshape(count, length)
        res_atoms = {res_idx: atom_indexes[i] for i, res_idx in enumerate(residues)}
        return rtype, np.arange(residues.start, residues.stop, dtype=np.int64), res_atoms


class FrameStructureFromArraysBuilder(FrameStructureBuilder):
    """Wrap pre-populated arrays and mappings, validating them only."""

    def __init__(self):
        self._box = None
        self._atom_types = None
        self._atom_abbreviations = None
        self._residue_indexes_by_type: Mapping[ResidueType, Sequence[int]] = {}
        self._residue_atoms: Mapping[int, Sequence[int]] = {}
        self._description = None

    def with_box(self, x: float, y: float, z: float) -> 'FrameStructureFromArraysBuilder':
        self._box = (x, y, z)
        return self

    def with_atoms(self, atom_types: Sequence[AtomType],
                   atom_abbreviations: Sequence[str]) -> 'FrameStructureFromArraysBuilder':
        self._atom_types = atom_types
        self._atom_abbreviations = atom_abbreviations
        return self

    def with_residues(self, residue_indexes_by_type: Mapping[ResidueType, Sequence[int]],
                      residue_atoms: Mapping[int, Sequence[int]]) -> 'FrameStructureFromArraysBuilder':
        self._residue_indexes_by_type = residue_indexes_by_type
        self._residue_atoms = residue_atoms
        return self

    def with_description(self, description: str) -> 'FrameStructureFromArraysBuilder':
        self._description = description
        return self

    def build(self) -> FrameStructure:
        if self._atom_types is None or self._atom_abbreviations is None:
            raise EmptySpecificationError("Atom types and abbreviations are not set.")
        frame_structure = FrameStructure(box=validate_box(self._box),
                                         atom_types=self._atom_types,
                                         atom_abbreviations=self._atom_abbreviations,
                                         residue_indexes_by_type=self._residue_indexes_by_type,
                                         residue_atoms=self._residue_atoms,
                                         description=self._description)
        logger.info(f"Frame structure successfully created from arrays: "
                    f"{frame_structure.atoms_num} atoms, {frame_structure.residues_num} residues.")
        return frame_structure
