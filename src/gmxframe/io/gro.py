"""
GROMACS .gro structure/coordinate files.

Provides a small fixed-column reader plus the builders that turn a parsed
file into a FrameStructure or FrameCoordinates.
"""
from dataclasses import dataclass
from itertools import groupby
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union
import logging
import re

import numpy as np

from ..core.coordinates import FrameCoordinates
from ..core.exceptions import StructureInconsistencyError, raise_for_unrecognized
from ..core.registry import ResidueType, TypeRegistry, default_registry
from ..core.structure import FrameStructure
from ..core.structure_builders import FrameStructureBuilder

logger = logging.getLogger(__name__)

_TITLE_TIME = re.compile(r"\bt=\s*(-?[\d.eE+-]+)")
_TITLE_STEP = re.compile(r"\bstep=\s*(-?\d+)")


@dataclass(frozen=True)
class GroRecord:
    residue_number: int
    residue_name: str
    atom_name: str
    atom_number: int
    position: Tuple[float, float, float]
    velocity: Optional[Tuple[float, float, float]] = None


@dataclass(frozen=True)
class GroFile:
    title: str
    records: Tuple[GroRecord, ...]
    box: Tuple[float, ...]

    @property
    def time(self) -> float:
        match = _TITLE_TIME.search(self.title)
        return float(match.group(1)) if match else 0.0

    @property
    def step(self) -> int:
        match = _TITLE_STEP.search(self.title)
        return int(match.group(1)) if match else 0

    def residue_groups(self) -> List[List[GroRecord]]:
        """Records split into runs of consecutive lines sharing residue number and name."""
        return [list(g) for _, g in groupby(self.records, key=lambda r: (r.residue_number, r.residue_name))]


def is_free_atom_group(group: List[GroRecord]) -> bool:
    """A lone atom whose residue is named after itself (e.g. ions) is not a residue."""
    return len(group) == 1 and group[0].residue_name == group[0].atom_name


def _field_width(line: str) -> int:
    # Coordinates are printed with a fixed number of decimals; the distance
    # between two decimal points gives the field width (8 by default).
    first = line.find('.', 20)
    second = line.find('.', first + 1) if first >= 0 else -1
    return second - first if first >= 0 and second > first else 8


def _parse_record(line: str, line_no: int, width: int) -> GroRecord:
    try:
        position = tuple(float(line[20 + i * width:20 + (i + 1) * width]) for i in range(3))
        velocity = None
        vel_start = 20 + 3 * width
        if len(line.rstrip()) > vel_start:
            velocity = tuple(float(line[vel_start + i * width:vel_start + (i + 1) * width])
                             for i in range(3))
        return GroRecord(residue_number=int(line[0:5]),
                         residue_name=line[5:10].strip(),
                         atom_name=line[10:15].strip(),
                         atom_number=int(line[15:20]),
                         position=position,
                         velocity=velocity)
    except ValueError as e:
        raise ValueError(f"Malformed atom record on line {line_no}: {line.rstrip()!r}") from e


def read_gro(filename: Union[str, Path]) -> GroFile:
    """
    Parse a .gro file.

    Args:
        filename: Path to the .gro file

    Returns:
        GroFile with the title, one record per atom line, and the box vectors

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is truncated or a line is malformed
    """
    filepath = Path(filename)
    if not filepath.exists():
        raise FileNotFoundError(f"GRO file not found: {filename}")

    with open(filepath, 'r') as f:
        lines = f.read().splitlines()
    if len(lines) < 3:
        raise ValueError(f"GRO file {filepath.name} is too short ({len(lines)} lines).")

    title = lines[0].strip()
    try:
        n_atoms = int(lines[1].strip())
    except ValueError as e:
        raise ValueError(f"GRO file {filepath.name}: atom count line is not an integer.") from e
    if len(lines) < n_atoms + 3:
        raise ValueError(f"GRO file {filepath.name} declares {n_atoms} atoms but has only "
                         f"{len(lines)} lines.")

    width = _field_width(lines[2]) if n_atoms else 8
    records = tuple(_parse_record(lines[2 + i], 3 + i, width) for i in range(n_atoms))

    try:
        box = tuple(float(v) for v in lines[2 + n_atoms].split())
    except ValueError as e:
        raise ValueError(f"GRO file {filepath.name}: malformed box line.") from e
    if len(box) not in (3, 9):
        raise ValueError(f"GRO file {filepath.name}: box line must have 3 or 9 values, got {len(box)}.")

    logger.debug(f"Read {n_atoms} atom records from {filepath.name}.")
    return GroFile(title=title, records=records, box=box)


def _as_gro_file(gro: Union[str, Path, GroFile]) -> GroFile:
    return gro if isinstance(gro, GroFile) else read_gro(gro)


class FrameStructureFromGroFileBuilder(FrameStructureBuilder):
    """Build a structure from the atom and residue names of a .gro file.

    Residue names are resolved as residue types and each residue must match
    its template; lone atoms named like their residue are free atoms.
    Unknown names are reported all at once.
    """

    def __init__(self, registry: Optional[TypeRegistry] = None):
        self.registry = registry or default_registry()
        self._gro: Optional[Union[str, Path, GroFile]] = None

    def with_gro_file(self, gro: Union[str, Path, GroFile]) -> 'FrameStructureFromGroFileBuilder':
        self._gro = gro
        return self

    def build(self) -> FrameStructure:
        if self._gro is None:
            raise ValueError("No .gro file given.")
        gro = _as_gro_file(self._gro)

        groups = gro.residue_groups()
        atom_names = list(dict.fromkeys(r.atom_name for r in gro.records))
        residue_names = list(dict.fromkeys(g[0].residue_name for g in groups if not is_free_atom_group(g)))
        raise_for_unrecognized(self.registry.unrecognized_atoms(atom_names),
                               self.registry.unrecognized_residues(residue_names))

        n_atoms = len(gro.records)
        types_seq = np.empty(n_atoms, dtype=object)
        abbrs_seq = np.empty(n_atoms, dtype=object)
        residue_indexes_by_type: Dict[ResidueType, List[int]] = {}
        residue_atoms: Dict[int, np.ndarray] = {}

        atom_no = 0
        for group in groups:
            names = tuple(r.atom_name for r in group)
            for j, name in enumerate(names):
                types_seq[atom_no + j] = self.registry.resolve_atom_type(name)
                abbrs_seq[atom_no + j] = name
            if not is_free_atom_group(group):
                rtype = self.registry.resolve_residue_type(group[0].residue_name)
                template = self.registry.residue_template(rtype)
                if names != template:
                    raise StructureInconsistencyError(
                        f"Residue {group[0].residue_number}{group[0].residue_name} has atoms {list(names)}, "
                        f"expected {list(template)}.")
                residue_no = len(residue_atoms)
                residue_atoms[residue_no] = np.arange(atom_no, atom_no + len(group))
                residue_indexes_by_type.setdefault(rtype, []).append(residue_no)
            atom_no += len(group)

        frame_structure = FrameStructure(box=gro.box[:3], atom_types=types_seq, atom_abbreviations=abbrs_seq,
                                         residue_indexes_by_type=residue_indexes_by_type,
                                         residue_atoms=residue_atoms, description=gro.title)
        logger.info(f"Frame structure successfully created from .gro file: "
                    f"{frame_structure.atoms_num} atoms, {frame_structure.residues_num} residues.")
        return frame_structure


class FrameCoordinatesFromGroFileBuilder:
    """Read positions, velocities (when every line has them), box and residue count."""

    def __init__(self):
        self._gro: Optional[Union[str, Path, GroFile]] = None

    def with_gro_file(self, gro: Union[str, Path, GroFile]) -> 'FrameCoordinatesFromGroFileBuilder':
        self._gro = gro
        return self

    def build(self) -> FrameCoordinates:
        if self._gro is None:
            raise ValueError("No .gro file given.")
        gro = _as_gro_file(self._gro)

        positions = np.array([r.position for r in gro.records], dtype=np.float32).reshape(-1, 3)
        velocities = None
        if gro.records and all(r.velocity is not None for r in gro.records):
            velocities = np.array([r.velocity for r in gro.records], dtype=np.float32)
        residues_num = sum(1 for g in gro.residue_groups() if not is_free_atom_group(g))

        return FrameCoordinates(positions=positions, velocities=velocities, box=gro.box[:3],
                                step=gro.step, time=gro.time, residues_num=residues_num,
                                description=gro.title)
