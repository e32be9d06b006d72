"""
Registry of atom and residue types, keyed by their abbreviations.
"""
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
import logging

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AtomType:
    name: str
    element: Optional[str] = None
    mass: Optional[float] = None


@dataclass(frozen=True)
class ResidueType:
    name: str
    atoms: Tuple[str, ...]  # Template: atom abbreviations in placement order


# GROMACS-style names; the water models follow the oplsaa/spc conventions.
DEFAULT_TYPES: Dict[str, Dict[str, Dict[str, Any]]] = {
    'atoms': {
        'OW': {'type': 'OxygenWater', 'element': 'O', 'mass': 15.9994},
        'HW1': {'type': 'HydrogenWater', 'element': 'H', 'mass': 1.008},
        'HW2': {'type': 'HydrogenWater', 'element': 'H', 'mass': 1.008},
        'MW': {'type': 'VirtualSiteWater', 'element': None, 'mass': 0.0},
        'Me1': {'type': 'MethylMethanol', 'element': 'C', 'mass': 15.035},
        'O2': {'type': 'OxygenMethanol', 'element': 'O', 'mass': 15.9994},
        'H3': {'type': 'HydrogenMethanol', 'element': 'H', 'mass': 1.008},
        'NA': {'type': 'Sodium', 'element': 'Na', 'mass': 22.98977},
        'K': {'type': 'Potassium', 'element': 'K', 'mass': 39.0983},
        'CL': {'type': 'Chloride', 'element': 'Cl', 'mass': 35.453},
        'AR': {'type': 'Argon', 'element': 'Ar', 'mass': 39.948},
    },
    'residues': {
        'SOL': {'type': 'Water', 'atoms': ['OW', 'HW1', 'HW2']},
        'TIP4': {'type': 'Tip4pWater', 'atoms': ['OW', 'HW1', 'HW2', 'MW']},
        'MeOH': {'type': 'Methanol', 'atoms': ['Me1', 'O2', 'H3']},
    },
}


class TypeRegistry:
    """Read-only lookup of type descriptors by abbreviation.

    Lookups never raise for unknown abbreviations; they return ``None`` and
    leave it to the caller to decide whether to collect or abort.
    """

    def __init__(self, atom_types: Mapping[str, AtomType],
                 residue_types: Mapping[str, ResidueType]):
        self._atom_types = MappingProxyType(dict(atom_types))
        self._residue_types = MappingProxyType(dict(residue_types))
        self._templates = MappingProxyType(
            {rtype: rtype.atoms for rtype in self._residue_types.values()})
        self._validate_templates()

    def _validate_templates(self) -> None:
        for abbr, rtype in self._residue_types.items():
            if not rtype.atoms:
                raise ValueError(f"Residue '{abbr}' has an empty atom template.")
            missing = self.unrecognized_atoms(rtype.atoms)
            if missing:
                raise ValueError(f"Residue '{abbr}' template refers to unregistered atoms: "
                                 f"{', '.join(missing)}")

    @property
    def atom_types(self) -> Mapping[str, AtomType]:
        return self._atom_types

    @property
    def residue_types(self) -> Mapping[str, ResidueType]:
        return self._residue_types

    def resolve_atom_type(self, abbreviation: str) -> Optional[AtomType]:
        return self._atom_types.get(abbreviation)

    def resolve_residue_type(self, abbreviation: str) -> Optional[ResidueType]:
        return self._residue_types.get(abbreviation)

    def residue_template(self, residue_type: ResidueType) -> Optional[Tuple[str, ...]]:
        return self._templates.get(residue_type)

    def unrecognized_atoms(self, abbreviations: Iterable[str]) -> List[str]:
        return [a for a in abbreviations if a not in self._atom_types]

    def unrecognized_residues(self, abbreviations: Iterable[str]) -> List[str]:
        return [a for a in abbreviations if a not in self._residue_types]

    @classmethod
    def from_dict(cls, types_dict: Dict[str, Any]) -> 'TypeRegistry':
        """
        Create a registry from a mapping of static type metadata.

        Args:
            types_dict: Dictionary with an ``atoms`` section
                (``{abbr: {type, element, mass}}``) and an optional
                ``residues`` section (``{abbr: {type, atoms: [...]}}``)

        Returns:
            TypeRegistry instance
        """
        atoms_section = types_dict.get('atoms') or {}
        residues_section = types_dict.get('residues') or {}

        # Abbreviations naming the same type share a single descriptor.
        atom_descriptors: Dict[str, AtomType] = {}
        atom_types = {}
        for abbr, entry in atoms_section.items():
            entry = entry or {}
            name = entry.get('type', abbr)
            if name not in atom_descriptors:
                atom_descriptors[name] = AtomType(name, entry.get('element'), entry.get('mass'))
            atom_types[str(abbr)] = atom_descriptors[name]

        residue_types = {}
        for abbr, entry in residues_section.items():
            entry = entry or {}
            residue_types[str(abbr)] = ResidueType(
                entry.get('type', abbr), tuple(str(a) for a in entry.get('atoms') or ()))

        logger.debug(f"Type registry: {len(atom_types)} atom and {len(residue_types)} residue abbreviations.")
        return cls(atom_types, residue_types)

    @classmethod
    def from_yaml(cls, registry_file: Union[str, Path]) -> 'TypeRegistry':
        registry_path = Path(registry_file)
        if not registry_path.exists():
            raise FileNotFoundError(f"Type registry file not found: {registry_file}")
        logger.info(f"Loading type registry from {registry_path}")
        with open(registry_path, 'r') as f:
            types_dict = yaml.safe_load(f) or {}
        return cls.from_dict(types_dict)


_default_registry: Optional[TypeRegistry] = None


def default_registry() -> TypeRegistry:
    global _default_registry
    if _default_registry is None:
        _default_registry = TypeRegistry.from_dict(DEFAULT_TYPES)
    return _default_registry
