import numpy as np
import pytest

from gmxframe.core.exceptions import EmptySpecificationError, InvalidBoxError, StructureInconsistencyError
from gmxframe.core.structure_builders import FrameStructureFromArraysBuilder


@pytest.fixture
def water_and_ion(registry):
    """Arrays for one SOL residue (atoms 0-2) followed by a free NA atom."""
    abbrs = ["OW", "HW1", "HW2", "NA"]
    return {
        "types": [registry.resolve_atom_type(a) for a in abbrs],
        "abbrs": abbrs,
        "water": registry.resolve_residue_type("SOL"),
    }

def build(data, by_type, res_atoms, box=(2.0, 2.0, 2.0)):
    return (FrameStructureFromArraysBuilder()
            .with_box(*box)
            .with_atoms(data["types"], data["abbrs"])
            .with_residues(by_type, res_atoms)
            .build())

def test_valid_arrays(water_and_ion):
    water = water_and_ion["water"]
    structure = build(water_and_ion, {water: [0]}, {0: [0, 1, 2]})
    assert structure.atoms_num == 4
    assert structure.residues_num == 1
    np.testing.assert_array_equal(structure.free_atom_indexes(), [3])
    assert structure.residue_type_of(0) == water

def test_free_atoms_only(water_and_ion):
    structure = build(water_and_ion, {}, {})
    assert structure.residues_num == 0
    assert structure.free_atom_indexes().size == 4

def test_caller_arrays_are_not_frozen(water_and_ion):
    abbrs = np.array(water_and_ion["abbrs"], dtype=object)
    structure = (FrameStructureFromArraysBuilder().with_box(1, 1, 1)
                 .with_atoms(water_and_ion["types"], abbrs).build())
    abbrs[0] = "XX"
    assert abbrs.flags.writeable
    assert structure.atom_abbreviations[0] == "OW"

def test_length_mismatch(water_and_ion):
    water_and_ion["abbrs"] = water_and_ion["abbrs"][:3]
    with pytest.raises(StructureInconsistencyError, match="Atom count mismatch"):
        build(water_and_ion, {}, {})

def test_unset_atom_slot(water_and_ion):
    water_and_ion["types"][2] = None
    with pytest.raises(StructureInconsistencyError, match="first at index 2"):
        build(water_and_ion, {}, {})

def test_overlapping_residues(water_and_ion):
    water = water_and_ion["water"]
    with pytest.raises(StructureInconsistencyError, match="more than one residue"):
        build(water_and_ion, {water: [0, 1]}, {0: [0, 1], 1: [1, 2]})

def test_residue_atoms_out_of_range(water_and_ion):
    water = water_and_ion["water"]
    with pytest.raises(StructureInconsistencyError, match="outside"):
        build(water_and_ion, {water: [0]}, {0: [0, 1, 7]})

def test_residue_indexes_with_gap(water_and_ion):
    water = water_and_ion["water"]
    with pytest.raises(StructureInconsistencyError, match="not dense"):
        build(water_and_ion, {water: [0, 2]}, {0: [0, 1], 2: [2]})

def test_residue_without_type(water_and_ion):
    with pytest.raises(StructureInconsistencyError, match="exactly one residue type"):
        build(water_and_ion, {}, {0: [0, 1, 2]})

def test_residue_under_two_types(water_and_ion, registry):
    water = water_and_ion["water"]
    methanol = registry.resolve_residue_type("MeOH")
    with pytest.raises(StructureInconsistencyError, match="exactly one residue type"):
        build(water_and_ion, {water: [0], methanol: [0]}, {0: [0, 1, 2]})

def test_missing_atoms():
    with pytest.raises(EmptySpecificationError):
        FrameStructureFromArraysBuilder().with_box(1, 1, 1).build()

def test_invalid_box(water_and_ion):
    with pytest.raises(InvalidBoxError):
        build(water_and_ion, {}, {}, box=(1.0, 0.0, 1.0))

def test_copy_is_independent(water_and_ion):
    water = water_and_ion["water"]
    structure = build(water_and_ion, {water: [0]}, {0: [0, 1, 2]})
    duplicate = structure.copy()
    assert duplicate is not structure
    assert not np.shares_memory(duplicate.box, structure.box)
    assert duplicate.residue_atoms[0] is not structure.residue_atoms[0]
    np.testing.assert_array_equal(duplicate.atom_abbreviations, structure.atom_abbreviations)
    assert duplicate.residues_num == structure.residues_num

def test_residue_type_of_out_of_range(water_and_ion):
    structure = build(water_and_ion, {}, {})
    with pytest.raises(IndexError):
        structure.residue_type_of(0)
