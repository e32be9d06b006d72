import dataclasses

import numpy as np
import pytest

from gmxframe.core.coordinates import FrameCoordinatesFromArraysBuilder, FrameCoordinatesFromScratchBuilder
from gmxframe.core.exceptions import AtomCountMismatchError, ResidueCountMismatchError
from gmxframe.core.frame import create_frame
from gmxframe.core.structure_builders import FrameStructureFromScratchBuilder


@pytest.fixture
def argon_structure():
    return FrameStructureFromScratchBuilder().with_box(5.0, 5.0, 5.0).with_free_atoms("AR", 100).build()

@pytest.fixture
def solvated_structure():
    return (FrameStructureFromScratchBuilder().with_box(2.0, 2.0, 2.0)
            .with_free_atoms("NA", 1).with_residues("SOL", 3).build())

def coordinates(n_atoms, **kwargs):
    builder = FrameCoordinatesFromArraysBuilder().with_positions(np.random.rand(n_atoms, 3))
    if 'residues_num' in kwargs:
        builder.with_residues_num(kwargs['residues_num'])
    if 'velocities' in kwargs:
        builder.with_velocities(kwargs['velocities'])
    return builder.build()

def test_atom_count_mismatch(argon_structure):
    with pytest.raises(AtomCountMismatchError, match="99 atoms"):
        create_frame(argon_structure, coordinates(99), 0)

def test_matching_counts(argon_structure):
    frame = create_frame(argon_structure, coordinates(100), 7)
    assert frame.sequence_number == 7
    assert frame.atoms_num == 100
    assert frame.residues_num == 0

def test_residue_count_checked_only_when_present(solvated_structure):
    create_frame(solvated_structure, coordinates(10), 0)
    create_frame(solvated_structure, coordinates(10, residues_num=3), 1)
    with pytest.raises(ResidueCountMismatchError):
        create_frame(solvated_structure, coordinates(10, residues_num=2), 2)

def test_frame_is_immutable(argon_structure):
    frame = create_frame(argon_structure, coordinates(100), 1)
    with pytest.raises(dataclasses.FrozenInstanceError):
        frame.sequence_number = 2
    with pytest.raises(ValueError):
        frame.positions[0, 0] = 1.0

def test_frames_do_not_share_sub_entities(argon_structure):
    coords = coordinates(100)
    first = create_frame(argon_structure, coords, 0)
    second = create_frame(argon_structure, coords, 1)
    assert first.structure is not argon_structure
    assert first.structure is not second.structure
    assert not np.shares_memory(first.positions, second.positions)
    np.testing.assert_array_equal(first.positions, second.positions)

def test_box_prefers_coordinates(solvated_structure):
    frame = create_frame(solvated_structure, coordinates(10), 0)
    np.testing.assert_allclose(frame.box, [2.0, 2.0, 2.0])
    coords = FrameCoordinatesFromScratchBuilder(solvated_structure).with_box(3.0, 3.0, 3.0).build()
    frame = create_frame(solvated_structure, coords, 0)
    np.testing.assert_allclose(frame.box, [3.0, 3.0, 3.0])

def test_atom_view(solvated_structure, registry):
    velocities = np.arange(30, dtype=np.float32).reshape(10, 3)
    frame = create_frame(solvated_structure, coordinates(10, velocities=velocities), 0)

    free = frame.atom(0)
    assert free.abbreviation == "NA"
    assert free.atom_type == registry.resolve_atom_type("NA")
    assert free.residue_index is None
    np.testing.assert_array_equal(free.velocity, velocities[0])

    bound = frame.atom(9)
    assert bound.residue_index is not None
    assert 9 in frame.structure.residue_atoms[bound.residue_index]
    np.testing.assert_array_equal(bound.position, frame.positions[9])

    with pytest.raises(IndexError):
        frame.atom(10)

def test_residue_views(solvated_structure, registry):
    frame = create_frame(solvated_structure, coordinates(10), 0)
    water = registry.resolve_residue_type("SOL")

    residue = frame.residue(0)
    assert residue.residue_type == water
    assert residue.positions.shape == (3, 3)
    np.testing.assert_array_equal(residue.positions, frame.positions[residue.atom_indexes])

    assert len(frame.residues_of_type("Water")) == 3
    assert len(frame.residues_of_type(water)) == 3
    assert frame.residues_of_type("Methanol") == []
    with pytest.raises(IndexError):
        frame.residue(3)
