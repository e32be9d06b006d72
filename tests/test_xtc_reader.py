import numpy as np
import pytest

from gmxframe.core.exceptions import (AlreadyOpenError, TrajectoryNotFoundError,
                                      TrajectoryNotOpenError, UnsupportedFormatError)
from gmxframe.core.structure_builders import FrameStructureFromScratchBuilder
from gmxframe.io import xtc_reader
from gmxframe.io.xtc_reader import TrajectoryReader

from conftest import FakeDecoder, make_frames


@pytest.fixture
def decoders():
    created = []
    yield created
    # Nothing may leave the process-wide trajectory lock held.
    assert not TrajectoryReader.is_busy()

@pytest.fixture
def reader(decoders):
    def factory():
        decoder = FakeDecoder(make_frames(3, 6))
        decoders.append(decoder)
        return decoder
    return TrajectoryReader(factory)

def test_read_all_frames(reader, xtc_file, decoders):
    session = reader.open(xtc_file)
    assert session.atom_count() == 6
    steps = []
    while True:
        coords = session.read_next_frame()
        if coords is None:
            break
        steps.append(coords.step)
        assert coords.atoms_num == 6
    assert steps == [0, 100, 200]
    assert session.frames_read == 3
    assert not session.is_open
    assert decoders[0].closed

def test_reads_after_end_behave_as_closed(reader, xtc_file):
    session = reader.open(xtc_file)
    list(session)
    with pytest.raises(TrajectoryNotOpenError):
        session.read_next_frame()
    with pytest.raises(TrajectoryNotOpenError):
        session.atom_count()
    assert list(session) == []

def test_open_twice_fails(reader, xtc_file):
    session = reader.open(xtc_file)
    try:
        with pytest.raises(AlreadyOpenError):
            reader.open(xtc_file)
        with pytest.raises(AlreadyOpenError):
            TrajectoryReader(lambda: FakeDecoder(make_frames(1, 1))).open(xtc_file)
    finally:
        session.close()
    with reader.open(xtc_file) as again:
        assert again.is_open

def test_close_is_idempotent(reader, xtc_file):
    session = reader.open(xtc_file)
    session.close()
    session.close()
    assert not TrajectoryReader.is_busy()

def test_context_manager_closes(reader, xtc_file):
    with reader.open(xtc_file) as session:
        assert TrajectoryReader.is_busy()
        session.read_next_frame()
    assert not session.is_open

def test_missing_file(reader, tmp_path):
    with pytest.raises(TrajectoryNotFoundError) as excinfo:
        reader.open(tmp_path / "missing.xtc")
    assert isinstance(excinfo.value, FileNotFoundError)

def test_unsupported_suffix(reader, tmp_path):
    path = tmp_path / "traj.trr"
    path.write_bytes(b"\x00")
    with pytest.raises(UnsupportedFormatError, match=r"\.trr"):
        reader.open(path)

def test_decoder_failure_releases_lock(xtc_file, decoders):
    decoder = FakeDecoder(make_frames(1, 1), fail_on_open=ValueError("not an xtc file"))
    with pytest.raises(UnsupportedFormatError, match="not an xtc file"):
        TrajectoryReader(lambda: decoder).open(xtc_file)
    assert decoder.closed

@pytest.mark.parametrize("error", [KeyError("header"), ImportError("no native library")])
def test_unexpected_decoder_error_releases_lock(xtc_file, decoders, error):
    decoder = FakeDecoder(make_frames(1, 1), fail_on_open=error)
    with pytest.raises(type(error)):
        TrajectoryReader(lambda: decoder).open(xtc_file)
    assert decoder.closed
    assert not TrajectoryReader.is_busy()
    with TrajectoryReader(lambda: FakeDecoder(make_frames(1, 1))).open(xtc_file) as session:
        assert session.is_open

def test_failing_decoder_factory_releases_lock(xtc_file, decoders):
    def factory():
        raise TypeError("decoder misconfigured")
    with pytest.raises(TypeError):
        TrajectoryReader(factory).open(xtc_file)
    assert not TrajectoryReader.is_busy()

def test_coordinates_carry_frame_metadata(reader, xtc_file):
    with reader.open(xtc_file) as session:
        coords = [c for c in session]
    assert [c.time for c in coords] == pytest.approx([0.0, 0.2, 0.4])
    np.testing.assert_allclose(coords[2].positions, np.full((6, 3), 2.0))
    np.testing.assert_allclose(coords[0].box, [2.0, 2.0, 2.0])
    assert coords[0].velocities is None

def test_frames_are_numbered(reader, xtc_file):
    structure = FrameStructureFromScratchBuilder().with_box(2, 2, 2).with_residues("SOL", 2).build()
    with reader.open(xtc_file) as session:
        frames = list(session.frames(structure, start=5))
    assert [f.sequence_number for f in frames] == [5, 6, 7]
    assert all(f.residues_num == 2 for f in frames)
    assert frames[0].structure is not frames[1].structure

@pytest.mark.skipif(xtc_reader.OVITO_AVAILABLE, reason="OVITO is installed")
def test_ovito_decoder_unavailable(xtc_file, decoders):
    with pytest.raises(ImportError):
        TrajectoryReader().open(xtc_file)
