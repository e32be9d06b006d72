import numpy as np
import pytest

from gmxframe.core.registry import default_registry
from gmxframe.io.xtc_reader import TrajectoryDecoder


@pytest.fixture
def registry():
    return default_registry()


def gro_line(resnum, resname, atomname, atomnum, pos, vel=None):
    """Format one .gro atom line with the standard column widths."""
    line = f"{resnum:5d}{resname:<5s}{atomname:>5s}{atomnum:5d}" + "".join(f"{x:8.3f}" for x in pos)
    if vel is not None:
        line += "".join(f"{v:8.4f}" for v in vel)
    return line


def write_gro(path, title, atoms, box, velocities=True):
    """Write a .gro file; ``atoms`` holds (resnum, resname, atomname, pos, vel) tuples."""
    lines = [title, f"{len(atoms):5d}"]
    for i, (resnum, resname, atomname, pos, vel) in enumerate(atoms, 1):
        lines.append(gro_line(resnum, resname, atomname, i, pos, vel if velocities else None))
    lines.append("".join(f"{b:10.5f}" for b in box))
    path.write_text("\n".join(lines) + "\n")
    return path


@pytest.fixture
def water_ions_gro(tmp_path):
    """Two SOL residues followed by one NA and one CL ion."""
    atoms = [
        (1, "SOL", "OW", (0.126, 1.624, 1.679), (0.1227, -0.0580, 0.0434)),
        (1, "SOL", "HW1", (0.190, 1.661, 1.747), (0.8085, 0.3191, -0.7791)),
        (1, "SOL", "HW2", (0.177, 1.568, 1.613), (-0.9045, -2.6469, 1.3180)),
        (2, "SOL", "OW", (1.916, 0.067, 1.097), (0.6741, 0.0603, -0.2339)),
        (2, "SOL", "HW1", (1.850, 0.111, 1.158), (0.3775, -0.2658, -1.1000)),
        (2, "SOL", "HW2", (1.954, 0.142, 1.046), (-0.4183, -0.2640, 0.2480)),
        (3, "NA", "NA", (0.500, 0.500, 0.500), (0.0, 0.0, 0.0)),
        (4, "CL", "CL", (1.000, 1.000, 1.000), (0.0, 0.0, 0.0)),
    ]
    return write_gro(tmp_path / "conf.gro", "Water and ions t=   2.00000 step= 1000",
                     atoms, (1.86206, 1.86206, 1.86206))


class FakeDecoder(TrajectoryDecoder):
    """In-memory decoder yielding prepared frames."""

    def __init__(self, frames, fail_on_open=None):
        self.frames = frames
        self.fail_on_open = fail_on_open
        self.closed = False

    def open(self, filepath):
        if self.fail_on_open is not None:
            raise self.fail_on_open
        self._frames = iter(self.frames)
        return self.frames[0]['positions'].shape[0]

    def read_next(self):
        return next(self._frames, None)

    def close(self):
        self.closed = True


def make_frames(n_frames, n_atoms):
    return [{'positions': np.full((n_atoms, 3), i, dtype=np.float32),
             'box': np.array([2.0, 2.0, 2.0], dtype=np.float32),
             'step': 100 * i,
             'time': 0.2 * i}
            for i in range(n_frames)]


@pytest.fixture
def xtc_file(tmp_path):
    path = tmp_path / "traj.xtc"
    path.write_bytes(b"\x00" * 16)
    return path
