"""
Sequential reading of binary .xtc trajectories.

The binary format is decoded by a native library behind the narrow
``TrajectoryDecoder`` interface; OVITO's file readers are used by default.
Only one trajectory may be open in the process at a time.
"""
from abc import ABC, abstractmethod
from itertools import count
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Union
import logging
import threading

import numpy as np

from ..core.coordinates import FrameCoordinates, FrameCoordinatesFromArraysBuilder
from ..core.exceptions import (AlreadyOpenError, TrajectoryNotFoundError,
                               TrajectoryNotOpenError, UnsupportedFormatError)
from ..core.frame import Frame, create_frame
from ..core.structure import FrameStructure

logger = logging.getLogger(__name__)

# Try to import OVITO, but don't fail if it's not available
try:
    from ovito.io import import_file
    OVITO_AVAILABLE = True
except ImportError as e:
    logger.debug(f"OVITO import failed: {e}")
    OVITO_AVAILABLE = False

# OVITO reports GROMACS lengths in angstrom
ANGSTROM_PER_NM = 10.0


class TrajectoryDecoder(ABC):
    """Native frame source for one trajectory file.

    ``read_next`` returns a dict with ``positions`` (atoms, 3) and optionally
    ``velocities``, ``box``, ``step``, ``time`` and ``precision``, or None
    once the file is exhausted.
    """

    @abstractmethod
    def open(self, filepath: Path) -> int:
        """Open the file and return its atom count"""
        pass

    @abstractmethod
    def read_next(self) -> Optional[Dict[str, Any]]:
        """Decode the next frame"""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close down, release resources etc"""
        pass


class OvitoTrajectoryDecoder(TrajectoryDecoder):

    def __init__(self):
        self._pipeline = None
        self._n_frames = 0
        self._next = 0

    def open(self, filepath: Path) -> int:
        if not OVITO_AVAILABLE:
            raise ImportError("OVITO is not available. Please install OVITO Python to read .xtc files.")
        self._pipeline = import_file(str(filepath))
        self._n_frames = self._pipeline.source.num_frames
        self._next = 0
        if self._n_frames == 0:
            raise ValueError("OVITO: 0 frames in trajectory.")
        frame0_data = self._pipeline.compute(0)
        if not (hasattr(frame0_data, 'particles') and frame0_data.particles):
            raise ValueError("OVITO: Could not read particle data from frame 0.")
        return frame0_data.particles.count

    def read_next(self) -> Optional[Dict[str, Any]]:
        if self._pipeline is None or self._next >= self._n_frames:
            return None
        frame_data = self._pipeline.compute(self._next)
        self._next += 1

        raw = {'positions': np.array(frame_data.particles.positions, dtype=np.float32) / ANGSTROM_PER_NM}
        velocities = getattr(frame_data.particles, 'velocities', None)
        if velocities is not None:
            raw['velocities'] = np.array(velocities, dtype=np.float32) / ANGSTROM_PER_NM
        if getattr(frame_data, 'cell', None):
            h_matrix = np.array(frame_data.cell.matrix, dtype=np.float32)[:3, :3]
            raw['box'] = np.diag(h_matrix) / ANGSTROM_PER_NM
        raw['step'] = int(frame_data.attributes.get('Timestep', self._next - 1))
        raw['time'] = float(frame_data.attributes.get('Time', 0.0))
        return raw

    def close(self) -> None:
        self._pipeline = None
        self._n_frames = 0


class TrajectoryReader:
    """Opens trajectory files; each successful ``open`` returns a session.

    The underlying decoder is an exclusive process-wide resource: opening a
    second trajectory before the first session is closed fails immediately
    with AlreadyOpenError.
    """
    SUPPORTED_SUFFIXES = ('.xtc',)
    _busy = threading.Lock()

    def __init__(self, decoder_factory: Callable[[], TrajectoryDecoder] = OvitoTrajectoryDecoder):
        self.decoder_factory = decoder_factory

    @classmethod
    def is_busy(cls) -> bool:
        return cls._busy.locked()

    def open(self, filename: Union[str, Path]) -> 'TrajectorySession':
        filepath = Path(filename)
        if not filepath.exists():
            raise TrajectoryNotFoundError(f"Trajectory file not found: {filename}")
        if filepath.suffix.lower() not in self.SUPPORTED_SUFFIXES:
            raise UnsupportedFormatError(
                f"Unsupported trajectory format '{filepath.suffix}'. Must be one of: {list(self.SUPPORTED_SUFFIXES)}")
        if not self._busy.acquire(blocking=False):
            raise AlreadyOpenError("The previous trajectory file is still opened.")

        decoder = None
        try:
            decoder = self.decoder_factory()
            atoms_num = decoder.open(filepath)
        except BaseException as e:
            # A failed open never keeps the lock, whatever the decoder raised.
            try:
                if decoder is not None:
                    decoder.close()
            finally:
                self._busy.release()
            if isinstance(e, (ValueError, RuntimeError, OSError)):
                raise UnsupportedFormatError(f"Failed to open trajectory {filepath.name}: {e}") from e
            raise

        logger.info(f"Opened trajectory '{filepath.name}': {atoms_num} atoms.")
        return TrajectorySession(filepath, decoder, atoms_num, self._busy)


class TrajectorySession:
    """Handle on one open trajectory.

    Reading past the last frame returns None and closes the session; any
    later read behaves as on a closed session.
    """

    def __init__(self, filepath: Path, decoder: TrajectoryDecoder, atoms_num: int, lock: threading.Lock):
        self.filepath = filepath
        self._decoder = decoder
        self._atoms_num = atoms_num
        self._lock = lock
        self._open = True
        self._frames_read = 0

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def frames_read(self) -> int:
        return self._frames_read

    def atom_count(self) -> int:
        if not self._open:
            raise TrajectoryNotOpenError("No trajectory file opened.")
        return self._atoms_num

    def read_next_frame(self) -> Optional[FrameCoordinates]:
        if not self._open:
            raise TrajectoryNotOpenError("No trajectory file opened.")
        raw = self._decoder.read_next()
        if raw is None:
            logger.info(f"End of trajectory '{self.filepath.name}' after {self._frames_read} frames.")
            self.close()
            return None

        builder = FrameCoordinatesFromArraysBuilder().with_positions(raw['positions'])
        if raw.get('velocities') is not None:
            builder.with_velocities(raw['velocities'])
        if raw.get('box') is not None:
            builder.with_box(*raw['box'])
        if raw.get('precision') is not None:
            builder.with_precision(raw['precision'])
        coordinates = builder.with_step(raw.get('step', self._frames_read), raw.get('time', 0.0)).build()
        if coordinates.atoms_num != self._atoms_num:
            logger.warning(f"Frame {self._frames_read} of '{self.filepath.name}' has "
                           f"{coordinates.atoms_num} atoms, expected {self._atoms_num}.")
        self._frames_read += 1
        return coordinates

    def close(self) -> None:
        if self._open:
            self._decoder.close()
            self._open = False
            self._lock.release()
            logger.debug(f"Closed trajectory '{self.filepath.name}'.")

    def frames(self, structure: FrameStructure, start: int = 0) -> Iterator[Frame]:
        """Pair each remaining frame with ``structure``, numbering from ``start``."""
        for sequence_number, coordinates in zip(count(start), self):
            yield create_frame(structure, coordinates, sequence_number)

    def __iter__(self) -> Iterator[FrameCoordinates]:
        return self

    def __next__(self) -> FrameCoordinates:
        if not self._open:
            raise StopIteration
        coordinates = self.read_next_frame()
        if coordinates is None:
            raise StopIteration
        return coordinates

    def __enter__(self) -> 'TrajectorySession':
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
