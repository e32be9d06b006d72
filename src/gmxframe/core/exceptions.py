"""
Error types raised while building frames and streaming trajectories.
"""
from typing import Iterable, List, Sequence


def _describe(kind: str, abbreviations: Sequence[str]) -> str:
    return f"The following {kind} abbreviations aren't recognized: {', '.join(abbreviations)}"


class FrameError(Exception):
    """Base class for every error raised by gmxframe."""


class UnrecognizedAbbreviationError(FrameError, ValueError):
    kind = "particle"

    def __init__(self, abbreviations: Iterable[str]):
        self.abbreviations: List[str] = list(abbreviations)
        super().__init__(_describe(self.kind, self.abbreviations))


class UnrecognizedAtomAbbreviationsError(UnrecognizedAbbreviationError):
    kind = "atom"


class UnrecognizedResidueAbbreviationsError(UnrecognizedAbbreviationError):
    kind = "residue"


class UnrecognizedAtomAndResidueAbbreviationsError(UnrecognizedAtomAbbreviationsError,
                                                   UnrecognizedResidueAbbreviationsError):
    """Atom and residue abbreviations are both unknown; both lists are reported."""

    def __init__(self, atom_abbreviations: Iterable[str], residue_abbreviations: Iterable[str]):
        self.atom_abbreviations: List[str] = list(atom_abbreviations)
        self.residue_abbreviations: List[str] = list(residue_abbreviations)
        self.abbreviations = self.atom_abbreviations + self.residue_abbreviations
        super(UnrecognizedAbbreviationError, self).__init__(
            f"{_describe('atom', self.atom_abbreviations)}; "
            f"{_describe('residue', self.residue_abbreviations)}"
        )


def raise_for_unrecognized(missing_atoms: Sequence[str], missing_residues: Sequence[str]) -> None:
    """Raise one error listing every unknown atom and residue abbreviation, if any."""
    if missing_atoms and missing_residues:
        raise UnrecognizedAtomAndResidueAbbreviationsError(missing_atoms, missing_residues)
    if missing_atoms:
        raise UnrecognizedAtomAbbreviationsError(missing_atoms)
    if missing_residues:
        raise UnrecognizedResidueAbbreviationsError(missing_residues)


class InvalidCountError(FrameError, ValueError):
    pass


class EmptySpecificationError(FrameError, ValueError):
    pass


class InvalidBoxError(FrameError, ValueError):
    pass


class StructureInconsistencyError(FrameError, ValueError):
    pass


class CoordinatesInconsistencyError(FrameError, ValueError):
    pass


class AtomCountMismatchError(FrameError, ValueError):
    pass


class ResidueCountMismatchError(FrameError, ValueError):
    pass


class TrajectoryError(FrameError, IOError):
    pass


class AlreadyOpenError(TrajectoryError):
    pass


class TrajectoryNotFoundError(TrajectoryError, FileNotFoundError):
    pass


class UnsupportedFormatError(TrajectoryError):
    pass


class TrajectoryNotOpenError(TrajectoryError):
    pass
