#!/usr/bin/env python3
"""
Water Box Example

This script demonstrates how to assemble a frame from scratch with the
gmxframe package and inspect it through atom and residue views.
"""

import numpy as np

from gmxframe import (FrameCoordinatesFromScratchBuilder, FrameStructureFromScratchBuilder,
                      create_frame)

def main():
    # Build the topology: 4 ion pairs in 880 waters
    print("Building structure...")
    structure = (FrameStructureFromScratchBuilder()
                 .with_box(3.0, 3.0, 3.0)
                 .with_free_atoms("NA", 4)
                 .with_free_atoms("CL", 4)
                 .with_residues("SOL", 880)
                 .with_description("Water box with sodium chloride")
                 .build())
    print(f"{structure.atoms_num} atoms in {structure.residues_num} residues")

    # Spread atoms over the box and pair them with the structure
    coordinates = FrameCoordinatesFromScratchBuilder(structure).with_zero_velocities().build()
    frame = create_frame(structure, coordinates, 0)

    for index in structure.free_atom_indexes()[:2]:
        ion = frame.atom(int(index))
        print(f"Free atom {index}: {ion.abbreviation} ({ion.atom_type.name}) at {ion.position}")

    waters = frame.residues_of_type("Water")
    centres = np.array([w.positions.mean(axis=0) for w in waters])
    print(f"{len(waters)} waters, mean centre {centres.mean(axis=0)}")

if __name__ == "__main__":
    main()
