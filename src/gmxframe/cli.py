import argparse
import copy
from itertools import islice
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from tqdm import tqdm

from gmxframe.core.exceptions import FrameError
from gmxframe.core.registry import TypeRegistry, default_registry
from gmxframe.core.structure import FrameStructure
from gmxframe.core.structure_builders import FrameStructureFromScratchBuilder
from gmxframe.io.gro import FrameStructureFromGroFileBuilder
from gmxframe.io.xtc_reader import TrajectoryReader
from gmxframe.utils.config_manager import ConfigManager
from gmxframe.utils.helpers import update_dict_recursively

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: Dict[str, Any] = {
    'structure': {'description': None, 'box': None, 'free_atoms': {}, 'residues': {}, 'max_workers': None},
    'registry': {'file': None},
    'trajectory': {'file': None, 'max_frames': None, 'first_frame_number': 0},
}


def load_registry(registry_cfg: Dict[str, Any]) -> TypeRegistry:
    registry_file = registry_cfg.get('file')
    return TypeRegistry.from_yaml(registry_file) if registry_file else default_registry()


def build_structure_from_config(structure_cfg: Dict[str, Any], registry: TypeRegistry) -> FrameStructure:
    builder = FrameStructureFromScratchBuilder(registry, max_workers=structure_cfg.get('max_workers'))
    if structure_cfg.get('box') is not None:
        builder.with_box(*structure_cfg['box'])
    if structure_cfg.get('description'):
        builder.with_description(structure_cfg['description'])
    for abbr, n in (structure_cfg.get('free_atoms') or {}).items():
        builder.with_free_atoms(str(abbr), n)
    for abbr, n in (structure_cfg.get('residues') or {}).items():
        builder.with_residues(str(abbr), n)
    return builder.build()


def stream_trajectory(trajectory_file: str, structure: FrameStructure,
                      max_frames: Optional[int] = None, first_frame_number: int = 0,
                      reader: Optional[TrajectoryReader] = None) -> int:
    """Read frames from ``trajectory_file`` and pair each with ``structure``; returns the frame count."""
    n_frames = 0
    with (reader or TrajectoryReader()).open(trajectory_file) as session:
        if session.atom_count() != structure.atoms_num:
            raise FrameError(f"Trajectory has {session.atom_count()} atoms, structure has {structure.atoms_num}.")
        frames = session.frames(structure, start=first_frame_number)
        if max_frames is not None:
            frames = islice(frames, max_frames)
        for _ in tqdm(frames, desc=f"Reading frames from {Path(trajectory_file).name}", unit="fr"):
            n_frames += 1
    return n_frames


def main(argv=None):
    parser = argparse.ArgumentParser(description='Assemble molecular frames and stream .xtc trajectories.')
    parser.add_argument('--config', type=str, help='Path to YAML system configuration file.')
    parser.add_argument('--gro', type=str, help='Build the structure from a .gro file instead of the config.')
    parser.add_argument('--registry', type=str, help='YAML file with atom and residue types (overrides config).')
    parser.add_argument('--trajectory', type=str, help='Path to .xtc trajectory file (overrides config).')
    parser.add_argument('--max-frames', type=int, help='Stop after this many trajectory frames.')
    parser.add_argument('--verbose', action='store_true', help='Enable debug logging.')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )

    config = copy.deepcopy(DEFAULT_CONFIG)
    try:
        if args.config:
            config = update_dict_recursively(config, ConfigManager(args.config).to_dict())
        if args.registry: config['registry']['file'] = args.registry
        if args.trajectory: config['trajectory']['file'] = args.trajectory
        if args.max_frames is not None: config['trajectory']['max_frames'] = args.max_frames

        if not args.gro and not args.config:
            logger.error("Either --config or --gro is required."); raise SystemExit(1)

        registry = load_registry(config['registry'])
        if args.gro:
            structure = FrameStructureFromGroFileBuilder(registry).with_gro_file(args.gro).build()
        else:
            structure = build_structure_from_config(config['structure'], registry)
        logger.info(f"Structure: {structure.atoms_num} atoms, {structure.residues_num} residues, "
                    f"box {structure.box.tolist()}")
        for rtype, res_idx in structure.residue_indexes_by_type.items():
            logger.info(f"  {rtype.name}: {len(res_idx)} residues")

        traj_cfg = config['trajectory']
        if traj_cfg.get('file'):
            n_frames = stream_trajectory(traj_cfg['file'], structure, traj_cfg.get('max_frames'),
                                         traj_cfg.get('first_frame_number', 0))
            logger.info(f"Read {n_frames} frames.")
        logger.info("gmxframe processing completed.")

    except FileNotFoundError as e: logger.error(f"File Error: {e}"); raise SystemExit(1)
    except FrameError as e: logger.error(f"Frame Error: {e}"); raise SystemExit(1)
    except ValueError as e: logger.error(f"Value Error: {e}"); raise SystemExit(1)
    except Exception as e: logger.error(f"Unexpected error: {e}", exc_info=True); raise SystemExit(1)


if __name__ == "__main__":
    main()
