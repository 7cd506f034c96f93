"""Command-line interface for resolution-dependent mask erosion.

Provides two subcommands:
  table: print the fixed and moving erosion radius of every resolution level
  run:   load masks, run the registration lifecycle and export the mask
          installed at every level

Usage:
    resmask-erode table --number-of-resolutions 4
    resmask-erode run --config configs/registration.yaml \\
        -fMask fixed_mask.nii.gz -mMask moving_mask.nii.gz --output-dir out/
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from resmask.config import (
    Configuration,
    ConfigurationError,
    DEFAULT_NUMBER_OF_RESOLUTIONS,
    load_configuration,
)
from resmask.masks.io import SimpleITKMaskProvider
from resmask.masks.mask import MaskRole
from resmask.metric.base import MaskedMetricBase
from resmask.registration.driver import MultiResolutionDriver
from resmask.registration.scheduler import (
    NUMBER_OF_RESOLUTIONS_KEY,
    MaskLoadError,
    ResolutionErosionScheduler,
    erosion_schedule,
)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI.

    Args:
        verbose: If True, set logging level to DEBUG; otherwise INFO.
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def cmd_table(args: argparse.Namespace) -> int:
    """Execute the table subcommand.

    Args:
        args: Parsed CLI arguments.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)

    if args.number_of_resolutions < 1:
        logger.error(
            f"--number-of-resolutions must be >= 1, got {args.number_of_resolutions}"
        )
        return 1

    logger.info(f"Erosion schedule for {args.number_of_resolutions} resolution(s)")
    logger.info("level\tfixed\tmoving")
    for level, fixed_radius, moving_radius in erosion_schedule(args.number_of_resolutions):
        logger.info(f"{level}\t{fixed_radius}\t{moving_radius}")
    return 0


def _build_configuration(args: argparse.Namespace) -> Configuration:
    """Merge the parameter file with command-line overrides."""
    command_line: Dict[str, str] = {}
    if args.fixed_mask:
        command_line[MaskRole.FIXED.command_line_key] = str(args.fixed_mask)
    if args.moving_mask:
        command_line[MaskRole.MOVING.command_line_key] = str(args.moving_mask)

    if args.config is not None:
        configuration = load_configuration(args.config, command_line=command_line)
    else:
        configuration = Configuration(command_line=command_line)

    if args.number_of_resolutions is not None:
        configuration.parameters[NUMBER_OF_RESOLUTIONS_KEY] = args.number_of_resolutions

    return configuration


def cmd_run(args: argparse.Namespace) -> int:
    """Execute the run subcommand.

    Args:
        args: Parsed CLI arguments.

    Returns:
        Exit code.
    """
    logger = logging.getLogger(__name__)

    try:
        configuration = _build_configuration(args)
    except (FileNotFoundError, ConfigurationError) as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    number_of_resolutions = configuration.read_parameter(
        NUMBER_OF_RESOLUTIONS_KEY, DEFAULT_NUMBER_OF_RESOLUTIONS
    )
    if number_of_resolutions < 1:
        logger.error(f"{NUMBER_OF_RESOLUTIONS_KEY} must be >= 1, got {number_of_resolutions}")
        return 1

    output_dir: Path = args.output_dir
    provider = SimpleITKMaskProvider()
    metric = MaskedMetricBase()
    driver = MultiResolutionDriver(
        number_of_resolutions=number_of_resolutions,
        number_of_parameters=args.number_of_parameters,
    )
    scheduler = ResolutionErosionScheduler(
        configuration=configuration,
        metric=metric,
        registration=driver,
        provider=provider,
    )
    driver.add_component(scheduler)

    written: List[Path] = []

    def export_level(level: int) -> None:
        for role in MaskRole:
            mask = metric.get_mask(role)
            if mask is None:
                continue
            if mask.is_empty:
                logger.warning(f"Level {level}: {role.label} mask is empty after erosion")
            path = output_dir / f"{role.label}_mask_level{level}.nii.gz"
            written.append(provider.save(mask, path))
            logger.info(f"Level {level}: {role.label} mask ({mask.voxel_count} voxels) -> {path}")

    logger.info("=" * 60)
    logger.info("MASK EROSION RUN")
    logger.info("=" * 60)

    try:
        driver.run(on_level=export_level)
    except MaskLoadError as e:
        logger.error(f"Registration aborted: {e}")
        return 1

    logger.info("=" * 60)
    logger.info(f"RUN COMPLETE: {len(written)} mask(s) written to {output_dir}")
    logger.info("=" * 60)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point.

    Args:
        argv: Argument list (defaults to sys.argv[1:]).

    Returns:
        Exit code.
    """
    parser = argparse.ArgumentParser(
        prog="resmask-erode",
        description="Resolution-dependent erosion of registration masks.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging (DEBUG level).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    table_parser = subparsers.add_parser(
        "table", help="Print the erosion radius of every resolution level."
    )
    table_parser.add_argument(
        "--number-of-resolutions",
        "-n",
        type=int,
        default=DEFAULT_NUMBER_OF_RESOLUTIONS,
        help="Number of pyramid levels (default: 3).",
    )
    table_parser.set_defaults(func=cmd_table)

    run_parser = subparsers.add_parser(
        "run", help="Erode masks for every level and write them to disk."
    )
    run_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to registration configuration YAML file.",
    )
    run_parser.add_argument(
        "-fMask", dest="fixed_mask", type=Path, default=None, help="Fixed image mask."
    )
    run_parser.add_argument(
        "-mMask", dest="moving_mask", type=Path, default=None, help="Moving image mask."
    )
    run_parser.add_argument(
        "--number-of-resolutions",
        type=int,
        default=None,
        help="Override NumberOfResolutions from the configuration file.",
    )
    run_parser.add_argument(
        "--number-of-parameters",
        type=int,
        default=0,
        help="Number of transform parameters (length of the step scales).",
    )
    run_parser.add_argument(
        "--output-dir",
        type=Path,
        required=True,
        help="Directory for the per-level eroded masks.",
    )
    run_parser.set_defaults(func=cmd_run)

    args = parser.parse_args(argv)
    setup_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
