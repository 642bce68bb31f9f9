#!/usr/bin/env python3
"""
Command-line entry point for mcmctreer.

Subcommands:
- read:   read MCMCTree's FigTree.tre into a dated tree and node age table
- cauchy: fit Cauchy calibrations and write an MCMCTree constraint tree
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from Bio import Phylo

from . import __version__
from .config_loader import generate_config_template, load_configuration
from .config_models import CauchyConfig, MCMCTreeRConfig, ReadConfig
from .core.cauchy import calibrations_from_vectors, estimate_cauchy, format_number
from .core.constants import (
    DEFAULT_DEBUG_LOG,
    DEFAULT_MCMCTREE_OUTPUT,
    DEFAULT_PDF_OUTPUT,
    PARAMETER_COLUMNS,
)
from .exceptions import MCMCTreeRError
from .io.output_reader import read_mcmctree

logger = logging.getLogger(__name__)


def setup_argument_parser() -> argparse.ArgumentParser:
    """Build the argument parser with its subcommands."""
    parser = argparse.ArgumentParser(
        prog="mcmctreer",
        description="Read MCMCTree output trees and build Cauchy calibrations for MCMCTree.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"mcmctreer {__version__}")
    parser.add_argument("--config", help="YAML or TOML configuration file; runs every section it defines.")
    parser.add_argument("--generate-config", help="Write an example configuration file to this path and exit.")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging to the console and a log file.")

    subparsers = parser.add_subparsers(dest="command")

    read_parser = subparsers.add_parser(
        "read", help="Read MCMCTree FigTree.tre output",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    read_parser.add_argument("input_file", help="FigTree.tre written by MCMCTree")
    read_parser.add_argument("--no-ultrametric", action="store_true",
                             help="Keep terminal branch lengths as read")
    read_parser.add_argument("--tree-out", help="Write the dated tree in Newick format")
    read_parser.add_argument("--table-out", help="Write the node age table (tab separated)")

    cauchy_parser = subparsers.add_parser(
        "cauchy", help="Estimate Cauchy calibrations for MCMCTree",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    cauchy_parser.add_argument("tree_file", help="Fully resolved tree in Newick format")
    cauchy_parser.add_argument("--clade", action="append", required=True, metavar="TAXA",
                               help="Comma separated tip names of a calibrated clade (repeat per clade)")
    cauchy_parser.add_argument("--min-age", type=float, nargs="+", required=True,
                               help="Minimum age per clade")
    cauchy_parser.add_argument("--max-age", type=float, nargs="+", required=True,
                               help="Maximum age per clade")
    cauchy_parser.add_argument("--offset", type=float, nargs="+",
                               help="Offset p, one value or one per clade")
    cauchy_parser.add_argument("--scale", type=float, nargs="+",
                               help="Scale c, one value or one per clade")
    cauchy_parser.add_argument("--min-prob", type=float, nargs="+",
                               help="Left tail probability, one value or one per clade")
    cauchy_parser.add_argument("--max-prob", type=float, nargs="+",
                               help="Probability below the maximum age, one value or one per clade")
    cauchy_parser.add_argument("--fixed-scale", action="store_true",
                               help="Use --scale as given instead of searching for it")
    cauchy_parser.add_argument("--plot", action="store_true",
                               help="Plot approximate densities to PDF")
    cauchy_parser.add_argument("--pdf-output", default=DEFAULT_PDF_OUTPUT,
                               help="PDF file for density plots")
    cauchy_parser.add_argument("--write-mcmctree", action="store_true",
                               help="Write the constraint tree in MCMCTree format")
    cauchy_parser.add_argument("--mcmctree-file", default=DEFAULT_MCMCTREE_OUTPUT,
                               help="Output path of the constraint tree")

    return parser


def configure_logging(debug: bool) -> None:
    """Set up logging configuration."""
    logging.basicConfig(level=logging.INFO, format='%(message)s')

    if debug:
        package_logger = logging.getLogger("mcmctreer")
        package_logger.setLevel(logging.DEBUG)
        debug_log_path = Path.cwd() / DEFAULT_DEBUG_LOG
        fh = logging.FileHandler(debug_log_path, mode='w')
        fh.setLevel(logging.DEBUG)
        formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        fh.setFormatter(formatter)
        package_logger.addHandler(fh)
        logger.info(f"Debug logging enabled. Detailed log: {debug_log_path}")


def run_read(config: ReadConfig) -> None:
    """Read MCMCTree output and write the requested files."""
    output = read_mcmctree(config.input_file, force_ultrametric=config.force_ultrametric)

    if config.tree_output:
        Phylo.write(output.tree, str(config.tree_output), "newick")
        logger.info(f"Dated tree written to: {config.tree_output}")
    if config.table_output:
        output.node_ages.write(config.table_output)
    else:
        print(output.node_ages.to_tsv(), end="")


def run_cauchy(config: CauchyConfig) -> None:
    """Estimate calibrations for every clade in the configuration."""
    phy = Phylo.read(str(config.tree_file), "newick")
    estimate = estimate_cauchy(phy, config.calibrations, plot=config.plot,
                               pdf_output=config.pdf_output,
                               write_mcmctree=config.write_mcmctree,
                               mcmctree_file=config.mcmctree_file)

    print("\t".join(("node",) + PARAMETER_COLUMNS + ("label",)))
    for name, params, label in zip(estimate.row_names, estimate.parameters, estimate.node_labels):
        values = "\t".join(format_number(v) for v in params.as_tuple())
        print(f"{name}\t{values}\t{label}")
    if not config.write_mcmctree:
        print(estimate.mcmctree.to_text(), end="")


def cauchy_config_from_args(args: argparse.Namespace) -> CauchyConfig:
    """Build a CauchyConfig from the cauchy subcommand's arguments."""
    calibrations = calibrations_from_vectors(
        min_age=args.min_age,
        max_age=args.max_age,
        mono_groups=[[name.strip() for name in clade.split(",")] for clade in args.clade],
        scale=args.scale,
        offset=args.offset,
        estimate_scale=not args.fixed_scale,
        min_prob=args.min_prob,
        max_prob=args.max_prob,
    )
    return CauchyConfig(tree_file=args.tree_file, calibrations=calibrations,
                        plot=args.plot, pdf_output=args.pdf_output,
                        write_mcmctree=args.write_mcmctree,
                        mcmctree_file=args.mcmctree_file)


def run_from_config(config: MCMCTreeRConfig) -> None:
    """Run every section present in a configuration file."""
    if config.read is None and config.cauchy is None:
        logger.warning("Configuration defines neither a 'read' nor a 'cauchy' section")
    if config.read is not None:
        run_read(config.read)
    if config.cauchy is not None:
        run_cauchy(config.cauchy)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for mcmctreer."""
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    # Set up logging first
    configure_logging(args.debug)

    if args.generate_config:
        try:
            path = generate_config_template(args.generate_config)
        except OSError as e:
            logger.error(f"Configuration generation failed: {e}")
            return 1
        logger.info(f"Example configuration written to: {path}")
        return 0

    try:
        if args.config:
            config = load_configuration(args.config)
            if config.debug and not args.debug:
                configure_logging(True)
            run_from_config(config)
        elif args.command == "read":
            run_read(ReadConfig(input_file=args.input_file,
                                force_ultrametric=not args.no_ultrametric,
                                tree_output=args.tree_out,
                                table_output=args.table_out))
        elif args.command == "cauchy":
            run_cauchy(cauchy_config_from_args(args))
        else:
            parser.print_help()
            return 1
    except MCMCTreeRError as e:
        logger.error(f"mcmctreer failed: {e}")
        if args.debug:
            import traceback
            logger.debug("Full traceback:\n%s", traceback.format_exc())
        return 1
    except ValueError as e:
        # pydantic ValidationError for options given on the command line
        logger.error(f"Invalid arguments: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
