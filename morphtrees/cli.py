"""
Command-line interface for morphtrees.
"""

import argparse
import logging
import sys

import numpy as np

from . import __version__
from .errors import MorphologyError
from .load import load_tree
from .topology import branch_order
from .tree import iter_trees


def create_parser():
    """Create command-line argument parser."""
    parser = argparse.ArgumentParser(
        description="morphtrees: load neuronal morphologies and report their topology",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("--version", action="version", version=f"morphtrees {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    info_parser = subparsers.add_parser("info", help="Summarize the trees in a morphology file")
    info_parser.add_argument("file", help="Input .swc, .neu or .mtr file")
    info_parser.add_argument(
        "--options", default="", help="Load flags, e.g. '-r' (format default if empty)"
    )

    return parser


def info_command(args):
    """Handle the info command."""
    try:
        result = load_tree(args.file, args.options)
    except (FileNotFoundError, MorphologyError) as e:
        print(f"Error loading {args.file}: {e}", file=sys.stderr)
        return 1
    if result.tree is None:
        print(f"Nothing loaded from {args.file}", file=sys.stderr)
        return 1

    for tree in iter_trees(result.tree):
        bo = branch_order(tree)
        print(f"{tree.name}: {tree.n_nodes} nodes")
        print(f"  regions: {', '.join(tree.catalog.names)}")
        print(f"  max branch order: {int(bo.max())}")
        print(f"  nodes per order: {np.bincount(bo).tolist()}")
    return 0


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "info":
        return info_command(args)
    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
