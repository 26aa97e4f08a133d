"""
morphtrees: neuronal morphologies as rooted trees

Loads reconstructions from SWC, NEURON `.neu` and native `.mtr` files into a
canonical tree model (`MorphologyTree`, or a `Forest` when a file holds several
trees) and computes topological metrics such as branch order.
"""

__version__ = "0.1.0"
__author__ = "Jordan M. R. Fox"
__email__ = "jordanmrfox@gmail.com"

from .errors import (
    IndexingError,
    InvalidTreeError,
    MalformedTopologyError,
    MorphologyError,
    MorphologyFormatError,
    UnsupportedFormatWarning,
)

# Loading
from .load import FORMATS, LoadOptions, LoadResult, load_tree
from .mtr import load_mtr, save_mtr
from .neu import parse_neu, parse_neu_text

# Utility functions
from .path import data_path
from .regions import RegionCatalog, fold_label
from .registry import TreeRegistry
from .swc import parse_swc, parse_swc_lines, write_swc

# Topology
from .topology import NodeType, branch_order, type_n

# Tree model
from .tree import Forest, MorphologyTree, apply_to_trees, iter_trees

__all__ = [
    # Tree model
    "MorphologyTree",
    "Forest",
    "RegionCatalog",
    "fold_label",
    "apply_to_trees",
    "iter_trees",
    # Loading
    "load_tree",
    "LoadOptions",
    "LoadResult",
    "FORMATS",
    "parse_swc",
    "parse_swc_lines",
    "write_swc",
    "parse_neu",
    "parse_neu_text",
    "load_mtr",
    "save_mtr",
    "TreeRegistry",
    # Topology
    "NodeType",
    "type_n",
    "branch_order",
    # Errors
    "MorphologyError",
    "MorphologyFormatError",
    "MalformedTopologyError",
    "IndexingError",
    "InvalidTreeError",
    "UnsupportedFormatWarning",
    # Path functions
    "data_path",
]
