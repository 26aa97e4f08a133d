"""
Topological metrics over a `MorphologyTree`.

Branch order counts the branch points strictly between a node and the root.
It is computed with one top-down pass from the root, carrying the running
count from each node to its children. This gives the same values as summing
powers of the weighted child -> parent operator (weight 2 on branch points,
1 elsewhere) and taking log2 of the accumulated product.
"""

from __future__ import annotations

import logging
from enum import IntEnum
from typing import Optional, Sequence

import networkx as nx
import numpy as np

from .tree import MorphologyTree

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class NodeType(IntEnum):
    """Structural role of a node; values match the branch-point weights."""

    TERMINAL = 0
    CONTINUATION = 1
    BRANCH = 2


def type_n(tree: MorphologyTree) -> np.ndarray:
    """Classify every node by its number of children.

    Returns an int array of `NodeType` values: 0 for terminals, 1 for
    continuation points, 2 for branch points (two or more children).
    """
    return np.minimum(tree.child_counts(), int(NodeType.BRANCH))


def branch_order(
    tree: MorphologyTree, node_types: Optional[Sequence[int]] = None
) -> np.ndarray:
    """Branch order of every node, 0 at the root.

    Args:
        tree: The tree to analyse.
        node_types: Per-node classification (`NodeType` values). Nodes typed
            `NodeType.BRANCH` raise the order of their descendants by one.
            Defaults to `type_n(tree)`.

    Returns:
        (N,) int array of non-negative branch orders.

    Raises:
        InvalidTreeError: `tree` is not a single rooted tree, as can happen
            with unvalidated `.mtr` content.
    """
    tree.validate()
    types = type_n(tree) if node_types is None else np.asarray(node_types, dtype=int)
    if types.shape != (tree.n_nodes,):
        raise ValueError(
            f"node_types has {types.size} entries, tree has {tree.n_nodes} nodes"
        )
    is_branch = types == int(NodeType.BRANCH)

    bo = np.zeros(tree.n_nodes, dtype=int)
    for parent, child in nx.bfs_edges(tree.to_networkx(), 0):
        bo[child] = bo[parent] + int(is_branch[parent])
    logger.debug(
        "Branch order of %s: %d nodes, max order %d", tree.name, tree.n_nodes, bo.max()
    )
    return bo
