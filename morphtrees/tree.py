"""
Canonical tree model.

A `MorphologyTree` is one connected rooted tree: per-node coordinates,
diameters and region indices, plus a parent index per node. Node rows are
0-based; the ids used by the text formats are 1-based (row ``i`` is node
``i + 1``). The root is always row 0 and is the only node with parent -1.

Files that hold several disjoint trees load as a `Forest`, an ordered
sequence of trees (or, for `.mtr` containers, of forests). Forests nest at
most `MAX_FOREST_DEPTH` levels.

Adjacency follows the child -> parent convention: ``dA[child, parent]`` is
True for every non-root node.
"""

from __future__ import annotations

import collections.abc
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Union

import networkx as nx
import numpy as np
import scipy.sparse as sp

from .errors import IndexingError, InvalidTreeError
from .regions import RegionCatalog

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

MAX_FOREST_DEPTH = 2

# ============================================================================
# Trees
# ============================================================================


@dataclass
class MorphologyTree:
    """
    One rooted tree.

    Attributes:
        parents: (N,) int array; parent row of each node, -1 for the root (row 0).
        coords: (N, 3) float array of x, y, z positions.
        diameters: (N,) float array of local diameters.
        regions: (N,) int array of indices into `catalog`.
        catalog: Region names referenced by `regions`.
        name: Optional tree name (usually derived from the file name).
    """

    parents: np.ndarray
    coords: np.ndarray
    diameters: np.ndarray
    regions: np.ndarray
    catalog: RegionCatalog
    name: Optional[str] = None

    def __post_init__(self):
        self.parents = np.asarray(self.parents, dtype=int).reshape(-1)
        self.coords = np.asarray(self.coords, dtype=float).reshape(-1, 3)
        self.diameters = np.asarray(self.diameters, dtype=float).reshape(-1)
        self.regions = np.asarray(self.regions, dtype=int).reshape(-1)

    # ----------------------------- Constructors -----------------------------
    @classmethod
    def from_parent_ids(
        cls,
        parent_ids: Sequence[int],
        coords: np.ndarray,
        diameters: np.ndarray,
        regions: np.ndarray,
        catalog: RegionCatalog,
        name: Optional[str] = None,
    ) -> "MorphologyTree":
        """Build and validate a tree from 1-based parent ids.

        ``parent_ids[0]`` is ignored (the first node is the root); every other
        entry must be a node id in 1..N.
        """
        pid = np.asarray(parent_ids, dtype=int).reshape(-1)
        n = pid.shape[0]
        if n == 0:
            raise InvalidTreeError("A tree needs at least one node")
        parents = pid - 1
        parents[0] = -1
        bad = np.flatnonzero((parents[1:] < 0) | (parents[1:] >= n)) + 1
        if bad.size:
            i = int(bad[0])
            raise IndexingError(
                f"Node {i + 1} references parent {int(pid[i])} outside 1..{n}"
            )
        tree = cls(parents, coords, diameters, regions, catalog, name)
        tree.validate()
        return tree

    @classmethod
    def from_adjacency(
        cls,
        dA,
        coords: np.ndarray,
        diameters: np.ndarray,
        regions: np.ndarray,
        catalog: RegionCatalog,
        name: Optional[str] = None,
    ) -> "MorphologyTree":
        """Build a tree from a child -> parent adjacency matrix.

        No validation is done beyond the matrix being square; callers that do
        not trust the source should call `validate()`.
        """
        A = sp.coo_matrix(dA)
        n = A.shape[0]
        if A.shape != (n, n):
            raise InvalidTreeError(f"Adjacency must be square, got {A.shape}")
        parents = np.full(n, -1, dtype=int)
        mask = A.data != 0
        parents[A.row[mask]] = A.col[mask]
        return cls(parents, coords, diameters, regions, catalog, name)

    # ----------------------------- Properties -------------------------------
    @property
    def n_nodes(self) -> int:
        return int(self.parents.shape[0])

    @property
    def x(self) -> np.ndarray:
        return self.coords[:, 0]

    @property
    def y(self) -> np.ndarray:
        return self.coords[:, 1]

    @property
    def z(self) -> np.ndarray:
        return self.coords[:, 2]

    @property
    def n_edges(self) -> int:
        return int(np.count_nonzero(self.parents >= 0))

    @property
    def dA(self) -> sp.csr_matrix:
        """Directed adjacency, ``dA[child, parent] = True``."""
        n = self.n_nodes
        child = np.flatnonzero(self.parents >= 0)
        data = np.ones(child.shape[0], dtype=bool)
        return sp.csr_matrix((data, (child, self.parents[child])), shape=(n, n))

    def region_names(self) -> List[str]:
        """Region name of every node."""
        return [self.catalog.name_of(r) for r in self.regions]

    def parent_of(self) -> Dict[int, int]:
        """Mapping of 1-based node id to 1-based parent id (root excluded)."""
        child = np.flatnonzero(self.parents >= 0)
        return {int(c) + 1: int(self.parents[c]) + 1 for c in child}

    def child_counts(self) -> np.ndarray:
        counts = np.zeros(self.n_nodes, dtype=int)
        np.add.at(counts, self.parents[self.parents >= 0], 1)
        return counts

    def to_networkx(self) -> nx.DiGraph:
        """Directed graph with parent -> child edges and per-node attributes."""
        G = nx.DiGraph(name=self.name)
        G.add_nodes_from(
            (
                i,
                dict(
                    x=float(self.coords[i, 0]),
                    y=float(self.coords[i, 1]),
                    z=float(self.coords[i, 2]),
                    diameter=float(self.diameters[i]),
                    region=int(self.regions[i]),
                ),
            )
            for i in range(self.n_nodes)
        )
        for c in np.flatnonzero(self.parents >= 0):
            G.add_edge(int(self.parents[c]), int(c))
        return G

    # ----------------------------- Validation -------------------------------
    def validate(self) -> None:
        """Check the tree invariants, raising on the first violation."""
        n = self.n_nodes
        if n == 0:
            raise InvalidTreeError("A tree needs at least one node")
        for label, arr in (
            ("coords", self.coords),
            ("diameters", self.diameters),
            ("regions", self.regions),
        ):
            if arr.shape[0] != n:
                raise InvalidTreeError(f"{label} has {arr.shape[0]} rows for {n} nodes")

        if np.any(self.parents >= n) or np.any(self.parents < -1):
            raise IndexingError(f"Parent index outside 1..{n}")
        roots = np.flatnonzero(self.parents < 0)
        if roots.size != 1 or roots[0] != 0:
            raise InvalidTreeError(
                f"Expected node 1 to be the only root, found roots {(roots + 1).tolist()}"
            )
        if np.any(self.diameters < 0):
            raise InvalidTreeError("Negative diameter")
        if self.regions.min() < 0 or self.regions.max() >= len(self.catalog):
            raise InvalidTreeError(
                f"Region index outside catalog of {len(self.catalog)} regions"
            )

        if not nx.is_arborescence(self.to_networkx()):
            raise InvalidTreeError("Parent links contain a cycle or detached nodes")

    def copy(self) -> "MorphologyTree":
        return MorphologyTree(
            self.parents.copy(),
            self.coords.copy(),
            self.diameters.copy(),
            self.regions.copy(),
            RegionCatalog(self.catalog),
            self.name,
        )

    def __repr__(self) -> str:
        return (
            f"MorphologyTree(name={self.name!r}, n_nodes={self.n_nodes}, "
            f"regions={self.catalog.names!r})"
        )


# ============================================================================
# Forests
# ============================================================================

TreeOrForest = Union[MorphologyTree, "Forest"]


class Forest(collections.abc.Sequence):
    """
    Ordered collection of independent trees, or of forests (one level deep).
    """

    def __init__(self, items: Sequence[TreeOrForest], name: Optional[str] = None):
        self._items: List[TreeOrForest] = []
        for item in items:
            if not isinstance(item, (MorphologyTree, Forest)):
                raise TypeError(f"Forest items must be trees or forests, got {type(item).__name__}")
            self._items.append(item)
        self.name = name
        if self.depth > MAX_FOREST_DEPTH:
            raise InvalidTreeError(
                f"Forest nests {self.depth} levels deep, at most {MAX_FOREST_DEPTH} allowed"
            )

    @property
    def depth(self) -> int:
        sub = [item.depth for item in self._items if isinstance(item, Forest)]
        return 1 + max(sub, default=0)

    def iter_trees(self) -> Iterator[MorphologyTree]:
        for item in self._items:
            if isinstance(item, Forest):
                yield from item.iter_trees()
            else:
                yield item

    def map_trees(self, fn: Callable[[MorphologyTree], MorphologyTree]) -> "Forest":
        return Forest(
            [item.map_trees(fn) if isinstance(item, Forest) else fn(item) for item in self._items],
            name=self.name,
        )

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"Forest(name={self.name!r}, items={self._items!r})"


def apply_to_trees(
    result: TreeOrForest, fn: Callable[[MorphologyTree], MorphologyTree]
) -> TreeOrForest:
    """Apply `fn` to a single tree or to every tree of a forest."""
    if isinstance(result, Forest):
        return result.map_trees(fn)
    return fn(result)


def iter_trees(result: Optional[TreeOrForest]) -> Iterator[MorphologyTree]:
    if result is None:
        return
    if isinstance(result, Forest):
        yield from result.iter_trees()
    else:
        yield result
