"""
Flat node tables and their conversion into trees.

Both text formats end up as one table with a row per node:
``id, region, x, y, z, diameter, parent_id`` where ids are 1-based and a
parent id of `ROOT_MARKER` starts a new tree. `table_to_trees` splits the
table at the root markers, re-indexes every segment to start at 1 and builds
one validated `MorphologyTree` per segment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .errors import IndexingError
from .regions import RegionCatalog
from .tree import Forest, MorphologyTree

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

ROOT_MARKER = -1


@dataclass
class NodeTable:
    """
    Column-wise node records in file order.

    Attributes:
        ids: (N,) 1-based node ids as written in the file.
        labels: (N,) region labels (numeric codes or names).
        coords: (N, 3) positions.
        diameters: (N,) diameters.
        parent_ids: (N,) 1-based parent ids, `ROOT_MARKER` for roots.
    """

    ids: np.ndarray
    labels: np.ndarray
    coords: np.ndarray
    diameters: np.ndarray
    parent_ids: np.ndarray

    def __len__(self) -> int:
        return int(self.ids.shape[0])

    def rows(self, start: int, stop: int) -> "NodeTable":
        return NodeTable(
            self.ids[start:stop],
            self.labels[start:stop],
            self.coords[start:stop],
            self.diameters[start:stop],
            self.parent_ids[start:stop],
        )


Interner = Callable[[Sequence], Tuple[RegionCatalog, np.ndarray]]


def segment_bounds(parent_ids: np.ndarray) -> List[Tuple[int, int]]:
    """Row ranges ``[start, stop)`` of the trees encoded in a table.

    With at most one root marker the whole table is a single segment.
    Otherwise every marker opens a segment that runs to the next marker (or
    the end of the table).
    """
    n = int(parent_ids.shape[0])
    markers = np.flatnonzero(parent_ids == ROOT_MARKER)
    if markers.size <= 1:
        return [(0, n)]
    if markers[0] > 0:
        logger.warning("Dropping %d rows before the first root marker", int(markers[0]))
    stops = np.append(markers[1:], n)
    return [(int(a), int(b)) for a, b in zip(markers, stops)]


def _segment_to_tree(
    seg: NodeTable,
    offset: int,
    catalog: RegionCatalog,
    regions: np.ndarray,
    name: Optional[str],
) -> MorphologyTree:
    n = len(seg)
    local_ids = seg.ids - offset
    if not np.array_equal(local_ids, np.arange(1, n + 1)):
        bad = int(np.flatnonzero(local_ids != np.arange(1, n + 1))[0])
        raise IndexingError(
            f"Node ids must run 1..{n}; row {bad + 1} of segment has id {int(seg.ids[bad])}"
            + (f" (offset {offset})" if offset else "")
        )
    parent_ids = seg.parent_ids - offset
    parent_ids[0] = ROOT_MARKER
    return MorphologyTree.from_parent_ids(
        parent_ids, seg.coords, seg.diameters, regions, catalog, name
    )


def table_to_trees(
    table: NodeTable, intern: Interner, name: Optional[str] = None
) -> Union[MorphologyTree, Forest]:
    """Split `table` at its root markers and build the trees.

    Labels are interned once for the whole table; each tree of a forest gets
    the subset of that catalog its own nodes use. Segments of a single node
    are dropped. One remaining segment yields a `MorphologyTree`, several
    yield a `Forest` whose trees are named ``<name>_<k>`` with `k` the 1-based
    root-marker counter.
    """
    if len(table) == 0:
        raise IndexingError("No node records found")
    catalog, regions = intern(table.labels)
    bounds = segment_bounds(table.parent_ids)
    if len(bounds) == 1:
        start, stop = bounds[0]
        seg_catalog, seg_regions = catalog.subset(regions[start:stop])
        return _segment_to_tree(table.rows(start, stop), start, seg_catalog, seg_regions, name)

    trees: List[MorphologyTree] = []
    for k, (start, stop) in enumerate(bounds, start=1):
        if stop - start <= 1:
            logger.debug("Dropping single-node segment %d at row %d", k, start + 1)
            continue
        tree_name = f"{name}_{k}" if name is not None else None
        seg_catalog, seg_regions = catalog.subset(regions[start:stop])
        trees.append(
            _segment_to_tree(table.rows(start, stop), start, seg_catalog, seg_regions, tree_name)
        )
    logger.info("Split %s into %d trees", name, len(trees))
    return Forest(trees, name=name)
