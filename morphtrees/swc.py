"""
SWC point-cloud format.

Each record is one node: ``id type x y z radius parent``. Columns may be
separated by whitespace or commas. Blank lines and lines starting with ``#``
are skipped. A parent of -1 marks a root; files with several roots load as a
`Forest` (see `morphtrees.table`).
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Union

import numpy as np

from .errors import IndexingError, MorphologyFormatError
from .regions import RegionCatalog
from .table import ROOT_MARKER, NodeTable, table_to_trees
from .tree import Forest, MorphologyTree

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

SWC_COLUMNS = ("id", "type", "x", "y", "z", "radius", "parent")


def parse_swc_lines(
    lines: Iterable[str], name: Optional[str] = None
) -> Union[MorphologyTree, Forest]:
    """Parse SWC records from an iterable of text lines."""
    records: List[List[float]] = []
    line_nos: List[int] = []
    for line_no, line in enumerate(lines, start=1):
        s = line.strip()
        if not s or s.startswith("#"):
            continue
        parts = s.replace(",", " ").split()
        if len(parts) != len(SWC_COLUMNS):
            raise MorphologyFormatError(
                f"Line {line_no}: expected {len(SWC_COLUMNS)} columns, got {len(parts)}"
            )
        try:
            records.append([float(p) for p in parts])
        except ValueError as e:
            raise MorphologyFormatError(f"Line {line_no}: non-numeric value") from e
        line_nos.append(line_no)

    if not records:
        raise MorphologyFormatError("No SWC records found")
    swc = np.asarray(records, dtype=float)
    logger.debug("Read %d SWC records for %s", swc.shape[0], name)

    for col in (0, 6):
        fractional = np.flatnonzero(swc[:, col] != np.round(swc[:, col]))
        if fractional.size:
            row = fractional[0]
            raise IndexingError(
                f"Line {line_nos[row]}: {SWC_COLUMNS[col]} {swc[row, col]:g} is not an integer"
            )

    table = NodeTable(
        ids=swc[:, 0].astype(int),
        labels=swc[:, 1],
        coords=swc[:, 2:5],
        diameters=swc[:, 5] * 2.0,
        parent_ids=swc[:, 6].astype(int),
    )
    return table_to_trees(table, RegionCatalog.from_codes, name)


def parse_swc(
    path: Union[str, Path], name: Optional[str] = None
) -> Union[MorphologyTree, Forest]:
    """Load an SWC file. The tree name defaults to the file stem."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        lines = f.readlines()
    return parse_swc_lines(lines, name if name is not None else path.stem)


def _type_column(tree: MorphologyTree) -> np.ndarray:
    """Numeric region codes when the catalog names are integers, else 1-based indices."""
    try:
        codes = [int(n) for n in tree.catalog.names]
    except ValueError:
        return tree.regions + 1
    return np.asarray(codes, dtype=int)[tree.regions]


def write_swc(tree: MorphologyTree, filepath: Union[str, Path]) -> None:
    """Write one tree to an SWC file.

    Radii are written as half the stored diameters. The type column holds the
    region codes if every catalog name is an integer, otherwise the 1-based
    catalog index (the catalog is listed in the header).
    """
    types = _type_column(tree)
    parents = np.where(tree.parents >= 0, tree.parents + 1, ROOT_MARKER)
    with open(filepath, "w", encoding="utf-8") as f:
        f.write(f"# SWC exported by morphtrees: {tree.name or ''}\n")
        f.write(f"# Date: {datetime.now().isoformat()}\n")
        f.write("# Regions: " + " ".join(tree.catalog.names) + "\n")
        f.write("# Columns: " + " ".join(SWC_COLUMNS) + "\n")
        for i in range(tree.n_nodes):
            x, y, z = tree.coords[i]
            f.write(
                f"{i + 1} {int(types[i])} {x:.17g} {y:.17g} {z:.17g} "
                f"{tree.diameters[i] / 2.0:.17g} {int(parents[i])}\n"
            )
    logger.info("Wrote %d nodes to %s", tree.n_nodes, filepath)
