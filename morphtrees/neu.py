"""
NEURON transfer format (`.neu`).

The file is read as a stream of whitespace separated tokens:

1. 16 header tokens (ignored).
2. The number of sections, followed by one topology record per section::

       label own_end parent_label parent_end n_points

3. 3 separator tokens (ignored) and the total number of points.
4. ``x y z diameter`` for every point, section by section in topology order.

Every section must attach to its parent with its own 0 end. The first point
of a section hangs off the first point of the parent section when
``parent_end`` is 0 and off its last point otherwise. A section whose parent
label matches no section is a root. Region names are the section labels with
any array index folded away (``dend[3]`` -> ``dend[]``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from .errors import MalformedTopologyError, MorphologyFormatError
from .regions import RegionCatalog, fold_label
from .table import ROOT_MARKER, NodeTable, table_to_trees
from .tree import Forest, MorphologyTree

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

HEADER_TOKENS = 16
SEPARATOR_TOKENS = 3
TOPOLOGY_FIELDS = 5
GEOMETRY_FIELDS = 4


@dataclass
class Section:
    """One topology record."""

    label: str
    own_end: float
    parent_label: str
    parent_end: float
    n_points: int


def _number(token: str, what: str) -> float:
    try:
        return float(token)
    except ValueError:
        raise MorphologyFormatError(f"Expected a number for {what}, got '{token}'") from None


def read_topology(tokens: Sequence[str]) -> tuple:
    """Parse the header and topology block.

    Returns the sections and the index of the first token after the block.
    """
    pos = HEADER_TOKENS
    if len(tokens) <= pos:
        raise MorphologyFormatError("File ends inside the header")
    nsec = int(_number(tokens[pos], "section count"))
    pos += 1
    end = pos + TOPOLOGY_FIELDS * nsec
    if nsec < 1 or len(tokens) < end:
        raise MorphologyFormatError(f"Topology block of {nsec} sections is truncated or empty")

    sections: List[Section] = []
    for k in range(nsec):
        start = pos + TOPOLOGY_FIELDS * k
        label, own, parent, parent_end, count = tokens[start : start + TOPOLOGY_FIELDS]
        sections.append(
            Section(
                label=label,
                own_end=_number(own, f"own end of {label}"),
                parent_label=parent,
                parent_end=_number(parent_end, f"parent end of {label}"),
                n_points=int(_number(count, f"point count of {label}")),
            )
        )
    return sections, end


def check_topology(sections: Sequence[Section]) -> None:
    detached = [s.label for s in sections if s.own_end != 0]
    if detached:
        raise MalformedTopologyError(
            "Every section must attach to its parent at its 0 end; "
            f"offending sections: {', '.join(detached)}"
        )
    empty = [s.label for s in sections if s.n_points < 1]
    if empty:
        raise MalformedTopologyError(f"Sections without points: {', '.join(empty)}")


def resolve_parents(sections: Sequence[Section]) -> np.ndarray:
    """Index of the parent section of each section, -1 for root sections."""
    first = {}
    for k, s in enumerate(sections):
        first.setdefault(s.label, k)
    return np.array([first.get(s.parent_label, -1) for s in sections], dtype=int)


def flatten_sections(sections: Sequence[Section], parent_section: np.ndarray) -> np.ndarray:
    """1-based parent id of every point, sections laid out one after the other."""
    counts = np.array([s.n_points for s in sections], dtype=int)
    starts = np.concatenate([[0], np.cumsum(counts)[:-1]])
    lasts = starts + counts - 1

    # by default every point hangs off the previous one
    parent_ids = np.arange(int(counts.sum()), dtype=int)
    for k, s in enumerate(sections):
        d = parent_section[k]
        if d < 0:
            parent_ids[starts[k]] = ROOT_MARKER
        elif s.parent_end == 0:
            parent_ids[starts[k]] = starts[d] + 1
        else:
            parent_ids[starts[k]] = lasts[d] + 1
    return parent_ids


def parse_neu_text(text: str, name: Optional[str] = None) -> Union[MorphologyTree, Forest]:
    """Parse the content of a `.neu` file."""
    tokens = text.split()
    sections, pos = read_topology(tokens)
    check_topology(sections)
    logger.debug("Read %d sections for %s", len(sections), name)

    total = sum(s.n_points for s in sections)
    pos += SEPARATOR_TOKENS
    if len(tokens) <= pos:
        raise MorphologyFormatError("File ends before the geometry block")
    declared = int(_number(tokens[pos], "point total"))
    if declared != total:
        logger.warning(
            "%s declares %d points, topology lists %d; using the topology", name, declared, total
        )
    geo_tokens = tokens[pos + 1 :]
    if len(geo_tokens) != GEOMETRY_FIELDS * total:
        raise MorphologyFormatError(
            f"Expected {total} geometry rows of {GEOMETRY_FIELDS} values, "
            f"got {len(geo_tokens)} values"
        )
    try:
        geo = np.asarray(geo_tokens, dtype=float).reshape(total, GEOMETRY_FIELDS)
    except ValueError as e:
        raise MorphologyFormatError("Non-numeric value in geometry block") from e

    parent_ids = flatten_sections(sections, resolve_parents(sections))
    labels = np.repeat(
        np.array([fold_label(s.label) for s in sections], dtype=object),
        [s.n_points for s in sections],
    )
    table = NodeTable(
        ids=np.arange(1, total + 1),
        labels=labels,
        coords=geo[:, :3],
        diameters=geo[:, 3],
        parent_ids=parent_ids,
    )
    return table_to_trees(table, RegionCatalog.from_labels, name)


def parse_neu(path: Union[str, Path], name: Optional[str] = None) -> Union[MorphologyTree, Forest]:
    """Load a `.neu` file. The tree name defaults to the file stem."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        text = f.read()
    return parse_neu_text(text, name if name is not None else path.stem)
