"""
Tests for the NEURON transfer format reader in `morphtrees/neu.py`.
"""

import numpy as np
import pytest

from morphtrees import data_path
from morphtrees.errors import IndexingError, MalformedTopologyError, MorphologyFormatError
from morphtrees.neu import (
    Section,
    flatten_sections,
    parse_neu,
    parse_neu_text,
    resolve_parents,
)
from morphtrees.topology import branch_order
from morphtrees.tree import Forest, MorphologyTree

HEADER = (
    "NEURON transfer format written by neu_tree.hoc\n"
    "cell test_cell with N sections\n"
    "topology: name end parent end\n"
)
SEPARATOR = "geometry section follows\n"


def make_neu(topology, points, total=None):
    """Assemble a .neu text from topology records and (x, y, z, d) rows."""
    lines = [HEADER, f"{len(topology)}\n"]
    lines += [" ".join(str(v) for v in rec) + "\n" for rec in topology]
    lines += [SEPARATOR, f"{len(points) if total is None else total}\n"]
    lines += [" ".join(str(v) for v in p) + "\n" for p in points]
    return "".join(lines)


def _points(n, d=1.0):
    return [(0.0, float(i), 0.0, d) for i in range(n)]


# ---- Sample file ------------------------------------------------------------


def test_sample_file():
    tree = parse_neu(data_path("sample.neu"))
    assert isinstance(tree, MorphologyTree)
    assert tree.name == "sample"
    assert tree.n_nodes == 9
    assert tree.parent_of() == {2: 1, 3: 2, 4: 3, 5: 4, 6: 5, 7: 6, 8: 5, 9: 8}
    np.testing.assert_array_almost_equal(tree.diameters[:3], [10.0, 10.0, 2.0])
    np.testing.assert_array_equal(branch_order(tree), [0, 0, 0, 0, 0, 1, 1, 1, 1])


def test_sample_regions_are_folded():
    tree = parse_neu(data_path("sample.neu"))
    assert tree.catalog.names == ["dend[]", "soma"]
    assert tree.region_names() == ["soma"] * 2 + ["dend[]"] * 7


# ---- Attachment rules -------------------------------------------------------


def test_attach_to_near_end_of_parent():
    text = make_neu(
        [("soma", 0, "none", 0, 3), ("axon", 0, "soma", 0, 2), ("dend", 0, "soma", 1, 2)],
        _points(7),
    )
    tree = parse_neu_text(text)
    # axon hangs off the first soma point, dend off the last one
    assert tree.parent_of() == {2: 1, 3: 2, 4: 1, 5: 4, 6: 3, 7: 6}


def test_parent_resolved_by_label_not_position():
    sections = [
        Section("soma", 0, "root", 0, 1),
        Section("dend[0]", 0, "dend[1]", 1, 1),
        Section("dend[1]", 0, "soma", 1, 2),
    ]
    np.testing.assert_array_equal(resolve_parents(sections), [-1, 2, 0])
    np.testing.assert_array_equal(flatten_sections(sections, resolve_parents(sections)), [-1, 4, 1, 3])


def test_flatten_is_a_valid_tree_when_parents_come_later():
    text = make_neu(
        [("soma", 0, "root", 0, 1), ("dend[0]", 0, "dend[1]", 1, 1), ("dend[1]", 0, "soma", 1, 2)],
        _points(4),
    )
    tree = parse_neu_text(text)
    assert tree.parent_of() == {2: 4, 3: 1, 4: 3}
    assert tree.catalog.names == ["dend[]", "soma"]


def test_nonzero_own_end_is_rejected():
    text = make_neu(
        [("soma", 0, "none", 0, 2), ("dend[0]", 1, "soma", 1, 2)],
        _points(4),
    )
    with pytest.raises(MalformedTopologyError, match="dend\\[0\\]"):
        parse_neu_text(text)


def test_empty_section_is_rejected():
    text = make_neu([("soma", 0, "none", 0, 2), ("dend", 0, "soma", 1, 0)], _points(2))
    with pytest.raises(MalformedTopologyError):
        parse_neu_text(text)


# ---- Geometry block ---------------------------------------------------------


def test_geometry_count_mismatch():
    text = make_neu([("soma", 0, "none", 0, 3)], _points(2))
    with pytest.raises(MorphologyFormatError):
        parse_neu_text(text)


def test_declared_total_mismatch_is_only_logged(caplog):
    text = make_neu([("soma", 0, "none", 0, 2)], _points(2), total=5)
    tree = parse_neu_text(text, name="cell")
    assert tree.n_nodes == 2
    assert "declares 5 points" in caplog.text


def test_truncated_header():
    with pytest.raises(MorphologyFormatError):
        parse_neu_text("NEURON transfer format")


def test_truncated_topology():
    with pytest.raises(MorphologyFormatError):
        parse_neu_text(HEADER + "3\nsoma 0 none 0 2\n")


# ---- Forests ----------------------------------------------------------------


def test_two_roots_make_a_forest():
    text = make_neu(
        [
            ("soma", 0, "none", 0, 2),
            ("dend[0]", 0, "soma", 1, 2),
            ("axon", 0, "none", 0, 2),
            ("axon_branch", 0, "axon", 1, 1),
            ("dot", 0, "none", 0, 1),
        ],
        _points(8),
    )
    forest = parse_neu_text(text, name="cells")
    assert isinstance(forest, Forest)
    # the single-point "dot" section is dropped
    assert [t.n_nodes for t in forest] == [4, 3]
    assert [t.name for t in forest] == ["cells_1", "cells_2"]
    assert forest[0].catalog.names == ["dend[]", "soma"]
    assert forest[1].catalog.names == ["axon", "axon_branch"]
    assert forest[1].parent_of() == {2: 1, 3: 2}


def test_forest_parent_outside_segment():
    text = make_neu(
        [("soma", 0, "none", 0, 2), ("axon", 0, "none", 0, 2), ("dend", 0, "soma", 1, 2)],
        _points(6),
    )
    with pytest.raises(IndexingError):
        parse_neu_text(text)
