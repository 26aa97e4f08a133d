"""
Tests for `morphtrees.load.load_tree`: extension dispatch, options and the
injected collaborators.
"""

import os
import shutil
import warnings

import numpy as np
import pytest

from morphtrees import data_path
from morphtrees.errors import MalformedTopologyError, UnsupportedFormatWarning
from morphtrees.load import LoadOptions, LoadResult, load_tree
from morphtrees.mtr import save_mtr
from morphtrees.registry import TreeRegistry
from morphtrees.swc import parse_swc
from morphtrees.tree import Forest, MorphologyTree


@pytest.fixture
def sample_swc(tmp_path):
    p = tmp_path / "sample.swc"
    shutil.copy(data_path("sample.swc"), p)
    return p


@pytest.fixture
def forest_swc(tmp_path):
    p = tmp_path / "two.swc"
    p.write_text("1 1 0 0 0 1 -1\n2 1 0 0 1 1 1\n3 1 5 0 0 1 -1\n4 1 5 0 1 1 3\n")
    return p


class Recorder:
    """Collaborator stub that records what it was called with."""

    def __init__(self):
        self.calls = []

    def __call__(self, value):
        self.calls.append(value)
        return value


class TestLoadOptions:
    def test_defaults_per_format(self):
        assert LoadOptions.parse(None, ".swc") == LoadOptions(repair=True, show=False)
        assert LoadOptions.parse("", ".neu") == LoadOptions(repair=True, show=False)
        assert LoadOptions.parse(None, ".mtr") == LoadOptions(repair=False, show=False)

    def test_flags(self):
        assert LoadOptions.parse("-s", ".swc") == LoadOptions(repair=False, show=True)
        assert LoadOptions.parse("-r -s", ".mtr") == LoadOptions(repair=True, show=True)
        assert LoadOptions.parse("-r-s", ".mtr") == LoadOptions(repair=True, show=True)


class TestLoadTree:
    def test_swc(self, sample_swc):
        result = load_tree(str(sample_swc))
        assert isinstance(result, LoadResult)
        assert isinstance(result.tree, MorphologyTree)
        assert result.tree.name == "sample"
        assert result.name == str(sample_swc)
        assert result.path == ""

    def test_neu(self):
        tree, name, path = load_tree(str(data_path("sample.neu")))
        assert tree.n_nodes == 9
        assert name.endswith("sample.neu")

    def test_mtr(self, tmp_path):
        out = tmp_path / "stored.mtr"
        save_mtr(out, parse_swc(data_path("sample.swc")))
        tree, _, _ = load_tree(str(out))
        assert tree.n_nodes == 8

    def test_uppercase_extension(self, tmp_path):
        p = tmp_path / "CELL.SWC"
        shutil.copy(data_path("sample.swc"), p)
        assert load_tree(str(p)).tree.n_nodes == 8

    def test_unsupported_extension(self):
        with pytest.warns(UnsupportedFormatWarning):
            result = load_tree("sample.xyz")
        assert result == LoadResult(None, "sample.xyz", "")

    def test_unsupported_extension_does_not_touch_registry(self):
        registry = TreeRegistry()
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UnsupportedFormatWarning)
            load_tree("sample.xyz", registry=registry)
        assert len(registry) == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_tree(str(tmp_path / "missing.swc"))

    def test_malformed_file_raises(self, tmp_path):
        p = tmp_path / "bad.neu"
        p.write_text(
            "a b c d e f g h i j k l m n o p\n2\n"
            "soma 0 none 0 1\ndend 1 soma 1 1\n"
            "geometry section follows\n2\n0 0 0 1\n0 1 0 1\n"
        )
        with pytest.raises(MalformedTopologyError):
            load_tree(str(p))


class TestCollaborators:
    def test_repair_runs_by_default_for_text_formats(self, sample_swc):
        repair = Recorder()
        load_tree(str(sample_swc), repair=repair)
        assert len(repair.calls) == 1

    def test_repair_result_replaces_tree(self, sample_swc):
        def shift(tree):
            tree = tree.copy()
            tree.coords = tree.coords + 1.0
            return tree

        tree = load_tree(str(sample_swc), repair=shift).tree
        np.testing.assert_array_almost_equal(tree.coords[0], [1.0, 1.0, 1.0])

    def test_repair_off_by_default_for_mtr(self, tmp_path):
        out = tmp_path / "stored.mtr"
        save_mtr(out, parse_swc(data_path("sample.swc")))
        repair = Recorder()
        load_tree(str(out), repair=repair)
        assert repair.calls == []
        load_tree(str(out), "-r", repair=repair)
        assert len(repair.calls) == 1

    def test_repair_applies_to_every_tree(self, forest_swc):
        repair = Recorder()
        result = load_tree(str(forest_swc), repair=repair)
        assert isinstance(result.tree, Forest)
        assert len(repair.calls) == 2

    def test_explicit_options_disable_repair(self, sample_swc):
        repair = Recorder()
        load_tree(str(sample_swc), "-s", repair=repair)
        assert repair.calls == []

    def test_show(self, sample_swc):
        show = Recorder()
        load_tree(str(sample_swc), show=show)
        assert show.calls == []
        result = load_tree(str(sample_swc), "-s", show=show)
        assert show.calls == [result.tree]

    def test_missing_collaborators_are_skipped(self, sample_swc):
        result = load_tree(str(sample_swc), "-r -s")
        assert result.tree.n_nodes == 8

    def test_registry(self, sample_swc, forest_swc):
        registry = TreeRegistry()
        first = load_tree(str(sample_swc), registry=registry).tree
        second = load_tree(str(forest_swc), registry=registry).tree
        assert len(registry) == 2
        assert registry[0] is first
        assert registry.last() is second
        assert [t.n_nodes for t in registry.trees()] == [8, 2, 2]

    def test_registry_rejects_other_values(self):
        with pytest.raises(TypeError):
            TreeRegistry().append("not a tree")

    def test_select_file(self, sample_swc):
        def select():
            return sample_swc.name, str(sample_swc.parent)

        result = load_tree(select_file=select)
        assert result.name == "sample.swc"
        assert result.path == str(sample_swc.parent)
        assert os.path.join(result.path, result.name) == str(sample_swc)
        assert result.tree.n_nodes == 8

    def test_select_file_cancelled(self):
        assert load_tree(select_file=lambda: None) == LoadResult(None, None, None)

    def test_no_name_and_no_selector(self):
        assert load_tree() == LoadResult(None, None, None)
