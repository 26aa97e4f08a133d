"""
Native `.mtr` containers.

An `.mtr` file is a MATLAB workspace holding a variable ``tree``. It is either
a single tree struct, a cell array of tree structs, or a cell array of such
cell arrays. Tree structs carry the fields ``dA`` (sparse child -> parent
adjacency), ``X``, ``Y``, ``Z``, ``D``, ``R`` (1-based region indices),
``rnames`` and optionally ``name``.

Stored trees are trusted: they are converted but not validated, and the
stored nesting (including one-element cells) is kept.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import numpy as np
import scipy.io as sio
import scipy.sparse as sp

from .errors import MorphologyFormatError
from .regions import RegionCatalog
from .tree import Forest, MorphologyTree

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

MTR_VARIABLE = "tree"


def _column(value: Any, dtype=float) -> np.ndarray:
    return np.atleast_1d(np.asarray(value, dtype=dtype)).reshape(-1)


def _text(value: Any) -> str:
    """Text of a MATLAB char array (loaded as a 1-element string array) or str."""
    arr = np.asarray(value).reshape(-1)
    if arr.size == 0:
        return ""
    return str(arr[0])


def _is_struct(value: Any) -> bool:
    return hasattr(value, "_fieldnames")


def _struct_to_tree(s: Any, default_name: Optional[str]) -> MorphologyTree:
    fields = set(s._fieldnames)
    missing = {"dA", "X", "Y", "Z", "D"} - fields
    if missing:
        raise MorphologyFormatError(f"Tree struct is missing fields: {sorted(missing)}")

    coords = np.column_stack([_column(s.X), _column(s.Y), _column(s.Z)])
    n = coords.shape[0]
    if "R" in fields:
        regions = _column(s.R, dtype=int) - 1
    else:
        regions = np.zeros(n, dtype=int)
    if "rnames" in fields:
        catalog = RegionCatalog(_text(v) for v in np.asarray(s.rnames, dtype=object).reshape(-1))
    else:
        catalog = RegionCatalog(str(i + 1) for i in range(int(regions.max(initial=0)) + 1))
    name = _text(s.name) if "name" in fields else default_name
    return MorphologyTree.from_adjacency(
        sp.csr_matrix(s.dA), coords, _column(s.D), regions, catalog, name
    )


def _convert(value: Any, default_name: Optional[str]) -> Union[MorphologyTree, Forest]:
    """Map a loaded MATLAB value onto a tree or forest.

    Values are read unsqueezed: a struct arrives as an object array of
    `mat_struct` (1x1 for a single tree), a cell as an object array whose
    elements are themselves arrays.
    """
    if _is_struct(value):
        return _struct_to_tree(value, default_name)
    if not (isinstance(value, np.ndarray) and value.dtype == object):
        raise MorphologyFormatError(f"Unexpected value of type {type(value).__name__} in container")
    items = value.reshape(-1)
    if items.size and all(_is_struct(item) for item in items):
        if items.size == 1:
            return _struct_to_tree(items[0], default_name)
        # struct array: one tree per element
        return Forest([_struct_to_tree(item, default_name) for item in items], name=default_name)
    return Forest([_convert(item, default_name) for item in items], name=default_name)


def load_mtr(path: Union[str, Path], name: Optional[str] = None) -> Union[MorphologyTree, Forest]:
    """Load the tree, forest or forest of forests stored in an `.mtr` file.

    The stored nesting is kept as is: a cell holding one tree still loads as
    a one-tree `Forest`.
    """
    path = Path(path)
    data = sio.loadmat(str(path), appendmat=False, squeeze_me=False, struct_as_record=False)
    if MTR_VARIABLE not in data:
        raise MorphologyFormatError(f"{path.name} holds no '{MTR_VARIABLE}' variable")
    result = _convert(data[MTR_VARIABLE], name if name is not None else path.stem)
    logger.debug("Loaded %r from %s", result, path)
    return result


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def _tree_to_struct(tree: MorphologyTree) -> Dict[str, Any]:
    s: Dict[str, Any] = {
        "dA": sp.csc_matrix(tree.dA, dtype=float),
        "X": tree.x.copy(),
        "Y": tree.y.copy(),
        "Z": tree.z.copy(),
        "D": tree.diameters.copy(),
        "R": (tree.regions + 1).astype(float),
        "rnames": np.array(tree.catalog.names, dtype=object),
    }
    if tree.name is not None:
        s["name"] = tree.name
    return s


def _to_matlab(value: Union[MorphologyTree, Forest]) -> Any:
    if isinstance(value, MorphologyTree):
        return _tree_to_struct(value)
    cell = np.empty(len(value), dtype=object)
    for i, item in enumerate(value):
        cell[i] = _to_matlab(item)
    return cell


def save_mtr(path: Union[str, Path], value: Union[MorphologyTree, Forest]) -> None:
    """Write a tree or forest to an `.mtr` container."""
    sio.savemat(
        str(path), {MTR_VARIABLE: _to_matlab(value)}, appendmat=False, oned_as="column"
    )
    logger.info("Saved %r to %s", value, path)
