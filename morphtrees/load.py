"""
Loading morphologies from disk.

`load_tree` picks the parser from the file extension:

- ``.mtr``: native container (`morphtrees.mtr`)
- ``.swc``: point-cloud text (`morphtrees.swc`)
- ``.neu``: NEURON topology + geometry text (`morphtrees.neu`)

Options are given as a flag string as in ``"-r -s"``:

- ``-r``: run the repair collaborator on every loaded tree (default for
  ``.swc`` and ``.neu``)
- ``-s``: pass the result to the show collaborator

File selection, repair, display and the registry of loaded trees are all
injected by the caller; nothing here keeps global state.
"""

from __future__ import annotations

import logging
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, NamedTuple, Optional, Tuple, Union

from .errors import UnsupportedFormatWarning
from .mtr import load_mtr
from .neu import parse_neu
from .swc import parse_swc
from .tree import Forest, MorphologyTree, apply_to_trees

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())

Parser = Callable[[Path, Optional[str]], Union[MorphologyTree, Forest]]

FORMATS: Dict[str, Parser] = {
    ".mtr": load_mtr,
    ".swc": parse_swc,
    ".neu": parse_neu,
}
REPAIR_BY_DEFAULT = {".swc", ".neu"}


@dataclass
class LoadOptions:
    repair: bool = False
    show: bool = False

    @classmethod
    def parse(cls, flags: Optional[str], fmt: str) -> "LoadOptions":
        """Interpret a flag string; empty or missing flags select the format defaults."""
        if not flags:
            return cls(repair=fmt in REPAIR_BY_DEFAULT, show=False)
        return cls(repair="-r" in flags, show="-s" in flags)


class LoadResult(NamedTuple):
    """Loaded tree or forest (None if nothing was loaded), file name and directory."""

    tree: Optional[Union[MorphologyTree, Forest]]
    name: Optional[str]
    path: Optional[str]


def load_tree(
    name: Optional[str] = None,
    options: Optional[str] = None,
    *,
    select_file: Optional[Callable[[], Optional[Tuple[str, str]]]] = None,
    repair: Optional[Callable[[MorphologyTree], MorphologyTree]] = None,
    show: Optional[Callable[[Union[MorphologyTree, Forest]], None]] = None,
    registry=None,
) -> LoadResult:
    """Load a tree (or forest) from an `.mtr`, `.swc` or `.neu` file.

    Args:
        name: File to load. The full file is ``os.path.join(path, name)``;
            when given here, `path` is ``""``. If omitted, `select_file` is
            asked for a ``(name, path)`` pair.
        options: Flag string, see module docs.
        select_file: Returns ``(name, path)``, or None when cancelled.
        repair: Applied to each tree when the ``-r`` option is active.
        show: Called with the result when ``-s`` is active.
        registry: Any object with ``append``; receives the loaded result.

    Returns:
        `LoadResult`. On an unsupported extension the tree is None and an
        `UnsupportedFormatWarning` is issued. Selection cancelled (or no
        selector available) gives ``LoadResult(None, None, None)``.

    Raises:
        FileNotFoundError: The file of a supported format does not exist.
        MorphologyError: The file content is not a valid morphology.
    """
    path = ""
    if not name:
        selected = select_file() if select_file is not None else None
        if not selected:
            logger.info("No file selected")
            return LoadResult(None, None, None)
        name, path = selected
    name = os.fspath(name)

    fmt = Path(name).suffix.lower()
    parser = FORMATS.get(fmt)
    if parser is None:
        message = f"Unsupported morphology format '{fmt or name}'"
        logger.warning("%s (%s)", message, name)
        warnings.warn(message, UnsupportedFormatWarning, stacklevel=2)
        return LoadResult(None, name, path)

    filepath = Path(os.path.join(path, name))
    if not filepath.is_file():
        raise FileNotFoundError(f"No such {fmt} file: {filepath}")

    opts = LoadOptions.parse(options, fmt)
    logger.info("Loading %s (%s)", filepath, opts)
    tree = parser(filepath, filepath.stem)

    if opts.repair:
        if repair is None:
            logger.debug("Repair requested but no repair function given; skipping")
        else:
            tree = apply_to_trees(tree, repair)
    if opts.show:
        if show is None:
            logger.debug("Show requested but no show function given; skipping")
        else:
            show(tree)

    if registry is not None:
        registry.append(tree)
    return LoadResult(tree, name, path)
