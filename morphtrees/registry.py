"""
Append-only store of loaded trees.

`load_tree` appends to any object with an ``append`` method; this class is
the default one, with a few conveniences for walking what was loaded.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Union

from .tree import Forest, MorphologyTree, iter_trees

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class TreeRegistry:
    """Ordered record of loaded trees and forests."""

    def __init__(self):
        self._entries: List[Union[MorphologyTree, Forest]] = []

    def append(self, entry: Union[MorphologyTree, Forest]) -> int:
        """Store `entry` and return its position."""
        if not isinstance(entry, (MorphologyTree, Forest)):
            raise TypeError(f"Cannot register {type(entry).__name__}")
        self._entries.append(entry)
        logger.debug("Registered %r at %d", entry, len(self._entries) - 1)
        return len(self._entries) - 1

    def last(self) -> Optional[Union[MorphologyTree, Forest]]:
        return self._entries[-1] if self._entries else None

    def trees(self) -> Iterator[MorphologyTree]:
        """All registered trees, forests flattened in order."""
        for entry in self._entries:
            yield from iter_trees(entry)

    def __getitem__(self, index):
        return self._entries[index]

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self._entries)
