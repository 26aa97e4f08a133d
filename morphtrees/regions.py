"""
Region catalogs.

Each tree carries its own `RegionCatalog`: an ordered set of region names,
with every node storing the integer index of its region in that catalog.
"""

from __future__ import annotations

from typing import Iterable, Iterator, List, Sequence, Tuple

import numpy as np


def fold_label(label: str) -> str:
    """Collapse an indexed section label onto its generic name.

    ``"dend[12]"`` becomes ``"dend[]"``; labels without ``[`` are unchanged.
    """
    cut = label.find("[")
    if cut < 0:
        return label
    return label[:cut] + "[]"


def format_code(value: float) -> str:
    """Text of a numeric region code, without a trailing ``.0`` for integers."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


class RegionCatalog:
    """Ordered set of distinct region names."""

    def __init__(self, names: Iterable[str] = ()):
        self._names: List[str] = []
        self._lookup = {}
        for name in names:
            name = str(name)
            if name not in self._lookup:
                self._lookup[name] = len(self._names)
                self._names.append(name)

    @classmethod
    def from_labels(cls, labels: Sequence) -> Tuple["RegionCatalog", np.ndarray]:
        """Intern `labels` into a new sorted catalog.

        Returns the catalog and, for every label, its index in the catalog.
        """
        if len(labels) == 0:
            return cls(), np.zeros(0, dtype=int)
        names, inverse = np.unique(np.asarray([str(lb) for lb in labels]), return_inverse=True)
        return cls(names.tolist()), inverse.astype(int).reshape(-1)

    @classmethod
    def from_codes(cls, codes: Sequence) -> Tuple["RegionCatalog", np.ndarray]:
        """Intern numeric region codes, sorted by value and named by their text."""
        values, inverse = np.unique(np.asarray(codes, dtype=float), return_inverse=True)
        return cls(format_code(v) for v in values), inverse.astype(int).reshape(-1)

    def subset(self, indices: Sequence[int]) -> Tuple["RegionCatalog", np.ndarray]:
        """Restrict the catalog to the regions referenced by `indices`.

        Returns the reduced catalog and `indices` remapped into it, keeping
        the original relative order of names.
        """
        idx = np.asarray(indices, dtype=int)
        used, remapped = np.unique(idx, return_inverse=True)
        return RegionCatalog(self._names[i] for i in used), remapped.astype(int).reshape(-1)

    def index(self, name: str) -> int:
        try:
            return self._lookup[name]
        except KeyError:
            raise KeyError(f"Region '{name}' not in catalog") from None

    def name_of(self, i: int) -> str:
        return self._names[int(i)]

    @property
    def names(self) -> List[str]:
        return list(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._lookup

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegionCatalog):
            return NotImplemented
        return self._names == other._names

    def __repr__(self) -> str:
        return f"RegionCatalog({self._names!r})"
