"""
Exceptions and warnings raised while loading morphologies.

Everything fatal derives from `MorphologyError`. The parse errors also derive
from `ValueError` so callers that only care about "bad input" can catch that.
An unrecognized file extension is not an error: `load_tree` issues an
`UnsupportedFormatWarning` and returns an empty result.
"""


class MorphologyError(Exception):
    """Base class for fatal morphology loading errors."""


class MorphologyFormatError(MorphologyError, ValueError):
    """The file content cannot be read as the declared format."""


class MalformedTopologyError(MorphologyFormatError):
    """A `.neu` branch attaches to its parent at a non-zero own end."""


class IndexingError(MorphologyFormatError):
    """Node ids are not a contiguous 1..N run, or a parent id is out of range."""


class InvalidTreeError(MorphologyError, ValueError):
    """The parsed structure is not a single rooted tree (cycle, bad shapes, ...)."""


class UnsupportedFormatWarning(UserWarning):
    """File extension is not one of the supported morphology formats."""
