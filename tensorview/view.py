import logging
from typing import Any, Sequence

import numpy as np

from tensorview.descriptor import ArrayDescriptor, ViewDescriptor
from tensorview.indexing import IndexExpression, SpecifiedList, from_key, normalize_indexes
from tensorview.offset import compute_offset
from tensorview.resolver import resolve_accumulation

logger = logging.getLogger(__name__)


def resolve(base: ArrayDescriptor, indexes: Sequence[IndexExpression]) -> ViewDescriptor:
    """
    Resolve index expressions against a base array into a zero-copy view.

    Parameters
    ----------
    base : ArrayDescriptor
        Layout of the array being indexed. Only read.
    indexes : sequence of IndexExpression
        Expressions as parsed from the user's arguments; trailing
        dimensions may be left out.

    Returns
    -------
    ViewDescriptor
        Shape, strides and base offset of the view, with at least two
        dimensions.

    Raises
    ------
    InvalidIndexCount
        If more expressions address a dimension than ``base`` has.
    IndexOutOfBounds
        If bounds checking is on and an expression reaches past its dimension.
    ArithmeticInconsistency
        If the resolved sequences are inconsistent (an internal error).

    Examples
    --------
    >>> from tensorview.indexing import Point
    >>> base = ArrayDescriptor.contiguous((2, 2, 2, 2))
    >>> resolve(base, [Point(1)])
    ViewDescriptor(shape=(2, 2, 2), strides=(4, 2, 1), base_offset=8)
    """
    normalized = normalize_indexes(base, indexes)
    acc = resolve_accumulation(base, normalized)
    offset = compute_offset(acc, base, normalized)
    result = ViewDescriptor(acc.shape, acc.strides, offset)
    logger.debug(f"[resolve] {base.shape}/{base.strides} {normalized} -> {result}")
    return result


def view(array: Any, key: Any) -> np.ndarray:
    """
    Index a numpy array through the view resolver.

    Matches basic ``array[key]`` indexing except that the result is always
    at least two-dimensional and read-only. No data is copied.

    Index lists are rejected: a view can only describe a strided run, so
    gathering listed positions is left to the caller.

    Raises
    ------
    ValueError
        If ``key`` contains an index list.

    Notes
    -----
    The result differs from numpy's in one case. On a ``(1, n)`` row vector,
    a key holding a zero point, an interval and a new axis in first or
    second position starts at the offset of the second key entry. For example,
    ``view(x, (None, 0, slice(2, 4)))`` on shape ``(1, 4)`` starts at
    element 0, not 2.

    Examples
    --------
    >>> x = np.arange(16).reshape(2, 2, 2, 2)
    >>> view(x, 1).shape
    (2, 2, 2)
    """
    array = np.asarray(array)
    base = ArrayDescriptor.from_numpy(array)
    indexes = from_key(base.shape, key)
    if any(isinstance(idx, SpecifiedList) for idx in indexes):
        raise ValueError(f"index lists cannot be expressed as a strided view: {key!r}")
    return resolve(base, indexes).apply(array)
