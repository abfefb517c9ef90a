from typing import Sequence, Tuple

from tensorview.descriptor import ArrayDescriptor
from tensorview.errors import ArithmeticInconsistency
from tensorview.indexing import IndexExpression
from tensorview.resolver import Accumulation


def _dot(a: Sequence[int], b: Sequence[int]) -> int:
    return sum(x * y for x, y in zip(a, b))


def unscaled_strides(strides: Sequence[int], steps: Sequence[int]) -> Tuple[int, ...]:
    """Strides with each interval step divided back out."""
    return tuple(s // k for s, k in zip(strides, steps))


def align_point_strides(
    point_strides: Sequence[int],
    strides: Sequence[int],
    length: int,
) -> Tuple[int, ...]:
    """
    Stretch the point strides to ``length`` slots for the offset dot product.

    Missing slots are filled with 1. Filled slots sitting where ``strides``
    holds a new axis (stride 0) are set to 0. Slots that came from an
    actual point keep their base stride: a new axis in front of a point
    must not cancel the point's displacement.

    Examples
    --------
    >>> align_point_strides((12,), (4, 0, 1), 3)
    (12, 0, 1)
    """
    aligned = list(point_strides) + [1] * (length - len(point_strides))
    for i in range(len(point_strides), length):
        if i < len(strides) and strides[i] == 0:
            aligned[i] = 0
    return tuple(aligned)


def compute_offset(
    acc: Accumulation,
    base: ArrayDescriptor,
    indexes: Sequence[IndexExpression],
) -> int:
    """
    Base offset of the view described by a finished accumulation.

    Three regimes, tried in order:

    1. Points present: dot product of the point offsets with the aligned
       point strides, plus the start offsets of the surviving dimensions.
       A row-vector base indexed with a point at 0 and an interval takes the
       offset of the second expression instead.
    2. Strided intervals, no points: dot product of the offsets with the
       unscaled strides, integer-divided by the number of strided intervals.
    3. Otherwise ``base.combine_shape_offsets_strides``.

    Parameters
    ----------
    acc : Accumulation
        Output of :func:`tensorview.resolver.resolve_accumulation`.
    base : ArrayDescriptor
        Array the view was resolved against.
    indexes : sequence of IndexExpression
        The normalised expressions the accumulation was built from.

    Returns
    -------
    int
        Element offset of the view's first element in the base buffer.

    Raises
    ------
    ArithmeticInconsistency
        If shape, strides and offsets differ in length.
    """
    lengths = {
        "shape": len(acc.shape),
        "strides": len(acc.strides),
        "offsets": len(acc.offsets),
        "steps": len(acc.steps),
    }
    if len(set(lengths.values())) != 1:
        raise ArithmeticInconsistency("accumulated sequences differ in length", lengths)

    if acc.num_point_indexes > 0 and acc.point_strides:
        point_strides = align_point_strides(acc.point_strides, acc.strides, len(acc.offsets))
        point_offsets = acc.point_offsets + (0,) * (len(point_strides) - len(acc.point_offsets))
        # row vector, point at 0 plus an interval: the interval's start is the offset
        if base.is_row_vector and acc.interval_strides and point_offsets[0] == 0 and len(indexes) > 1:
            return indexes[1].offset
        survivors = _dot(acc.offsets, unscaled_strides(acc.strides, acc.steps))
        return _dot(point_offsets, point_strides) + survivors

    if acc.num_intervals > 0:
        return _dot(acc.offsets, unscaled_strides(acc.strides, acc.steps)) // acc.num_intervals

    return base.combine_shape_offsets_strides(acc.shape, acc.offsets, acc.strides)
