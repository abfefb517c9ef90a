import logging
from dataclasses import dataclass, replace
from typing import Sequence, Tuple

from tensorview.descriptor import ArrayDescriptor
from tensorview.errors import DimensionMismatch
from tensorview.indexing import All, IndexExpression, Interval, Point, SpecifiedList

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Accumulation:
    """
    Intermediate state of a view resolution.

    ``shape``, ``strides`` and ``offsets`` describe the dimensions that
    survive into the view; they only line up once every finishing pass has
    run. ``steps`` runs parallel to ``strides`` and holds the interval step
    that was folded into each stride (1 for everything else).

    The remaining fields are side channels for the offset computation:
    point indexes remove a dimension from the view but still move its
    start, so their offsets and base strides are kept apart from the
    surviving dimensions.

    Attributes
    ----------
    point_offsets, point_strides : tuple of int
        Position and base stride of every :class:`Point`, in scan order.
    interval_strides : tuple of int
        Step of every :class:`Interval`, in scan order.
    num_intervals : int
        Number of intervals with a step above one.
    leading_new_axes : int
        New axes seen before any :class:`All`; they are prepended.
    mid_new_axes : tuple of int
        For each new axis seen after an :class:`All`, the number of
        surviving dimensions accumulated before it.
    consumed : int
        Base dimensions addressed so far.
    front_padding : int
        Length-1 dimensions prepended to ``shape`` alone by
        :func:`pad_minimum_rank`.
    """
    shape: Tuple[int, ...] = ()
    strides: Tuple[int, ...] = ()
    offsets: Tuple[int, ...] = ()
    steps: Tuple[int, ...] = ()
    point_offsets: Tuple[int, ...] = ()
    point_strides: Tuple[int, ...] = ()
    interval_strides: Tuple[int, ...] = ()
    num_intervals: int = 0
    leading_new_axes: int = 0
    mid_new_axes: Tuple[int, ...] = ()
    consumed: int = 0
    front_padding: int = 0

    @property
    def num_point_indexes(self) -> int:
        return len(self.point_offsets)


def insert_at(seq: Tuple[int, ...], index: int, value: int) -> Tuple[int, ...]:
    """Return ``seq`` with ``value`` inserted before ``index`` (appended past the end)."""
    return seq[:index] + (value,) + seq[index:]


def remove_at(seq: Tuple[int, ...], index: int) -> Tuple[int, ...]:
    return seq[:index] + seq[index + 1:]


def prepends(base: ArrayDescriptor) -> bool:
    """Whether padding for ``base`` goes in front: row vectors grow to the left."""
    return base.is_row_vector


def extend_oriented(seq: Tuple[int, ...], value: int, base: ArrayDescriptor) -> Tuple[int, ...]:
    """Pad ``seq`` by one ``value`` on the side given by :func:`prepends`."""
    return (value,) + seq if prepends(base) else seq + (value,)


def new_axis_insertion_index(position: int, applied: int) -> int:
    """
    Index at which a requested new axis goes into the accumulated sequences.

    Parameters
    ----------
    position : int
        Number of surviving dimensions that preceded the new axis in the
        user's expression list.
    applied : int
        Number of new axes already inserted in front of it. Each earlier
        insertion shifts the target one place to the right.

    Examples
    --------
    >>> new_axis_insertion_index(1, 0)   # x[:, None, :]
    1
    >>> new_axis_insertion_index(2, 1)   # second new axis of x[:, None, :, None, :]
    3
    """
    return position + applied


def scan(base: ArrayDescriptor, indexes: Sequence[IndexExpression]) -> Accumulation:
    """
    Walk ``indexes`` left to right against the dimensions of ``base``.

    Points go to the side channels, intervals and specified lists add a
    dimension of their own length, :class:`All` (and any other consuming
    expression) copies the base dimension, and new axes are only counted
    or recorded for the insertion passes.

    Raises
    ------
    DimensionMismatch
        If the number of expressions that consume a dimension differs from
        the rank of ``base``. Callers pass normalized expressions, which
        always address every dimension.
    """
    shape, strides, offsets, steps = [], [], [], []
    point_offsets, point_strides, interval_strides = [], [], []
    mid_new_axes = []
    num_intervals = 0
    leading_new_axes = 0
    encountered_all = False
    dim = 0

    for idx in indexes:
        if not idx.consumes:
            if encountered_all:
                mid_new_axes.append(len(shape))
            else:
                leading_new_axes += 1
            continue
        if dim >= base.rank:
            consumed = sum(1 for i in indexes if i.consumes)
            raise DimensionMismatch(consumed, base.rank)

        base_stride = base.stride(dim)
        if isinstance(idx, Point):
            point_offsets.append(idx.offset)
            point_strides.append(base_stride)
        elif isinstance(idx, Interval):
            shape.append(idx.length)
            strides.append(base_stride * idx.stride)
            steps.append(idx.stride)
            offsets.append(idx.offset)
            interval_strides.append(idx.stride)
            if idx.stride > 1:
                num_intervals += 1
        elif isinstance(idx, SpecifiedList):
            shape.append(idx.length)
            strides.append(base_stride)
            steps.append(1)
            offsets.append(idx.offset)
        else:
            if isinstance(idx, All):
                encountered_all = True
            shape.append(base.shape[dim])
            strides.append(base_stride)
            steps.append(1)
            offsets.append(idx.offset)
        dim += 1
    if dim != base.rank:
        raise DimensionMismatch(dim, base.rank)

    return Accumulation(
        shape=tuple(shape),
        strides=tuple(strides),
        offsets=tuple(offsets),
        steps=tuple(steps),
        point_offsets=tuple(point_offsets),
        point_strides=tuple(point_strides),
        interval_strides=tuple(interval_strides),
        num_intervals=num_intervals,
        leading_new_axes=leading_new_axes,
        mid_new_axes=tuple(mid_new_axes),
        consumed=dim,
    )


def fill_trailing_dimensions(acc: Accumulation, base: ArrayDescriptor) -> Accumulation:
    """
    Append base dimensions no expression addressed.

    :func:`scan` rejects expressions that leave dimensions unaddressed, so
    this only changes accumulations assembled by hand.

    Vector bases are padded with length 1 instead of their own length, so
    a vector never turns into a rank-1 view.
    """
    shape, strides, steps = acc.shape, acc.strides, acc.steps
    for dim in range(acc.consumed, base.rank):
        shape += (1 if base.is_vector else base.shape[dim],)
        strides += (base.stride(dim),)
        steps += (1,)
    return replace(acc, shape=shape, strides=strides, steps=steps, consumed=max(acc.consumed, base.rank))


def pad_offsets(acc: Accumulation, base: ArrayDescriptor) -> Accumulation:
    """
    Zero-fill offsets up to the base rank (minus points above rank 2).

    Only applies while shape, strides and offsets still disagree, so an
    already consistent accumulation is never padded twice.
    """
    delta = base.rank if base.rank <= 2 else base.rank - acc.num_point_indexes
    inconsistent = len(acc.shape) != len(acc.strides) and len(acc.offsets) != len(acc.shape)
    if not inconsistent or len(acc.offsets) >= delta:
        return acc
    return replace(acc, offsets=acc.offsets + (0,) * (delta - len(acc.offsets)))


def pad_minimum_rank(acc: Accumulation, base: ArrayDescriptor) -> Accumulation:
    """Grow ``shape`` to two dimensions; strides and offsets catch up in :func:`equalize_strides_and_offsets`."""
    shape, front = acc.shape, acc.front_padding
    while len(shape) < 2:
        shape = extend_oriented(shape, 1, base)
        if prepends(base):
            front += 1
    return replace(acc, shape=shape, front_padding=front)


def insert_leading_new_axes(acc: Accumulation, base: ArrayDescriptor) -> Accumulation:
    n = acc.leading_new_axes
    if n == 0:
        return acc
    return replace(
        acc,
        shape=(1,) * n + acc.shape,
        strides=(0,) * n + acc.strides,
        offsets=(0,) * n + acc.offsets,
        steps=(1,) * n + acc.steps,
    )


def insert_mid_new_axes(acc: Accumulation, base: ArrayDescriptor) -> Accumulation:
    """
    Insert the new axes requested after an :class:`All` where the user wrote them.

    The shape index is shifted by ``front_padding`` as well, since
    minimum-rank padding has only reached the shape at this point.
    """
    shape, strides, offsets, steps = acc.shape, acc.strides, acc.offsets, acc.steps
    for applied, position in enumerate(acc.mid_new_axes):
        target = new_axis_insertion_index(position, acc.leading_new_axes + applied)
        shape = insert_at(shape, target + acc.front_padding, 1)
        strides = insert_at(strides, target, 0)
        offsets = insert_at(offsets, target, 0)
        steps = insert_at(steps, target, 1)
    return replace(acc, shape=shape, strides=strides, offsets=offsets, steps=steps)


def trim_trailing_offsets(acc: Accumulation, base: ArrayDescriptor) -> Accumulation:
    """
    Drop surplus zero offsets, walking from the tail inward.

    Non-zero offsets are kept even if that leaves the offsets longer than
    the shape.
    """
    offsets = acc.offsets
    i = len(offsets) - 1
    while len(offsets) > len(acc.shape) and i >= 0:
        if offsets[i] == 0:
            offsets = remove_at(offsets, i)
        i -= 1
    return replace(acc, offsets=offsets)


def equalize_strides_and_offsets(acc: Accumulation, base: ArrayDescriptor) -> Accumulation:
    """
    Bring strides and offsets up to the length of the shape.

    Strides shorter than the offsets first receive the point strides.
    Offsets are then padded with zeros and strides with the base's element
    stride, on the side :func:`prepends` picks.
    """
    strides, steps, offsets = acc.strides, acc.steps, acc.offsets
    if len(strides) < len(offsets):
        strides += acc.point_strides
        steps += (1,) * len(acc.point_strides)
    while len(offsets) < len(acc.shape):
        offsets = extend_oriented(offsets, 0, base)
    while len(strides) < len(offsets):
        strides = extend_oriented(strides, base.element_stride, base)
        steps = extend_oriented(steps, 1, base)
    return replace(acc, strides=strides, steps=steps, offsets=offsets)


FINISHING_PASSES = (
    fill_trailing_dimensions,
    pad_offsets,
    pad_minimum_rank,
    insert_leading_new_axes,
    insert_mid_new_axes,
    trim_trailing_offsets,
    equalize_strides_and_offsets,
)


def resolve_accumulation(base: ArrayDescriptor, indexes: Sequence[IndexExpression]) -> Accumulation:
    """Run :func:`scan` followed by every pass in :data:`FINISHING_PASSES`, in order."""
    acc = scan(base, indexes)
    logger.debug(
        f"[scan] shape={acc.shape} strides={acc.strides} offsets={acc.offsets} "
        f"points={acc.num_point_indexes} intervals={acc.num_intervals} "
        f"new_axes={acc.leading_new_axes}+{len(acc.mid_new_axes)}"
    )
    for finishing_pass in FINISHING_PASSES:
        acc = finishing_pass(acc, base)
    return acc
