from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple, Union

import numpy as np

from tensorview.descriptor import ArrayDescriptor
from tensorview.errors import IndexOutOfBounds, InvalidIndexCount

_bounds_check_enabled = ContextVar("bounds_check_enabled", default=True)
"""ContextVar[bool]: Whether index expressions are bounds-checked.

Toggled by the :class:``no_bounds_check`` context manager. Each thread and
asyncio task sees its own value, so disabling checks in one never affects
another. When it is ``False``, :func:`normalize_indexes` does not compare
expressions against the base dimensions.
"""

class no_bounds_check:
    """
    Context manager that temporarily disables bounds checking.

    Useful when the caller already validated the expressions (for example
    a front end that clamps slices) and resolves many views in a loop.

    Examples
    --------
    >>> with no_bounds_check():
    ...     normalize_indexes(base, [point(7)])   # not checked

    Notes
    -----
    - It is safe to nest ``no_bounds_check`` contexts; the previous state of
      the flag is restored upon exit.
    - The flag is local to the current thread or task.
    """
    def __enter__(self):
        self._token = _bounds_check_enabled.set(False)

    def __exit__(self, *args):
        _bounds_check_enabled.reset(self._token)

def is_bounds_check_enabled() -> bool:
    return _bounds_check_enabled.get()


class IndexExpression:
    """
    One entry of an indexing call.

    Every variant reports the ``offset`` it starts at, the ``length`` it
    selects, the ``stride`` it steps by and whether it ``consumes`` a
    dimension of the base array (only :class:`NewAxis` does not).
    """
    consumes: bool = True

    @property
    def offset(self) -> int:
        return 0

    @property
    def length(self) -> int:
        return 1

    @property
    def stride(self) -> int:
        return 1


@dataclass(frozen=True)
class Point(IndexExpression):
    """A single position; the dimension disappears from the result."""
    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Point index must be non-negative, got {self.index}")

    @property
    def offset(self) -> int:
        return self.index


@dataclass(frozen=True)
class All(IndexExpression):
    """The whole dimension, unchanged."""


@dataclass(frozen=True)
class Interval(IndexExpression):
    """
    ``length`` positions starting at ``start``, ``step`` apart.

    Parameters
    ----------
    start : int
        First selected position, ``>= 0``.
    size : int
        Number of selected positions, ``>= 1``.
    step : int, default 1
        Distance between selected positions, ``>= 1``.
    """
    start: int
    size: int
    step: int = 1

    def __post_init__(self) -> None:
        if self.start < 0:
            raise ValueError(f"Interval start must be non-negative, got {self.start}")
        if self.size < 1:
            raise ValueError(f"Interval must select at least one element, got size {self.size}")
        if self.step < 1:
            raise ValueError(f"Interval step must be >= 1, got {self.step}")

    @property
    def offset(self) -> int:
        return self.start

    @property
    def length(self) -> int:
        return self.size

    @property
    def stride(self) -> int:
        return self.step

    @property
    def last(self) -> int:
        return self.start + (self.size - 1) * self.step


@dataclass(frozen=True)
class SpecifiedList(IndexExpression):
    """
    Explicit positions along a dimension.

    For layout purposes the list is treated as a unit-stride run starting
    at its first entry; gathering non-contiguous positions is left to the
    execution engine.
    """
    indices: Tuple[int, ...]

    def __post_init__(self) -> None:
        indices = tuple(int(i) for i in self.indices)
        if not indices:
            raise ValueError("SpecifiedList needs at least one index")
        if any(i < 0 for i in indices):
            raise ValueError(f"SpecifiedList indices must be non-negative, got {indices}")
        object.__setattr__(self, "indices", indices)

    @property
    def offset(self) -> int:
        return self.indices[0]

    @property
    def length(self) -> int:
        return len(self.indices)


@dataclass(frozen=True)
class NewAxis(IndexExpression):
    """A length-1, stride-0 dimension inserted into the result."""
    consumes = False

    @property
    def stride(self) -> int:
        return 0


def point(index: int) -> Point:
    return Point(index)


def all_() -> All:
    return All()


def interval(begin: int, end: int, stride: int = 1) -> Interval:
    """
    Half-open strided range ``[begin, end)``.

    Examples
    --------
    >>> interval(1, 6, 2)
    Interval(start=1, size=3, step=2)
    """
    if stride < 1:
        raise ValueError(f"Interval step must be >= 1, got {stride}")
    return Interval(begin, len(range(begin, end, stride)), stride)


def new_axis() -> NewAxis:
    return NewAxis()


def specified(*indices: int) -> SpecifiedList:
    return SpecifiedList(tuple(indices))


_Key = Any  # int, slice, None, Ellipsis, sequence of int, ndarray or IndexExpression

def from_key(shape: Sequence[int], key: Union[_Key, Tuple[_Key, ...]]) -> List[IndexExpression]:
    """
    Translate a numpy-style indexing key into index expressions.

    Parameters
    ----------
    shape : sequence of int
        Shape of the array being indexed.
    key : int, slice, None, Ellipsis, sequence of int, ndarray, IndexExpression, or tuple of these
        Indexing key as passed to ``__getitem__``.

    Returns
    -------
    list of IndexExpression
        One expression per key entry, with ``Ellipsis`` expanded into
        :class:`All` entries. Trailing dimensions are not filled in; that is
        :func:`normalize_indexes`' job.

    Raises
    ------
    InvalidIndexCount
        If the key addresses more dimensions than ``shape`` has.
    IndexError
        If an integer is out of range for its dimension.
    ValueError
        If a slice has a non-positive step or selects nothing, a key is
        used twice as ``Ellipsis``, or an entry has an unsupported type.

    Examples
    --------
    >>> from_key((3, 4), (1, slice(None, None, 2)))
    [Point(index=1), Interval(start=0, size=2, step=2)]
    """
    entries = list(key) if isinstance(key, tuple) else [key]
    n_ellipsis = sum(1 for e in entries if e is Ellipsis)
    if n_ellipsis > 1:
        raise ValueError("an index can only have a single ellipsis ('...')")
    n_new = sum(1 for e in entries if e is None or isinstance(e, NewAxis))
    n_consuming = len(entries) - n_new - n_ellipsis
    if n_consuming > len(shape):
        raise InvalidIndexCount(len(entries) - n_ellipsis, n_new, len(shape))

    out: List[IndexExpression] = []
    dim = 0
    for entry in entries:
        if entry is Ellipsis:
            fill = len(shape) - n_consuming
            out.extend(All() for _ in range(fill))
            dim += fill
            continue
        if entry is None:
            out.append(NewAxis())
            continue
        if isinstance(entry, IndexExpression):
            out.append(entry)
            dim += int(entry.consumes)
            continue
        n = shape[dim]
        if isinstance(entry, slice):
            out.append(_slice_to_expression(entry, n))
        elif isinstance(entry, (int, np.integer)) and not isinstance(entry, bool):
            i = int(entry)
            if not -n <= i < n:
                raise IndexOutOfBounds(dim, i, n)
            out.append(Point(i + n if i < 0 else i))
        elif isinstance(entry, (list, tuple, np.ndarray)):
            idx = np.asarray(entry)
            if idx.ndim != 1 or not np.issubdtype(idx.dtype, np.integer):
                raise ValueError(f"index lists must be 1-d integer sequences, got {entry!r}")
            if np.any((idx < -n) | (idx >= n)):
                bad = int(idx[(idx < -n) | (idx >= n)][0])
                raise IndexOutOfBounds(dim, bad, n)
            out.append(SpecifiedList(tuple(int(i) for i in np.where(idx < 0, idx + n, idx))))
        else:
            raise ValueError(f"Unsupported index entry: {entry!r}")
        dim += 1
    return out


def _slice_to_expression(s: slice, n: int) -> IndexExpression:
    if s.step is not None and s.step <= 0:
        raise ValueError(f"only positive slice steps are supported, got {s.step}")
    start, stop, step = s.indices(n)
    if (start, stop, step) == (0, n, 1):
        return All()
    size = len(range(start, stop, step))
    if size == 0:
        raise ValueError(f"slice {s} selects no elements from a dimension of size {n}")
    return Interval(start, size, step)


def normalize_indexes(
    base: ArrayDescriptor,
    indexes: Sequence[IndexExpression],
) -> List[IndexExpression]:
    """
    Expand ``indexes`` so that every base dimension is addressed.

    Parameters
    ----------
    base : ArrayDescriptor
        Array being indexed.
    indexes : sequence of IndexExpression
        User expressions, possibly fewer than the rank of ``base``.

    Returns
    -------
    list of IndexExpression
        ``indexes`` followed by one :class:`All` per unaddressed trailing
        dimension. For a ``(1, n)`` row vector with ``n > 1`` indexed by a
        single dimension-consuming expression, an :class:`All` is placed in
        front of it instead so that it addresses the columns.

    Raises
    ------
    InvalidIndexCount
        If more expressions consume a dimension than ``base`` has.
    IndexOutOfBounds
        If bounds checking is enabled and an expression reaches past the
        dimension it addresses.
    """
    indexes = list(indexes)
    n_new = sum(1 for idx in indexes if not idx.consumes)
    n_consuming = len(indexes) - n_new
    if n_consuming > base.rank:
        raise InvalidIndexCount(len(indexes), n_new, base.rank)

    if n_consuming == 1 and base.rank == 2 and base.is_row_vector and base.shape[1] > 1:
        first = next(i for i, idx in enumerate(indexes) if idx.consumes)
        indexes.insert(first, All())
    else:
        indexes.extend(All() for _ in range(base.rank - n_consuming))

    if _bounds_check_enabled.get():
        _check_bounds(base, indexes)
    return indexes


def _check_bounds(base: ArrayDescriptor, indexes: Sequence[IndexExpression]) -> None:
    dim = 0
    for idx in indexes:
        if not idx.consumes:
            continue
        n = base.shape[dim]
        if isinstance(idx, Interval):
            last = idx.last
        elif isinstance(idx, SpecifiedList):
            last = max(idx.indices)
        else:
            last = idx.offset
        if last >= n:
            raise IndexOutOfBounds(dim, last, n)
        dim += 1
