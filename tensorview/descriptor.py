from dataclasses import dataclass
from typing import Any, Literal, Optional, Sequence, Tuple

import numpy as np
from numpy.lib.stride_tricks import as_strided

from tensorview.errors import ArithmeticInconsistency

_Order = Literal["c", "f"]


def contiguous_strides(shape: Sequence[int], order: _Order = "c") -> Tuple[int, ...]:
    """
    Element strides of a densely packed array.

    Parameters
    ----------
    shape : sequence of int
        Dimension lengths.
    order : {'c', 'f'}, default 'c'
        Row-major ('c') or column-major ('f') layout.

    Returns
    -------
    tuple of int
        One stride per dimension, in elements.

    Examples
    --------
    >>> contiguous_strides((2, 3, 4))
    (12, 4, 1)
    >>> contiguous_strides((2, 3, 4), order="f")
    (1, 2, 6)
    """
    if order not in ("c", "f"):
        raise ValueError(f"Unknown memory order: {order!r}")
    dims = list(shape) if order == "f" else list(reversed(shape))
    strides = []
    step = 1
    for n in dims:
        strides.append(step)
        step *= n
    return tuple(strides) if order == "f" else tuple(reversed(strides))


@dataclass(frozen=True)
class ArrayDescriptor:
    """
    Read-only description of the base array a view is resolved against.

    Only the layout is described; the buffer itself lives with whoever
    owns the array.

    Parameters
    ----------
    shape : tuple of int
        Dimension lengths, each at least 1.
    strides : tuple of int
        Elements to skip per unit step along each dimension.
    order : {'c', 'f'}, default 'c'
        Memory order the array was laid out in.
    element_stride : int, optional
        Stride of the finest contiguous unit. If omitted, the smallest
        non-zero stride over dimensions longer than one is used (``1`` when
        there is none).

    Raises
    ------
    ValueError
        If the shape is empty, contains a length below 1, the strides do
        not line up with the shape or are negative, or ``order`` is unknown.
    """
    shape: Tuple[int, ...]
    strides: Tuple[int, ...]
    order: _Order = "c"
    element_stride: Optional[int] = None

    def __post_init__(self) -> None:
        shape = tuple(int(n) for n in self.shape)
        strides = tuple(int(s) for s in self.strides)
        if not shape:
            raise ValueError("ArrayDescriptor needs at least one dimension")
        if len(shape) != len(strides):
            raise ValueError(f"shape {shape} and strides {strides} differ in length")
        if any(n < 1 for n in shape):
            raise ValueError(f"all dimensions must be >= 1, got {shape}")
        if any(s < 0 for s in strides):
            raise ValueError(f"negative strides are not supported, got {strides}")
        if self.order not in ("c", "f"):
            raise ValueError(f"Unknown memory order: {self.order!r}")
        element_stride = self.element_stride
        if element_stride is None:
            candidates = [s for n, s in zip(shape, strides) if n > 1 and s > 0]
            element_stride = min(candidates) if candidates else 1
        # frozen dataclass: normalized values go through object.__setattr__
        object.__setattr__(self, "shape", shape)
        object.__setattr__(self, "strides", strides)
        object.__setattr__(self, "element_stride", int(element_stride))

    @classmethod
    def contiguous(cls, shape: Sequence[int], order: _Order = "c") -> "ArrayDescriptor":
        """Descriptor of a densely packed array of ``shape``."""
        return cls(tuple(shape), contiguous_strides(shape, order), order=order)

    @classmethod
    def from_numpy(cls, array: np.ndarray) -> "ArrayDescriptor":
        """
        Describe a numpy array's layout in elements.

        Zero-dimensional arrays are described as shape ``(1,)``.

        Raises
        ------
        ValueError
            If a byte stride is not a multiple of the item size, or negative.
        """
        array = np.asarray(array)
        if array.ndim == 0:
            return cls.contiguous((1,))
        itemsize = array.itemsize
        if any(s % itemsize for s in array.strides):
            raise ValueError(f"strides {array.strides} are not multiples of itemsize {itemsize}")
        order = "f" if array.flags.f_contiguous and not array.flags.c_contiguous else "c"
        strides = tuple(s // itemsize for s in array.strides)
        return cls(tuple(array.shape), strides, order=order)

    @property
    def rank(self) -> int:
        return len(self.shape)

    def stride(self, dim: int) -> int:
        return self.strides[dim]

    @property
    def is_row_vector(self) -> bool:
        """True for rank-1 arrays and rank-2 arrays with a single row."""
        return self.rank == 1 or (self.rank == 2 and self.shape[0] == 1)

    @property
    def is_column_vector(self) -> bool:
        return self.rank == 2 and self.shape[1] == 1

    @property
    def is_vector(self) -> bool:
        return self.rank == 1 or (self.rank == 2 and 1 in self.shape)

    def combine_shape_offsets_strides(
        self,
        shape: Sequence[int],
        offsets: Sequence[int],
        strides: Sequence[int],
    ) -> int:
        """
        Generic base-offset formula: the dot product of offsets and strides.

        The strides already encode whether the array is row- or
        column-major, so the same accumulation serves both orders.

        Raises
        ------
        ArithmeticInconsistency
            If the three sequences differ in length.
        """
        if not len(shape) == len(offsets) == len(strides):
            raise ArithmeticInconsistency(
                "shape, offsets and strides must be the same length",
                {"shape": len(shape), "offsets": len(offsets), "strides": len(strides)},
            )
        return sum(o * s for o, s in zip(offsets, strides))


@dataclass(frozen=True)
class ViewDescriptor:
    """
    Shape, strides and base offset of a zero-copy view.

    Strides and ``base_offset`` are in elements of the base buffer.
    Views never have fewer than two dimensions: vectors are presented as
    ``(1, n)`` or ``(n, 1)`` and single elements as ``(1, 1)``.

    Raises
    ------
    ArithmeticInconsistency
        If the shape and strides differ in length, the rank is below two,
        a dimension is below one, or the base offset is negative.
    """
    shape: Tuple[int, ...]
    strides: Tuple[int, ...]
    base_offset: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "shape", tuple(int(n) for n in self.shape))
        object.__setattr__(self, "strides", tuple(int(s) for s in self.strides))
        object.__setattr__(self, "base_offset", int(self.base_offset))
        lengths = {"shape": len(self.shape), "strides": len(self.strides)}
        if len(self.shape) != len(self.strides):
            raise ArithmeticInconsistency("view shape and strides differ in length", lengths)
        if len(self.shape) < 2:
            raise ArithmeticInconsistency("views have at least two dimensions", lengths)
        if any(n < 1 for n in self.shape):
            raise ArithmeticInconsistency(f"view dimensions must be >= 1, got {self.shape}", lengths)
        if self.base_offset < 0:
            raise ArithmeticInconsistency(f"negative base offset {self.base_offset}", lengths)

    @property
    def ndim(self) -> int:
        return len(self.shape)

    @property
    def size(self) -> int:
        return int(np.prod(self.shape))

    def apply(self, array: Any) -> np.ndarray:
        """
        Materialise the view over the buffer of ``array`` without copying.

        ``array`` must be the base the view was resolved against (its first
        element is buffer position 0). The result shares memory with it.

        Parameters
        ----------
        array : numpy.ndarray
            Base array.

        Returns
        -------
        numpy.ndarray
            Read-only strided view of shape :attr:`shape`.

        Examples
        --------
        >>> base = np.arange(12).reshape(3, 4)
        >>> ViewDescriptor((2, 2), (4, 1), 5).apply(base)
        array([[ 5,  6],
               [ 9, 10]])
        """
        array = np.asarray(array)
        itemsize = array.itemsize
        # move the start pointer to base_offset through a 1-d strided window
        start = as_strided(array, shape=(self.base_offset + 1,), strides=(itemsize,))
        start = start[self.base_offset:]
        return as_strided(
            start,
            shape=self.shape,
            strides=tuple(s * itemsize for s in self.strides),
            writeable=False,
        )

    def __repr__(self) -> str:
        return f"ViewDescriptor(shape={self.shape}, strides={self.strides}, base_offset={self.base_offset})"
