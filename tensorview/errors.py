from typing import Mapping


class ViewError(Exception):
    """Base class for tensorview-specific exceptions."""


class InvalidIndexCount(ViewError, IndexError):
    """
    More dimension-consuming index expressions than the base array has.

    Attributes
    ----------
    supplied : int
        Number of expressions passed by the caller.
    new_axes : int
        How many of them were new axes (these do not consume a dimension).
    rank : int
        Rank of the base array.
    """
    def __init__(self, supplied: int, new_axes: int, rank: int) -> None:
        super().__init__(
            f"too many indices: {supplied} given ({new_axes} new axes) "
            f"for an array of rank {rank}"
        )
        self.supplied = supplied
        self.new_axes = new_axes
        self.rank = rank


class IndexOutOfBounds(ViewError, IndexError):
    def __init__(self, dimension: int, index: int, length: int) -> None:
        super().__init__(
            f"index {index} is out of bounds for dimension {dimension} with size {length}"
        )
        self.dimension = dimension
        self.index = index
        self.length = length


class DimensionMismatch(ViewError, ValueError):
    def __init__(self, consumed: int, rank: int) -> None:
        super().__init__(
            f"{consumed} index expressions address base dimensions, "
            f"but the base array has rank {rank}"
        )
        self.consumed = consumed
        self.rank = rank


class ArithmeticInconsistency(ViewError, RuntimeError):
    """
    Internal invariant violation between shape, stride and offset sequences.

    This never happens for resolver output; seeing it means one of the
    finishing passes produced sequences of different lengths.
    """
    def __init__(self, message: str, lengths: Mapping[str, int]) -> None:
        detail = ", ".join(f"{name}={n}" for name, n in lengths.items())
        super().__init__(f"{message} ({detail})")
        self.lengths = dict(lengths)
