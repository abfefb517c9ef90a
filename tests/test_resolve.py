import numpy as np
import pytest

from tensorview.descriptor import ArrayDescriptor
from tensorview.errors import IndexOutOfBounds, InvalidIndexCount, ViewError
from tensorview.indexing import All, Interval, NewAxis, Point, SpecifiedList
from tensorview.view import resolve, view

from tests.utils import assert_view_matches, make_base


def test_point_removes_leading_dimension():
    base = ArrayDescriptor.contiguous((3, 2, 2))
    out = resolve(base, [Point(1), All(), All()])
    assert out.shape == (2, 2)
    assert out.strides == (2, 1)
    assert out.base_offset == 1 * base.stride(0)


@pytest.mark.parametrize("i, offset", [(0, 0), (1, 8)])
def test_sixteen_element_tensor_point_on_first_dimension(i, offset):
    base = ArrayDescriptor((2, 2, 2, 2), (8, 4, 2, 1))
    out = resolve(base, [Point(i), All(), All(), All()])
    assert out.shape == (2, 2, 2)
    assert out.strides == (4, 2, 1)
    assert out.base_offset == offset


def test_point_then_new_axis_column_major():
    x = np.arange(1, 13, dtype=np.float64).reshape(3, 2, 2, order="F")
    base = ArrayDescriptor.from_numpy(x)
    out = resolve(base, [Point(0), NewAxis(), All()])
    assert out.shape == (1, 2, 2)
    assert out.strides == (0, 3, 6)
    assert out.base_offset == 0
    np.testing.assert_array_equal(out.apply(x), [[[1, 7], [4, 10]]])


@pytest.mark.parametrize(
    "shape",
    [(2, 3), (3, 1), (1, 4), (2, 3, 4), (2, 1, 3, 2)],
)
def test_full_selection_is_identity(shape, order):
    base = ArrayDescriptor.contiguous(shape, order=order)
    out = resolve(base, [All()] * len(shape))
    assert out.shape == base.shape
    assert out.strides == base.strides
    assert out.base_offset == 0


def test_interval_scales_stride():
    base = ArrayDescriptor.contiguous((4, 6))
    out = resolve(base, [All(), Interval(1, 3, 2)])
    assert out.shape == (4, 3)
    assert out.strides == (6, 2)
    assert out.base_offset == 1

    out = resolve(base, [Interval(1, 2, 2)])
    assert out.shape == (2, 6)
    assert out.strides == (12, 1)
    assert out.base_offset == 6


def test_vector_results_keep_two_dimensions():
    x, base = make_base((5,))
    out = resolve(base, [Interval(1, 3)])
    assert out.shape == (1, 3)
    assert out.base_offset == 1
    assert_view_matches(out, x, [[1, 2, 3]])

    x, base = make_base((5, 1))
    out = resolve(base, [Interval(1, 3)])
    assert out.shape == (3, 1)
    assert out.base_offset == 1
    assert_view_matches(out, x, [[1], [2], [3]])

    x, base = make_base((1, 5))
    out = resolve(base, [Interval(1, 3)])
    assert out.shape == (1, 3)
    assert out.strides == (5, 1)
    assert out.base_offset == 1
    assert_view_matches(out, x, [[1, 2, 3]])


def test_single_element_is_one_by_one():
    x, base = make_base((3, 4))
    out = resolve(base, [Point(1), Point(2)])
    assert out.shape == (1, 1)
    assert out.base_offset == 6

    x, base = make_base((5,))
    out = resolve(base, [Point(2)])
    assert out.shape == (1, 1)
    assert out.base_offset == 2


def test_row_of_matrix_becomes_column():
    x, base = make_base((3, 4))
    out = resolve(base, [Point(1)])
    assert out.shape == (4, 1)
    assert out.base_offset == 4
    assert_view_matches(out, x, x[1])


def test_row_vector_point_and_interval():
    x, base = make_base((1, 5))
    out = resolve(base, [Point(0), Interval(2, 3)])
    assert out.shape == (1, 3)
    assert out.base_offset == 2
    assert_view_matches(out, x, [[2, 3, 4]])


@pytest.mark.parametrize(
    "indexes",
    [
        [NewAxis()],
        [All(), NewAxis()],
        [Point(1), NewAxis()],
        [All(), All(), All(), NewAxis()],
        [NewAxis(), Point(0), NewAxis(), All(), NewAxis()],
    ],
)
def test_new_axis_adds_exactly_one_dimension(indexes):
    base = ArrayDescriptor.contiguous((2, 3, 4))
    without = [idx for idx in indexes if not isinstance(idx, NewAxis)]
    n_new = len(indexes) - len(without)
    out = resolve(base, indexes)
    ref = resolve(base, without)
    assert len(out.shape) == len(ref.shape) + n_new
    survivors = [(n, s) for n, s in zip(out.shape, out.strides) if s != 0]
    assert survivors == [(n, s) for n, s in zip(ref.shape, ref.strides) if s != 0]
    assert out.base_offset == ref.base_offset


def test_new_axis_between_dimensions():
    x, base = make_base((2, 3, 4))
    out = resolve(base, [All(), NewAxis(), All(), NewAxis(), All()])
    assert out.shape == (2, 1, 3, 1, 4)
    assert out.strides == (12, 0, 4, 0, 1)
    assert_view_matches(out, x, x[:, None, :, None, :])


def test_new_axis_on_vector():
    x, base = make_base((5,))
    out = resolve(base, [All(), NewAxis()])
    assert out.shape == (1, 5, 1)
    assert_view_matches(out, x, x)


def test_contiguous_specified_list():
    x, base = make_base((3, 4))
    out = resolve(base, [All(), SpecifiedList((1, 2))])
    assert out.shape == (3, 2)
    assert out.strides == (4, 1)
    assert out.base_offset == 1
    assert_view_matches(out, x, x[:, 1:3])


def test_errors_propagate():
    base = ArrayDescriptor.contiguous((3, 4))
    with pytest.raises(InvalidIndexCount):
        resolve(base, [Point(0), Point(0), Point(0)])
    with pytest.raises(IndexOutOfBounds):
        resolve(base, [Point(3)])
    with pytest.raises(ViewError):
        resolve(base, [All(), Interval(2, 3)])


def test_view_convenience(order):
    x, _ = make_base((2, 2, 2, 2), order)
    v = view(x, 1)
    assert v.shape == (2, 2, 2)
    np.testing.assert_array_equal(v, x[1])
    assert np.shares_memory(v, x)
