import numpy as np
import torch

from tensorview.descriptor import ArrayDescriptor, ViewDescriptor

def make_base(shape, order="c"):
    x = np.arange(int(np.prod(shape)), dtype=np.int64).reshape(shape, order=order.upper())
    return x, ArrayDescriptor.from_numpy(x)

def make_torch_base(shape):
    return torch.arange(int(np.prod(shape)), dtype=torch.int64).reshape(shape)

def torch_view(desc: ViewDescriptor, t: torch.Tensor) -> torch.Tensor:
    return torch.as_strided(t, desc.shape, desc.strides, desc.base_offset)

def assert_view_matches(desc: ViewDescriptor, x: np.ndarray, expected) -> None:
    v = desc.apply(x)
    expected = np.asarray(expected)
    assert v.size == expected.size, f"view {desc} has {v.size} elements, expected {expected.size}"
    np.testing.assert_array_equal(v, expected.reshape(v.shape))
