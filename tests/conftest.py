import numpy as np
import pytest

@pytest.fixture
def rng():
    return np.random.default_rng(0)

@pytest.fixture(params=["c", "f"])
def order(request):
    return request.param
