import numpy as np
import pytest


@pytest.fixture
def two_triples():
    """Six stars, two indexes: two well separated triples, σ = 0.1."""
    X = np.array([
        [0.0, 0.0],
        [0.1, 0.0],
        [0.0, 0.1],
        [5.0, 5.0],
        [5.1, 5.0],
        [5.0, 5.1],
    ])
    S = np.full_like(X, 0.1)
    return X, S


@pytest.fixture
def separated_catalogue():
    """
    Twenty stars in two groups of ten, three indexes. Centres are 1.0
    apart on every index, intrinsic scatter and σ are both 0.05.
    """
    rng = np.random.default_rng(7)
    centres = np.array([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0]])
    X = np.vstack([c + rng.normal(scale=0.05, size=(10, 3)) for c in centres])
    S = np.full_like(X, 0.05)
    return X, S


@pytest.fixture
def random_catalogue():
    rng = np.random.default_rng(0)
    X = rng.normal(size=(15, 4))
    S = rng.uniform(0.05, 0.5, size=(15, 4))
    return X, S
