import numpy as np
import pytest

from lickclust import (InvalidDissimilarity, InvalidShape, InvalidUncertainty,
                       check_dissimilarity, error_weighted_dissimilarity)


def test_symmetric_with_zero_diagonal(random_catalogue):
    X, S = random_catalogue
    D = error_weighted_dissimilarity(X, S)

    assert D.shape == (15, 15)
    assert np.array_equal(D, D.T)
    assert np.all(np.diag(D) == 0.0)
    assert np.all(D >= 0)


def test_matches_pairwise_formula(random_catalogue):
    X, S = random_catalogue
    D = error_weighted_dissimilarity(X, S)

    a, b = 3, 11
    expected = np.sum((X[a] - X[b]) ** 2 / (S[a] ** 2 + S[b] ** 2))
    assert D[a, b] == pytest.approx(expected)


def test_rooted_is_square_root(random_catalogue):
    X, S = random_catalogue
    D = error_weighted_dissimilarity(X, S)
    R = error_weighted_dissimilarity(X, S, rooted=True)

    np.testing.assert_allclose(R, np.sqrt(D))
    assert np.all(np.diag(R) == 0.0)


def test_identical_rows_have_zero_distance():
    X = np.array([[1.0, 2.0], [1.0, 2.0], [3.0, 0.0]])
    S = np.array([[0.2, 0.3], [0.2, 0.3], [0.1, 0.1]])
    D = error_weighted_dissimilarity(X, S)

    assert D[0, 1] == 0.0
    assert D[1, 0] == 0.0
    assert D[0, 2] > 0


def test_larger_uncertainty_never_increases_distance(random_catalogue):
    X, S = random_catalogue
    D = error_weighted_dissimilarity(X, S)

    S_inflated = S.copy()
    S_inflated[4, 2] *= 3.0
    D_inflated = error_weighted_dissimilarity(X, S_inflated)

    assert np.all(D_inflated[4] <= D[4])
    # rows not involving star 4 are untouched
    others = np.delete(np.arange(15), 4)
    np.testing.assert_array_equal(D_inflated[np.ix_(others, others)],
                                  D[np.ix_(others, others)])


def test_shape_mismatch_rejected():
    with pytest.raises(InvalidShape):
        error_weighted_dissimilarity(np.zeros((4, 3)), np.ones((4, 2)))
    with pytest.raises(InvalidShape):
        error_weighted_dissimilarity(np.zeros(4), np.ones(4))


@pytest.mark.parametrize("bad", [0.0, -0.1, np.nan])
def test_non_positive_uncertainty_rejected(bad):
    X = np.zeros((3, 2))
    S = np.ones((3, 2))
    S[1, 1] = bad
    with pytest.raises(InvalidUncertainty, match="row=1 col=1"):
        error_weighted_dissimilarity(X, S)


def test_overflowing_values_raise_invalid_dissimilarity():
    X = np.array([[1e200, 0.0], [-1e200, 0.0], [0.0, 0.0]])
    S = np.ones_like(X)
    with pytest.raises(InvalidDissimilarity, match="non-finite"):
        error_weighted_dissimilarity(X, S)


def test_invalid_dissimilarity_is_a_value_error():
    with pytest.raises(ValueError):
        check_dissimilarity(np.array([[0.0, -1.0], [-1.0, 0.0]]))


def test_check_dissimilarity_rejects_asymmetry_and_diagonal():
    D = np.array([[0.0, 1.0], [2.0, 0.0]])
    with pytest.raises(InvalidDissimilarity, match="symmetric"):
        check_dissimilarity(D)
    D = np.array([[1.0, 1.0], [1.0, 0.0]])
    with pytest.raises(InvalidDissimilarity, match="diagonal"):
        check_dissimilarity(D)
