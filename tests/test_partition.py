import numpy as np
import pytest
from scipy.cluster.hierarchy import is_monotonic, is_valid_linkage
from sklearn.datasets import make_blobs
from sklearn.metrics import adjusted_rand_score

from lickclust import (DivisivePartition, InvalidDissimilarity,
                       InvalidGroupCount, MedoidPartition, WardPartition,
                       error_weighted_dissimilarity, get_method)
from lickclust.hierarchy import (cut, dendrogram_data, divisive_linkage,
                                 relabel, structure_coefficient)

ALL_METHODS = ["divisive", "ward", "medoid"]


def line_distances(points):
    p = np.asarray(points, dtype=float)
    return np.abs(p[:, None] - p[None, :])


@pytest.fixture
def blobs_D():
    X, y = make_blobs(n_samples=30, centers=3, cluster_std=0.4, n_features=4,
                      random_state=0)
    S = np.full_like(X, 0.2)
    return error_weighted_dissimilarity(X, S), y


def test_divisive_splits_line_into_pairs():
    D = line_distances([0, 1, 5, 6])
    Z = divisive_linkage(D)

    assert is_valid_linkage(Z)
    assert is_monotonic(Z)
    assert Z[-1, 2] == 6.0
    np.testing.assert_array_equal(cut(Z, 2), [1, 1, 2, 2])
    assert len(np.unique(cut(Z, 3))) == 3


def test_divisive_linkage_is_valid_on_blobs(blobs_D):
    D, _ = blobs_D
    Z = divisive_linkage(D)

    assert Z.shape == (29, 4)
    assert is_valid_linkage(Z)
    assert is_monotonic(Z)
    assert Z[-1, 3] == 30


@pytest.mark.parametrize("name", ALL_METHODS)
def test_two_triples_recovered(name, two_triples):
    D = error_weighted_dissimilarity(*two_triples)
    labels = get_method(name).partition(D, 2)

    assert set(labels[:3]) != set(labels[3:])
    assert len(set(labels[:3])) == 1
    assert len(set(labels[3:])) == 1


@pytest.mark.parametrize("name", ALL_METHODS)
@pytest.mark.parametrize("k", [2, 3, 5])
def test_exactly_k_groups_labelled_from_one(name, k, blobs_D):
    D, _ = blobs_D
    labels = get_method(name).partition(D, k)

    assert labels.shape == (30,)
    assert sorted(np.unique(labels)) == list(range(1, k + 1))
    assert labels[0] == 1


@pytest.mark.parametrize("name", ALL_METHODS)
def test_repeated_calls_are_identical(name, blobs_D):
    D, _ = blobs_D
    method = get_method(name)
    first = method.partition(D, 3)
    for _ in range(3):
        np.testing.assert_array_equal(method.partition(D, 3), first)


@pytest.mark.parametrize("name", ALL_METHODS)
def test_partition_many_matches_partition(name, blobs_D):
    D, _ = blobs_D
    method = get_method(name)
    many = method.partition_many(D, [2, 3, 4])

    assert list(many) == [2, 3, 4]
    for k, labels in many.items():
        np.testing.assert_array_equal(labels, method.partition(D, k))


@pytest.mark.parametrize("name", ALL_METHODS)
@pytest.mark.parametrize("k", [0, 1, 30, 31])
def test_group_count_out_of_range(name, k, blobs_D):
    D, _ = blobs_D
    with pytest.raises(InvalidGroupCount):
        get_method(name).partition(D, k)


@pytest.mark.parametrize("name", ALL_METHODS)
def test_bad_dissimilarity_is_not_masked(name):
    D = line_distances([0, 1, 5, 6])
    D[0, 3] = D[3, 0] = np.nan
    with pytest.raises(InvalidDissimilarity):
        get_method(name).partition(D, 2)

    D = line_distances([0, 1, 5, 6])
    D[0, 3] = D[3, 0] = -1.0
    with pytest.raises(InvalidDissimilarity):
        get_method(name).partition(D, 2)


def test_medoid_fit_exposes_medoids(blobs_D):
    D, _ = blobs_D
    result = MedoidPartition().fit(D, 3)
    medoids = np.asarray(result.medoids)

    assert len(medoids) == 3
    labels = np.asarray(result.labels)
    # each medoid is nearest to itself
    assert len(set(labels[medoids])) == 3


def test_ward_recovers_blobs(blobs_D):
    D, y = blobs_D
    labels = WardPartition().partition(D, 3)
    assert adjusted_rand_score(y, labels) > 0.9


def test_structure_coefficient_range(blobs_D):
    D, _ = blobs_D
    for method in (DivisivePartition(), WardPartition()):
        coef = structure_coefficient(method.hierarchy(D))
        assert 0.0 <= coef <= 1.0
        assert coef > 0.5


def test_dendrogram_data_lists_every_leaf(blobs_D):
    D, _ = blobs_D
    data = dendrogram_data(WardPartition().hierarchy(D))
    assert sorted(data["leaves"]) == list(range(30))


def test_relabel_orders_by_first_appearance():
    np.testing.assert_array_equal(relabel([7, 7, 3, 9, 3]), [1, 1, 2, 3, 2])


def test_unknown_method_name():
    with pytest.raises(ValueError, match="Unknown clustering method"):
        get_method("kmeans")
    assert get_method("agglomerative").name == "ward"
    assert get_method("PAM").name == "medoid"


@pytest.mark.parametrize("name", ALL_METHODS)
def test_duplicate_rows_still_give_k_groups(name):
    X = np.array([[0.0, 0.0]] * 4 + [[5.0, 5.0]] * 2)
    S = np.full_like(X, 0.1)
    D = error_weighted_dissimilarity(X, S)
    labels = get_method(name).partition(D, 3)

    assert sorted(np.unique(labels)) == [1, 2, 3]
    # the two far rows never share a group with the near ones
    assert not set(labels[4:]) & set(labels[:4])
