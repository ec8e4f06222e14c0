import pytest

from mesh_topology.topology.builder import normalize_weights


@pytest.mark.parametrize(
    "weights, expected",
    [
        ([1, 1, 2], [25, 25, 50]),
        ([1, 1, 1], [34, 33, 33]),
        ([90, 10], [90, 10]),
        ([100, 0], [100, 0]),
        ([0.1, 0.2], [33, 67]),
        ([3], [100]),
    ],
)
def test_normalize_weights(weights, expected):
    assert normalize_weights(weights) == expected


def test_all_zero_weights_split_evenly():
    assert normalize_weights([0, 0]) == [50, 50]
    assert normalize_weights([0, 0, 0]) == [34, 33, 33]


def test_normalized_weights_sum_to_100():
    for weights in ([7, 11, 13], [1] * 7, [0.5, 0.25, 0.25], [2, 0, 5]):
        assert sum(normalize_weights(weights)) == 100


def test_empty():
    assert normalize_weights([]) == []
