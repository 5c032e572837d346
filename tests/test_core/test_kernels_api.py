"""
Тесты функционального интерфейса kmeans_kernels.kernels.
"""

import numpy as np
import pytest
from kmeans_kernels.core.errors import InvalidClusterCount
from kmeans_kernels.kernels import accumulate, assign, compute_distances, zero_accumulators


class TestKernelsAPI:
    def test_example_pipeline(self, example_pair):
        points, centroids = example_pair

        distances = compute_distances(points, centroids, "squared_euclidean", 2, 2, 3, chunk_size=1)
        assignments = assign(distances, 2, 2)
        sums, counts = zero_accumulators(2, 3)
        accumulate(points, assignments, 2, 2, 3, sums, counts)

        np.testing.assert_array_equal(distances.reshape(2, 2), [[0.0, 300.0], [300.0, 0.0]])
        np.testing.assert_array_equal(assignments, [0, 1])
        np.testing.assert_array_equal(sums.reshape(2, 3), [[0.0, 0.0, 0.0], [10.0, 10.0, 10.0]])
        np.testing.assert_array_equal(counts, [1, 1])

    def test_cumulative_difference_example(self):
        distances = compute_distances(
            [1.0, 2.0, 3.0, 3.0, 2.0, 1.0],
            [1.0, 2.0, 3.0],
            "cumulative_difference",
            2,
            1,
            3,
        )
        np.testing.assert_array_equal(distances, [0.0, 4.0])

    def test_accumulate_returns_same_buffers(self):
        sums, counts = zero_accumulators(1, 2)
        out_sums, out_counts = accumulate([1.0, 2.0], [0], 1, 1, 2, sums, counts)
        assert out_sums is sums
        assert out_counts is counts

    def test_zero_accumulators(self):
        sums, counts = zero_accumulators(4, 3)
        assert sums.shape == (12,)
        assert counts.shape == (4,)
        assert not sums.any() and not counts.any()
        with pytest.raises(InvalidClusterCount):
            zero_accumulators(0, 3)

    def test_assign_zero_clusters(self):
        with pytest.raises(InvalidClusterCount):
            assign(np.zeros(0), 0, 0)
