# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Tests for cosine similarity re-scoring."""

import math

import pytest

from semcache.cache.similarity import cosine_similarity
from semcache.errors import DimensionMismatchError


class TestCosineSimilarity:

    def test_identical_vectors(self):
        assert cosine_similarity([0.3, 0.4, 0.5], [0.3, 0.4, 0.5]) == pytest.approx(1.0)

    def test_scale_invariant(self):
        assert cosine_similarity([1.0, 2.0], [10.0, 20.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)

    def test_opposite(self):
        assert cosine_similarity([1.0, 2.0], [-1.0, -2.0]) == pytest.approx(-1.0)

    def test_symmetric(self):
        a, b = [0.1, 0.9, -0.3], [0.7, 0.2, 0.4]
        assert cosine_similarity(a, b) == cosine_similarity(b, a)

    def test_known_value(self):
        assert cosine_similarity([1.0, 1.0], [1.0, 0.0]) == pytest.approx(1 / math.sqrt(2))

    @pytest.mark.parametrize("zero, other", [([0.0, 0.0], [1.0, 2.0]), ([1.0, 2.0], [0.0, 0.0])])
    def test_zero_vector_is_zero(self, zero, other):
        assert cosine_similarity(zero, other) == 0.0

    def test_self_similarity_never_exceeds_one(self):
        v = [0.1 * i + 0.01 for i in range(1536)]
        assert cosine_similarity(v, v) <= 1.0

    def test_length_mismatch_raises(self):
        with pytest.raises(DimensionMismatchError) as exc_info:
            cosine_similarity([1.0, 2.0, 3.0], [1.0, 2.0])
        assert exc_info.value.details == {"left": 3, "right": 2}
