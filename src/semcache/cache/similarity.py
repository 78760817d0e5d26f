# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Cosine similarity used to re-score vector store candidates.

The store's own distance metric is never trusted for the threshold decision;
every candidate is re-scored here.
"""

from collections.abc import Sequence

import numpy as np

from ..errors import DimensionMismatchError


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return dot(a, b) / (||a|| * ||b||), clipped to [-1, 1].

    Returns 0.0 when either vector has zero norm.

    Raises:
        DimensionMismatchError: if the vectors differ in length
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise DimensionMismatchError(len(va), len(vb))

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0

    similarity = float(np.dot(va, vb)) / (norm_a * norm_b)
    # Rounding can push self-similarity a hair above 1.0
    return max(-1.0, min(1.0, similarity))
