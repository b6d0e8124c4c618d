"""Cosine scoring over sparse TF-IDF rows."""

from typing import Iterable

import numpy as np
from scipy.sparse import csr_matrix, vstack
from sklearn.metrics.pairwise import cosine_similarity as pairwise_cosine

from .models import SparseVector

# Rounding absorbs float drift so identical vectors score exactly 1.0.
SCORE_PRECISION = 12


def stack_rows(rows: Iterable[SparseVector]) -> csr_matrix:
    return vstack(list(rows), format="csr")


def cosine_matrix(a: csr_matrix, b: csr_matrix) -> np.ndarray:
    """
    Pairwise cosine similarity of the rows of ``a`` and ``b``.

    Weights are non-negative, so the scores are clamped into [0, 1] and
    rounded to SCORE_PRECISION decimal places. Rows without weight score 0.
    """
    if a.nnz == 0 or b.nnz == 0:
        return np.zeros((a.shape[0], b.shape[0]))
    scores = pairwise_cosine(a, b)
    return np.round(np.clip(scores, 0.0, 1.0), SCORE_PRECISION)


def cosine_similarity(a: SparseVector, b: SparseVector) -> float:
    """Cosine similarity of two 1 x V rows; 0.0 when either has zero norm."""
    return float(cosine_matrix(a, b)[0, 0])


def sum_rows(matrix: csr_matrix) -> csr_matrix:
    """Element-wise sum of the rows of ``matrix`` as a 1 x V row."""
    return csr_matrix(matrix.sum(axis=0))
