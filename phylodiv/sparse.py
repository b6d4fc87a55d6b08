"""Sparse linear-algebra primitives shared by the alpha and beta metrics.

Thin helpers over ``scipy.sparse`` CSR/CSC storage. Every metric is
expressed as one of these operations on the branch incidence matrix, so no
routine here walks the tree.
"""

from __future__ import annotations

from collections.abc import Iterator

import numpy as np
import scipy.sparse as sp


def as_csr(mat) -> sp.csr_matrix:
    """Float64 CSR view of a dense or sparse matrix, indices sorted."""
    out = sp.csr_matrix(mat, dtype=np.float64)
    out.sort_indices()
    return out


def binarize(mat: sp.spmatrix) -> sp.csr_matrix:
    """0/1 copy of *mat*: every stored nonzero becomes 1.0."""
    out = sp.csr_matrix(mat, dtype=np.float64, copy=True)
    out.eliminate_zeros()
    out.data[:] = 1.0
    return out


def matvec(mat: sp.spmatrix, vec: np.ndarray) -> np.ndarray:
    """Sparse matrix times dense vector, returned as a flat float64 array."""
    return np.asarray(mat @ np.asarray(vec, dtype=np.float64), dtype=np.float64).ravel()


def weighted_column_sums(mat: sp.spmatrix, weights: np.ndarray) -> np.ndarray:
    """``weights^T @ mat``: one weighted sum per column, cost O(nnz)."""
    csc = sp.csc_matrix(mat)
    return matvec(csc.T, weights)


def row_sums(mat: sp.spmatrix) -> np.ndarray:
    return np.asarray(mat.sum(axis=1), dtype=np.float64).ravel()


def scale_rows(mat: sp.spmatrix, factors: np.ndarray) -> sp.csr_matrix:
    """``diag(factors) @ mat``."""
    return sp.csr_matrix(sp.diags(np.asarray(factors, dtype=np.float64)) @ mat)


def scale_columns(mat: sp.spmatrix, factors: np.ndarray) -> sp.csr_matrix:
    """``mat @ diag(factors)``."""
    return sp.csr_matrix(mat @ sp.diags(np.asarray(factors, dtype=np.float64)))


def iter_row_blocks(n_rows: int, block_size: int) -> Iterator[tuple[int, int]]:
    """Yield ``(start, stop)`` covering ``range(n_rows)`` in contiguous blocks."""
    for start in range(0, n_rows, block_size):
        yield start, min(start + block_size, n_rows)


class WeightedGram:
    """Blockwise evaluator of ``X @ diag(w) @ X^T`` for a sparse ``X``.

    With ``X`` the community-by-feature presence matrix and ``w`` the feature
    weights (branch lengths, or ones for species), entry (i, j) is the
    summed weight of features shared by communities i and j. The product is
    never formed for all rows at once; ``block(start, stop)`` returns the
    dense slab for rows ``start:stop`` against every column community,
    computed with one sparse-sparse product whose cost follows the nonzero
    overlap rather than the full feature count.
    """

    def __init__(self, x: sp.spmatrix, weights: np.ndarray | None = None) -> None:
        self.x = as_csr(x)
        n_features = self.x.shape[1]
        if weights is None:
            weights = np.ones(n_features)
        weights = np.asarray(weights, dtype=np.float64)
        if weights.shape != (n_features,):
            raise ValueError(
                f"weights has shape {weights.shape}, expected ({n_features},)"
            )
        self.weights = weights
        self._xw = scale_columns(self.x, weights)
        self._xt = sp.csc_matrix(self.x.T)

    @property
    def n(self) -> int:
        return int(self.x.shape[0])

    def totals(self) -> np.ndarray:
        """Diagonal of the Gram matrix: summed weight per community."""
        return matvec(self.x, self.weights)

    def block(self, start: int, stop: int, col_start: int = 0) -> np.ndarray:
        """Dense slab ``G[start:stop, col_start:]`` of the weighted Gram matrix."""
        return (self._xw[start:stop] @ self._xt[:, col_start:]).toarray()
