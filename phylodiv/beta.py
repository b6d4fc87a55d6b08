"""Pairwise beta diversity decomposed into turnover and nestedness.

Both the taxonomic and the phylogenetic variant reduce to the same three
quantities per community pair (i, j):

    a  shared weight       (species count, or branch length occupied by both)
    b  weight only in i
    c  weight only in j

Sorensen family (Baselga 2010):
    total      = (b + c) / (2a + b + c)
    turnover   = min(b, c) / (a + min(b, c))
    nestedness = total - turnover

Jaccard family:
    total      = (b + c) / (a + b + c)
    turnover   = 2 min(b, c) / (a + 2 min(b, c))
    nestedness = total - turnover

``a`` for every pair comes from one blockwise sparse product
``X diag(w) X^T`` (see ``sparse.WeightedGram``); ``b`` and ``c`` follow from
the per-community totals.
"""

from __future__ import annotations

import logging
import warnings

import numpy as np
import scipy.sparse as sp

from .community import CommunityMatrix
from .config import INDEX_FAMILIES, EngineConfig
from .encoder import BranchIncidence
from .errors import DegenerateCommunityWarning
from .results import BetaResult
from .sparse import WeightedGram, iter_row_blocks

logger = logging.getLogger(__name__)


def beta_components(
    shared: np.ndarray,
    unique_i: np.ndarray,
    unique_j: np.ndarray,
    index_family: str = "sorensen",
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Turnover, nestedness and total dissimilarity from a, b, c.

    Inputs broadcast against each other. Where ``a + b + c == 0`` (both
    communities empty) all three outputs are NaN. Where exactly one side is
    empty the pair is fully nested: turnover 0, nestedness = total = 1.
    """
    if index_family not in INDEX_FAMILIES:
        raise ValueError(
            f"index_family must be one of {INDEX_FAMILIES}, got {index_family!r}"
        )
    a = np.asarray(shared, dtype=np.float64)
    b = np.clip(np.asarray(unique_i, dtype=np.float64), 0.0, None)
    c = np.clip(np.asarray(unique_j, dtype=np.float64), 0.0, None)
    a, b, c = np.broadcast_arrays(a, b, c)

    m = np.minimum(b, c)
    if index_family == "sorensen":
        total_den = 2.0 * a + b + c
        turn_num = m
    else:
        total_den = a + b + c
        turn_num = 2.0 * m
    turn_den = a + turn_num

    degenerate = total_den <= 0.0
    total = np.divide(
        b + c, total_den, out=np.full(a.shape, np.nan), where=~degenerate
    )
    turnover = np.divide(
        turn_num, turn_den, out=np.zeros(a.shape), where=turn_den > 0.0
    )
    turnover[degenerate] = np.nan
    nestedness = np.clip(total - turnover, 0.0, None)
    return turnover, nestedness, total


def _pairwise(
    x: sp.spmatrix,
    weights: np.ndarray | None,
    community_ids: list[str],
    metric: str,
    config: EngineConfig,
) -> BetaResult:
    gram = WeightedGram(x, weights)
    totals = gram.totals()
    n = gram.n

    turnover = np.empty((n, n))
    nestedness = np.empty((n, n))
    total = np.empty((n, n))

    # Each block fills rows start:stop from the diagonal rightwards; the
    # lower triangle is mirrored afterwards.
    for start, stop in iter_row_blocks(n, config.block_size):
        shared = gram.block(start, stop, col_start=start)
        t_i = totals[start:stop, np.newaxis]
        t_j = totals[np.newaxis, start:]
        tu, ne, to = beta_components(
            shared, t_i - shared, t_j - shared, config.index_family
        )
        turnover[start:stop, start:] = tu
        nestedness[start:stop, start:] = ne
        total[start:stop, start:] = to
        logger.debug("%s beta: rows %d-%d of %d done", metric, start, stop, n)

    lower = np.tril_indices(n, -1)
    for mat in (turnover, nestedness, total):
        mat[lower] = mat.T[lower]

    # Only a pair of communities with no occurrences at all is undefined.
    # Occupied communities whose branches sum to zero length compare as 0.
    empty = np.diff(gram.x.indptr) == 0
    degenerate = empty[:, np.newaxis] & empty[np.newaxis, :]
    zero_length = np.isnan(total) & ~degenerate
    diag = np.arange(n)
    for mat in (turnover, nestedness, total):
        mat[zero_length] = 0.0
        mat[diag[~empty], diag[~empty]] = 0.0

    if degenerate.any():
        empty_ids = [community_ids[i] for i in np.flatnonzero(empty)]
        n_pairs = int(np.triu(degenerate).sum())
        shown = ", ".join(empty_ids[:10]) + (" ..." if len(empty_ids) > 10 else "")
        logger.warning(
            "%s beta: %d pair(s) have no data on either side "
            "(empty communities: %s); reported as %s",
            metric,
            n_pairs,
            shown,
            config.degenerate_value,
        )
        if config.warn_degenerate:
            warnings.warn(
                f"{metric} beta: {n_pairs} pair(s) have no data on either side "
                f"(empty communities: {shown}); reported as {config.degenerate_value}",
                DegenerateCommunityWarning,
                stacklevel=3,
            )
        for mat in (turnover, nestedness, total):
            mat[degenerate] = config.degenerate_value

    return BetaResult(
        community_ids=list(community_ids),
        turnover=turnover,
        nestedness=nestedness,
        total=total,
        metric=metric,
        index_family=config.index_family,
        degenerate=degenerate,
    )


def taxonomic_beta(
    matrix: CommunityMatrix, config: EngineConfig | None = None
) -> BetaResult:
    """Species-set beta diversity for all community pairs (presence/absence)."""
    config = config or EngineConfig()
    matrix.check_not_empty()
    return _pairwise(
        matrix.presence(), None, list(matrix.community_ids), "taxonomic", config
    )


def phylogenetic_beta(
    encoded: BranchIncidence, config: EngineConfig | None = None
) -> BetaResult:
    """Branch-length beta diversity for all community pairs.

    Set cardinalities are replaced by summed lengths of occupied branches,
    so with unit lengths on a star tree the result equals the taxonomic one.
    """
    config = config or EngineConfig()
    return _pairwise(
        encoded.community_branches(),
        np.asarray(encoded.branch_lengths),
        list(encoded.community_ids),
        "phylogenetic",
        config,
    )
