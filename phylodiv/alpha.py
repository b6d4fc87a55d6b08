"""Alpha diversity: phylogenetic diversity, phylogenetic endemism, richness."""

from __future__ import annotations

import numpy as np

from .community import CommunityMatrix
from .encoder import BranchIncidence
from .results import AlphaResult
from .sparse import matvec, row_sums, weighted_column_sums


def _inverse_range(lengths: np.ndarray, ranges: np.ndarray) -> np.ndarray:
    """``lengths / ranges`` with unoccupied branches (range 0) contributing 0."""
    out = np.zeros_like(lengths, dtype=np.float64)
    occupied = ranges > 0
    out[occupied] = lengths[occupied] / ranges[occupied]
    return out


def phylo_diversity(encoded: BranchIncidence) -> AlphaResult:
    """Faith's PD: summed length of the branches each community occupies.

    One sparse product ``branch_lengths^T @ incidence``; communities with no
    occurrences get 0.
    """
    pd = weighted_column_sums(encoded.incidence, encoded.branch_lengths)
    return AlphaResult(
        community_ids=list(encoded.community_ids), values=pd, metric="PD"
    )


def phylo_endemism(encoded: BranchIncidence) -> AlphaResult:
    """Phylogenetic endemism: branch length divided by branch range, summed.

    The range of a branch is the number of communities occupying it, so a
    branch found in a single community contributes its full length. When
    the encoding was built with ``weighting="abundance"`` each community's
    share of a branch is its relative abundance below the branch and the
    range is the sum of those shares across communities.
    """
    if encoded.weighting == "abundance":
        occupancy = encoded.weights
        metric = "PE_abundance"
    else:
        occupancy = encoded.incidence
        metric = "PE"
    per_unit = _inverse_range(encoded.branch_lengths, row_sums(occupancy))
    pe = weighted_column_sums(occupancy, per_unit)
    return AlphaResult(
        community_ids=list(encoded.community_ids), values=pe, metric=metric
    )


def species_richness(matrix: CommunityMatrix) -> AlphaResult:
    """Number of species present in each community."""
    return AlphaResult(
        community_ids=list(matrix.community_ids),
        values=matrix.richness(),
        metric="richness",
    )


def weighted_endemism(matrix: CommunityMatrix) -> AlphaResult:
    """Weighted endemism: each species present contributes 1 / its range."""
    inv = _inverse_range(np.ones(matrix.n_species), matrix.species_range())
    we = matvec(matrix.presence(), inv)
    return AlphaResult(
        community_ids=list(matrix.community_ids), values=we, metric="WE"
    )
