"""Caller-owned calculation session holding the encoded incidence structure."""

from __future__ import annotations

import logging

from . import alpha, beta
from .community import CommunityMatrix
from .config import EngineConfig
from .encoder import BranchIncidence, encode
from .results import AlphaResult, BetaResult
from .tree import Tree

logger = logging.getLogger(__name__)


class DiversitySession:
    """Encode a (tree, matrix) pair once and serve every metric from it.

    The constructor runs the encoder, so input errors (unmatched species,
    degenerate tree or matrix) surface before any metric is computed. The
    encoded state is dropped on ``close()`` or when leaving a ``with`` block.

    Usage:
        with DiversitySession(tree, matrix) as session:
            pd = session.pd()
            pbeta = session.beta_phylogenetic()
    """

    def __init__(
        self,
        tree: Tree,
        matrix: CommunityMatrix,
        config: EngineConfig | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.matrix = matrix
        self._encoded: BranchIncidence | None = encode(
            tree, matrix, weighting=self.config.weighting
        )

    def _check_open(self) -> None:
        if self._encoded is None:
            raise RuntimeError("Session is closed")

    @property
    def encoded(self) -> BranchIncidence:
        self._check_open()
        return self._encoded

    @property
    def closed(self) -> bool:
        return self._encoded is None

    def close(self) -> None:
        if self._encoded is not None:
            logger.debug("Releasing encoded incidence (%d nonzero)", self._encoded.nnz)
        self._encoded = None

    def __enter__(self) -> DiversitySession:
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # Alpha
    def pd(self) -> AlphaResult:
        return alpha.phylo_diversity(self.encoded)

    def pe(self) -> AlphaResult:
        return alpha.phylo_endemism(self.encoded)

    def richness(self) -> AlphaResult:
        self._check_open()
        return alpha.species_richness(self.matrix)

    def weighted_endemism(self) -> AlphaResult:
        self._check_open()
        return alpha.weighted_endemism(self.matrix)

    # Beta
    def beta_taxonomic(self) -> BetaResult:
        self._check_open()
        return beta.taxonomic_beta(self.matrix, self.config)

    def beta_phylogenetic(self) -> BetaResult:
        return beta.phylogenetic_beta(self.encoded, self.config)


def phylo_diversity(
    tree: Tree, matrix: CommunityMatrix, config: EngineConfig | None = None
) -> AlphaResult:
    """PD per community for a one-off (tree, matrix) pair."""
    with DiversitySession(tree, matrix, config) as session:
        return session.pd()


def phylo_endemism(
    tree: Tree, matrix: CommunityMatrix, config: EngineConfig | None = None
) -> AlphaResult:
    """PE per community for a one-off (tree, matrix) pair."""
    with DiversitySession(tree, matrix, config) as session:
        return session.pe()


def phylo_beta_diversity(
    tree: Tree, matrix: CommunityMatrix, config: EngineConfig | None = None
) -> BetaResult:
    """Decomposed phylogenetic beta diversity for a one-off (tree, matrix) pair."""
    with DiversitySession(tree, matrix, config) as session:
        return session.beta_phylogenetic()
