"""phylodiv: phylogenetic and taxonomic diversity over sparse community data.

Encodes a rooted tree as a sparse branch-by-community incidence matrix so
that phylogenetic diversity (PD), phylogenetic endemism (PE) and pairwise
beta diversity (turnover / nestedness / total) are sparse linear algebra
rather than per-pair tree walks.
"""

__version__ = "0.1.0"

from .alpha import species_richness, weighted_endemism
from .beta import beta_components, phylogenetic_beta, taxonomic_beta
from .community import CommunityMatrix
from .config import EngineConfig, configure_logging
from .encoder import BranchIncidence, encode
from .errors import (
    DegenerateCommunityWarning,
    EmptyCommunityError,
    EmptyTreeError,
    InputMismatchError,
    PhyloDivError,
)
from .results import AlphaResult, BetaResult
from .session import (
    DiversitySession,
    phylo_beta_diversity,
    phylo_diversity,
    phylo_endemism,
)
from .tree import Tree

__all__ = [
    "AlphaResult",
    "BetaResult",
    "BranchIncidence",
    "CommunityMatrix",
    "DegenerateCommunityWarning",
    "DiversitySession",
    "EmptyCommunityError",
    "EmptyTreeError",
    "EngineConfig",
    "InputMismatchError",
    "PhyloDivError",
    "Tree",
    "beta_components",
    "configure_logging",
    "encode",
    "phylo_beta_diversity",
    "phylo_diversity",
    "phylo_endemism",
    "phylogenetic_beta",
    "species_richness",
    "taxonomic_beta",
    "weighted_endemism",
]
