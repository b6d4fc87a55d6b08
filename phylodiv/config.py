"""Engine configuration and logging setup."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

INDEX_FAMILIES = ("sorensen", "jaccard")
WEIGHTINGS = ("presence", "abundance")


@dataclass
class EngineConfig:
    """Configuration for a diversity session.

    Attributes:
        block_size: Communities per row block when evaluating pairwise
            products. Bounds the size of the dense slab materialised at once.
        index_family: Beta-diversity family, "sorensen" or "jaccard".
        weighting: "presence" (baseline) or "abundance". Abundance weighting
            only changes phylogenetic endemism; see ``alpha.phylo_endemism``.
        degenerate_value: Value reported for pairs with both communities empty.
        warn_degenerate: Emit a DegenerateCommunityWarning for such pairs.
    """

    block_size: int = 1024
    index_family: str = "sorensen"
    weighting: str = "presence"
    degenerate_value: float = math.nan
    warn_degenerate: bool = True

    def __post_init__(self) -> None:
        if self.block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {self.block_size}")
        if self.index_family not in INDEX_FAMILIES:
            raise ValueError(
                f"index_family must be one of {INDEX_FAMILIES}, got {self.index_family!r}"
            )
        if self.weighting not in WEIGHTINGS:
            raise ValueError(
                f"weighting must be one of {WEIGHTINGS}, got {self.weighting!r}"
            )


def configure_logging(verbose: bool = False) -> None:
    """Route phylodiv log records to stderr; DEBUG when verbose."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
