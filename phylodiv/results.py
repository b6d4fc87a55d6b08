"""Labelled containers for alpha vectors and pairwise beta matrices."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from scipy.spatial.distance import squareform

BETA_COMPONENTS = ("turnover", "nestedness", "total")


@dataclass
class AlphaResult:
    """One value per community, in the input row order."""

    community_ids: list[str]
    values: np.ndarray  # shape (n_communities,)
    metric: str

    def __post_init__(self) -> None:
        if self.values.shape != (len(self.community_ids),):
            raise ValueError(
                f"values has shape {self.values.shape}, expected ({len(self.community_ids)},)"
            )

    def __len__(self) -> int:
        return len(self.community_ids)

    def __getitem__(self, community_id: str) -> float:
        return float(self.values[self.community_ids.index(community_id)])

    def to_dict(self) -> dict[str, float]:
        return {c: float(v) for c, v in zip(self.community_ids, self.values)}


@dataclass
class BetaResult:
    """Decomposed pairwise dissimilarity: three symmetric matrices.

    ``total = turnover + nestedness`` elementwise. Pairs where both
    communities are empty hold the session's degenerate value (NaN by
    default).
    """

    community_ids: list[str]
    turnover: np.ndarray  # shape (n_communities, n_communities)
    nestedness: np.ndarray
    total: np.ndarray
    metric: str
    index_family: str = "sorensen"
    degenerate: np.ndarray | None = None  # bool mask of undefined pairs

    def __post_init__(self) -> None:
        n = len(self.community_ids)
        if self.degenerate is None:
            self.degenerate = ~np.isfinite(self.total)
        for name in BETA_COMPONENTS:
            if getattr(self, name).shape != (n, n):
                raise ValueError(
                    f"{name} has shape {getattr(self, name).shape}, expected ({n}, {n})"
                )

    def component(self, name: str) -> np.ndarray:
        if name not in BETA_COMPONENTS:
            raise KeyError(f"Unknown component {name!r}; expected one of {BETA_COMPONENTS}")
        return getattr(self, name)

    def condensed(self, name: str = "total") -> np.ndarray:
        """Upper triangle in ``scipy.spatial.distance.pdist`` order."""
        return squareform(self.component(name), force="tovector", checks=False)

    def pairs(self, name: str = "total") -> dict[tuple[str, str], float]:
        """Mapping from unordered community pair (i < j by row order) to value."""
        mat = self.component(name)
        rows, cols = np.triu_indices(len(self.community_ids), k=1)
        ids = self.community_ids
        return {(ids[i], ids[j]): float(mat[i, j]) for i, j in zip(rows, cols)}

    def degenerate_pairs(self) -> list[tuple[str, str]]:
        """Unordered pairs (self-pairs included) with an undefined dissimilarity."""
        rows, cols = np.nonzero(np.triu(self.degenerate))
        ids = self.community_ids
        return [(ids[i], ids[j]) for i, j in zip(rows, cols)]
