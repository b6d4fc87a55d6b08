"""Community-by-species occurrence matrix."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np
import scipy.sparse as sp

from .errors import EmptyCommunityError
from .sparse import binarize, scale_rows


@dataclass
class CommunityMatrix:
    """Sparse community-by-species matrix of presences or abundances.

    ``occurrences`` may be given as any dense array or scipy sparse matrix;
    it is stored as float64 CSR with explicit zeros removed. Rows are
    communities (sites), columns are species (tree leaf labels).
    """

    community_ids: list[str]
    species_ids: list[str]
    occurrences: sp.csr_matrix  # shape (n_communities, n_species)

    def __post_init__(self) -> None:
        self.community_ids = [str(c) for c in self.community_ids]
        self.species_ids = [str(s) for s in self.species_ids]
        mat = sp.csr_matrix(self.occurrences, dtype=np.float64, copy=True)
        mat.eliminate_zeros()
        mat.sort_indices()

        n_comm, n_spp = mat.shape
        if n_comm != len(self.community_ids):
            raise ValueError(
                f"Row count {n_comm} != len(community_ids) {len(self.community_ids)}"
            )
        if n_spp != len(self.species_ids):
            raise ValueError(
                f"Col count {n_spp} != len(species_ids) {len(self.species_ids)}"
            )
        if len(set(self.community_ids)) != n_comm:
            raise ValueError("community_ids must be unique")
        if len(set(self.species_ids)) != n_spp:
            raise ValueError("species_ids must be unique")
        if mat.nnz and (not np.all(np.isfinite(mat.data)) or mat.data.min() < 0):
            raise ValueError("Occurrences must be finite and non-negative")
        self.occurrences = mat

    @classmethod
    def from_records(
        cls,
        records: Iterable[tuple[str, str] | tuple[str, str, float]],
        community_ids: Sequence[str] | None = None,
        species_ids: Sequence[str] | None = None,
    ) -> CommunityMatrix:
        """Build a matrix from long-format ``(community, species[, abundance])`` records.

        Records without an abundance count as presence (1.0); repeated
        records for the same cell are summed. Row and column order follow
        first appearance unless explicit ID lists are given, in which case
        records naming unknown IDs raise ``KeyError``.
        """
        comm_index = {c: i for i, c in enumerate(community_ids or [])}
        spp_index = {s: i for i, s in enumerate(species_ids or [])}
        rows: list[int] = []
        cols: list[int] = []
        vals: list[float] = []

        for rec in records:
            comm, spp = str(rec[0]), str(rec[1])
            value = float(rec[2]) if len(rec) > 2 else 1.0
            if comm not in comm_index:
                if community_ids is not None:
                    raise KeyError(f"Unknown community {comm!r}")
                comm_index[comm] = len(comm_index)
            if spp not in spp_index:
                if species_ids is not None:
                    raise KeyError(f"Unknown species {spp!r}")
                spp_index[spp] = len(spp_index)
            rows.append(comm_index[comm])
            cols.append(spp_index[spp])
            vals.append(value)

        mat = sp.coo_matrix(
            (vals, (rows, cols)), shape=(len(comm_index), len(spp_index))
        ).tocsr()
        return cls(
            community_ids=list(comm_index),
            species_ids=list(spp_index),
            occurrences=mat,
        )

    @property
    def n_communities(self) -> int:
        return len(self.community_ids)

    @property
    def n_species(self) -> int:
        return len(self.species_ids)

    @property
    def nnz(self) -> int:
        return int(self.occurrences.nnz)

    def check_not_empty(self) -> None:
        """Raise EmptyCommunityError when there is nothing to measure."""
        if self.n_communities == 0:
            raise EmptyCommunityError("Community matrix has no communities")
        if self.nnz == 0:
            raise EmptyCommunityError("Community matrix has no occurrences")

    def presence(self) -> sp.csr_matrix:
        """Binary (0/1) copy of the occurrence matrix."""
        return binarize(self.occurrences)

    def richness(self) -> np.ndarray:
        """Number of species present per community."""
        return np.diff(self.occurrences.indptr).astype(np.float64)

    def species_range(self) -> np.ndarray:
        """Number of communities each species occurs in."""
        return np.bincount(self.occurrences.indices, minlength=self.n_species).astype(
            np.float64
        )

    def relative(self) -> sp.csr_matrix:
        """Row-normalised abundances (each non-empty row sums to 1)."""
        totals = np.asarray(self.occurrences.sum(axis=1)).ravel()
        totals = np.where(totals == 0, 1.0, totals)
        return scale_rows(self.occurrences, 1.0 / totals)

    def subset_communities(self, community_ids: Sequence[str]) -> CommunityMatrix:
        """Return matrix with only the specified communities, in the given order."""
        idx_map = {c: i for i, c in enumerate(self.community_ids)}
        indices = [idx_map[c] for c in community_ids]
        return CommunityMatrix(
            community_ids=list(community_ids),
            species_ids=list(self.species_ids),
            occurrences=self.occurrences[indices],
        )

    def drop_absent_species(self) -> CommunityMatrix:
        """Remove species that occur in no community."""
        mask = self.species_range() > 0
        return CommunityMatrix(
            community_ids=list(self.community_ids),
            species_ids=[s for s, keep in zip(self.species_ids, mask) if keep],
            occurrences=self.occurrences[:, np.flatnonzero(mask)],
        )

    @property
    def present_species(self) -> list[str]:
        """Species that occur in at least one community."""
        mask = self.species_range() > 0
        return [s for s, keep in zip(self.species_ids, mask) if keep]
