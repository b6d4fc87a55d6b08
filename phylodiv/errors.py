"""Error taxonomy for phylogenetic diversity computations."""

from __future__ import annotations


class PhyloDivError(ValueError):
    """Base class for input errors detected before any numeric work."""


class InputMismatchError(PhyloDivError):
    """Species labels in the community matrix have no matching tree leaf."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        shown = ", ".join(self.missing[:10])
        more = f" (+{len(self.missing) - 10} more)" if len(self.missing) > 10 else ""
        super().__init__(
            f"{len(self.missing)} species not found among tree leaves: {shown}{more}"
        )


class EmptyTreeError(PhyloDivError):
    """Fewer than two leaves remain after pruning the tree to the matrix."""


class EmptyCommunityError(PhyloDivError):
    """The community matrix has no communities or no occurrences at all."""


class DegenerateCommunityWarning(UserWarning):
    """A pairwise comparison had no data on either side."""
