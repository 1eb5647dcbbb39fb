"""Pairwise distances between alleles over one shared feature."""

import logging
from dataclasses import dataclass

import numpy as np

from .config import DISTANCE_FEATURE
from .errors import NotFoundError

logger = logging.getLogger(__name__)

_GAP = ord("-")


@dataclass(frozen=True, eq=False)
class DistanceMatrix:
    """Symmetric, zero-diagonal matrix keyed by allele name."""

    names: tuple[str, ...]
    values: np.ndarray

    def __len__(self) -> int:
        return len(self.names)

    def index(self, name: str) -> int:
        try:
            return self.names.index(name)
        except ValueError:
            raise NotFoundError(f"Allele {name!r} not in distance matrix") from None

    def distance(self, a: str, b: str) -> float:
        return float(self.values[self.index(a), self.index(b)])

    def submatrix(self, rows: list[str], cols: list[str]) -> np.ndarray:
        """Rows and columns picked by allele name, in the order given."""
        ri = [self.index(n) for n in rows]
        ci = [self.index(n) for n in cols]
        return self.values[np.ix_(ri, ci)]


def _encode(rows: list[str]) -> np.ndarray:
    widths = {len(r) for r in rows}
    if len(widths) > 1:
        raise ValueError(f"Aligned rows differ in length: {sorted(widths)}")
    width = widths.pop() if widths else 0
    buf = "".join(rows).upper().encode("ascii")
    return np.frombuffer(buf, dtype=np.uint8).reshape(len(rows), width)


def distance_values(rows: list[str]) -> np.ndarray:
    """All-pairs distances between aligned rows.

    Per pair, only columns between the later of the two first letters and
    the earlier of the two last letters count (terminal gaps excluded).
    Within that window gap-gap columns are skipped, gap-letter columns are
    mismatches, and the distance is mismatches / counted columns. Pairs with
    no counted column get 1.0.
    """
    n = len(rows)
    values = np.zeros((n, n), dtype=float)
    if n < 2:
        return values

    m = _encode(rows)
    gaps = m == _GAP
    width = m.shape[1]
    has_letter = ~gaps.all(axis=1)
    first = np.where(has_letter, np.argmax(~gaps, axis=1), width)
    last = np.where(has_letter, width - 1 - np.argmax(~gaps[:, ::-1], axis=1), -1)
    cols = np.arange(width)

    for i in range(n - 1):
        other = m[i + 1:]
        lo = np.maximum(first[i], first[i + 1:])
        hi = np.minimum(last[i], last[i + 1:])
        window = (cols >= lo[:, None]) & (cols <= hi[:, None])
        counted = window & ~(gaps[i] & gaps[i + 1:])
        mismatched = counted & (other != m[i])
        length = counted.sum(axis=1)
        mism = mismatched.sum(axis=1)
        d = np.divide(
            mism, length,
            out=np.ones(len(length), dtype=float),
            where=length > 0,
        )
        values[i, i + 1:] = d
        values[i + 1:, i] = d
    return values


def pairwise_distance(row_a: str, row_b: str) -> float:
    """Distance between two aligned rows (see distance_values)."""
    return float(distance_values([row_a, row_b])[0, 1])


def build_distance_matrix(
    collection,
    aligner,
    feature: str = DISTANCE_FEATURE,
) -> DistanceMatrix:
    """Align one shared feature across every allele and compute distances.

    Fragments are keyed by bare allele name so feature labels never reach
    the aligner.

    Raises:
        NotFoundError: if an allele lacks ``feature``.
        AlignmentUnavailableError: if the aligner cannot run.
    """
    fragments = {rec.allele_name: rec.feature_sequence(feature) for rec in collection}
    logger.info(
        "Building %s distance matrix over %d alleles of %s",
        feature, len(fragments), collection.locus,
    )
    aligned = aligner.align(fragments)
    rows = [aligned[name] for name in fragments]
    values = distance_values(rows)
    logger.info("Distance matrix complete (%d x %d)", *values.shape)
    return DistanceMatrix(names=tuple(fragments), values=values)
