"""The allele collection for one locus, with memoized derived products."""

import logging
import threading
from typing import Callable, Generic, Iterable, Iterator, Optional, TypeVar

import numpy as np

from .allele import (
    AlleleRecord,
    expand_allele_name,
    feature_sequences,
    match_locus,
    name_matches,
)
from .config import DEFAULT_DB_VERSION
from .errors import NotFoundError
from .features import FeatureTable, FeatureType

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Build-once cache cell
# ---------------------------------------------------------------------------


class _Unbuilt:
    def __repr__(self) -> str:
        return "UNBUILT"


UNBUILT = _Unbuilt()


class Memo(Generic[T]):
    """A value that is either UNBUILT or fully built.

    The builder runs outside any shared state and its result is published
    in one assignment, so readers never see a half-built value. A lock keeps
    concurrent first calls from building twice.
    """

    def __init__(self, builder: Callable[[], T]):
        self._builder = builder
        self._value = UNBUILT
        self._lock = threading.Lock()

    @property
    def built(self) -> bool:
        return self._value is not UNBUILT

    def peek(self):
        """Current value or UNBUILT, without building."""
        return self._value

    def get(self) -> T:
        value = self._value
        if value is not UNBUILT:
            return value
        with self._lock:
            if self._value is UNBUILT:
                self._value = self._builder()
            return self._value

    def rebuild(self) -> T:
        with self._lock:
            value = self._builder()
            self._value = value
            return value


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


class AlleleCollection:
    """All allele records of one locus, in database order.

    Records are immutable and the collection never changes after
    construction; subsets and concatenations are new collections.
    """

    def __init__(
        self,
        locus: str,
        records: Iterable[AlleleRecord] = (),
        db_version: str = DEFAULT_DB_VERSION,
        aligner=None,
    ):
        self.locus = match_locus(locus)
        self.db_version = db_version
        self.aligner = aligner

        self.records: dict[str, AlleleRecord] = {}
        for rec in records:
            if match_locus(rec.locus) != self.locus:
                raise ValueError(
                    f"{rec.allele_name} belongs to {rec.locus}, not {self.locus}"
                )
            # First occurrence wins
            self.records.setdefault(rec.allele_name, rec)

        self._distances = Memo(self._build_distances)
        self._consensus = Memo(self._build_consensus)

    def __repr__(self) -> str:
        n_complete = sum(self.is_complete())
        return (
            f"<AlleleCollection {self.locus} ({self.db_version}): "
            f"{len(self)} alleles, {n_complete} complete>"
        )

    def _derive(self, records: Iterable[AlleleRecord]) -> "AlleleCollection":
        return AlleleCollection(
            self.locus, records, db_version=self.db_version, aligner=self.aligner,
        )

    # -- AlleleSet contract ------------------------------------------------

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[AlleleRecord]:
        return iter(self.records.values())

    def __contains__(self, name: str) -> bool:
        return name in self.records

    def names(self) -> list[str]:
        return list(self.records)

    def sequences(self) -> dict[str, str]:
        return {n: r.sequence for n, r in self.records.items()}

    def feature_tables(self) -> dict[str, FeatureTable]:
        return {n: r.features for n, r in self.records.items()}

    def metadata(self) -> list[dict]:
        return [r.as_dict() for r in self]

    def is_complete(self) -> list[bool]:
        return [r.complete for r in self]

    def is_lsl(self) -> list[bool]:
        return [r.lsl for r in self]

    def exon(self, index: int | None = None) -> dict[str, str]:
        return feature_sequences(self, FeatureType.EXON, index)

    def intron(self, index: int | None = None) -> dict[str, str]:
        return feature_sequences(self, FeatureType.INTRON, index)

    def utr(self, index: int | None = None) -> dict[str, str]:
        return feature_sequences(self, FeatureType.UTR, index)

    def allele_ids(self) -> list[str]:
        return [r.allele_id for r in self]

    def g_groups(self) -> list[Optional[str]]:
        return [r.g_group for r in self]

    def p_groups(self) -> list[Optional[str]]:
        return [r.p_group for r in self]

    def cwd_statuses(self) -> list[str]:
        return [r.cwd_status.value for r in self]

    # -- Lookup and subsetting ---------------------------------------------

    def expand(self, name: str) -> str:
        return expand_allele_name(name, self.locus)

    def get(self, name: str) -> AlleleRecord:
        """Exact lookup of one record (short designations are expanded).

        Raises:
            NotFoundError: if no record has that name.
        """
        full = self.expand(name)
        try:
            return self.records[full]
        except KeyError:
            raise NotFoundError(f"Allele {full!r} not found in {self.locus}") from None

    def index_of(self, name: str) -> int:
        full = self.expand(name)
        for i, n in enumerate(self.records):
            if n == full:
                return i
        raise NotFoundError(f"Allele {full!r} not found in {self.locus}")

    def select(self, names: Iterable[str]) -> "AlleleCollection":
        """Subset by exact names, keeping collection order."""
        wanted = {self.expand(n) for n in names}
        return self._derive(r for n, r in self.records.items() if n in wanted)

    def match(self, designation: str, partial: bool = True) -> "AlleleCollection":
        """Records named ``designation`` or, if ``partial``, below it.

        "01:03" matches "HLA-DPA1*01:03:01:01" but not "HLA-DPA1*01:031".
        """
        full = self.expand(designation)
        return self._derive(
            r for n, r in self.records.items() if name_matches(n, full, partial)
        )

    def filter(self, predicate: Callable[[AlleleRecord], bool]) -> "AlleleCollection":
        return self._derive(r for r in self if predicate(r))

    def complete(self) -> "AlleleCollection":
        return self.filter(lambda r: r.complete)

    def lsl(self) -> "AlleleCollection":
        return self.filter(lambda r: r.lsl)

    def __getitem__(self, key) -> "AlleleCollection":
        """Subset by name/designation, list of names, predicate or boolean mask."""
        if isinstance(key, str):
            return self.match(key)
        if callable(key):
            return self.filter(key)
        key = list(key)
        if key and all(isinstance(k, (bool, np.bool_)) for k in key):
            if len(key) != len(self):
                raise ValueError(
                    f"Boolean mask has {len(key)} entries for {len(self)} alleles"
                )
            return self._derive(r for r, keep in zip(self, key) if keep)
        return self.select(key)

    def concat(self, other: "AlleleCollection") -> "AlleleCollection":
        """Union of two collections, de-duplicated by name in first-seen order."""
        if match_locus(other.locus) != self.locus:
            raise ValueError(f"Cannot combine {self.locus} with {other.locus}")
        return self._derive([*self, *other])

    def __add__(self, other: "AlleleCollection") -> "AlleleCollection":
        return self.concat(other)

    # -- Memoized products -------------------------------------------------

    def _require_aligner(self):
        if self.aligner is None:
            from .aligner import get_aligner
            self.aligner = get_aligner()
        return self.aligner

    def _build_distances(self):
        from .distance import build_distance_matrix
        return build_distance_matrix(self, self._require_aligner())

    def _build_consensus(self) -> str:
        from .consensus import build_consensus
        return build_consensus(self, self._require_aligner())

    def has_distances(self) -> bool:
        return self._distances.built

    def distance_matrix(self):
        """Exon distance matrix over all alleles, built on first use."""
        return self._distances.get()

    def rebuild_distances(self):
        return self._distances.rebuild()

    def has_consensus(self) -> bool:
        return self._consensus.built

    def consensus(self) -> str:
        """Consensus of all complete alleles, built on first use."""
        return self._consensus.get()

    def rebuild_consensus(self) -> str:
        return self._consensus.rebuild()
