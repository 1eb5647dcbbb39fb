"""Feature tables: named, typed ranges on one allele's sequence.

Coordinates are 1-based and end-inclusive, relative to the owning allele's
own sequence. A FeatureTable keeps its ranges in biological (5' to 3')
order, which is given by each range's ``order`` and is not necessarily the
order of ``start``.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum
from itertools import accumulate
from typing import Iterable, Iterator

from .errors import NotFoundError


class FeatureType(str, Enum):
    UTR = "UTR"
    EXON = "Exon"
    INTRON = "Intron"
    OTHER = "Other"

    @classmethod
    def parse(cls, value) -> "FeatureType":
        """Case-insensitive lookup; anything unrecognized is OTHER."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.OTHER


class FeatureStatus(str, Enum):
    COMPLETE = "Complete"
    PARTIAL = "Partial"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value) -> "FeatureStatus":
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.UNKNOWN


_NUMBER_RE = re.compile(r"\s(\d+)$")


@dataclass(frozen=True)
class Range:
    """One feature on an allele sequence (1-based, inclusive)."""

    start: int
    end: int
    name: str
    kind: FeatureType = FeatureType.OTHER
    order: int = 0
    status: FeatureStatus = FeatureStatus.UNKNOWN
    frame: int | None = None

    def __post_init__(self):
        if self.start < 1:
            raise ValueError(f"{self.name}: start must be >= 1, got {self.start}")
        if self.end < self.start:
            raise ValueError(
                f"{self.name}: start {self.start} is past end {self.end}"
            )

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def number(self) -> int | None:
        """Serial number from the feature name ("Exon 2" -> 2); None for UTRs."""
        if self.kind == FeatureType.UTR:
            return None
        m = _NUMBER_RE.search(self.name)
        return int(m.group(1)) if m else None

    def shifted(self, offset: int) -> "Range":
        return replace(self, start=self.start + offset, end=self.end + offset)

    def with_span(self, start: int, end: int) -> "Range":
        return replace(self, start=start, end=end)

    def span_string(self) -> str:
        return f"{self.start}:{self.end}"


def normalize_ranges(lengths: Iterable[int]) -> list[tuple[int, int]]:
    """Derive contiguous 1-based coordinates from ordered fragment lengths.

    Used whenever a sequence is assembled by concatenating sub-fragments and
    only the fragment lengths are known.

    >>> normalize_ranges([9, 100, 50])
    [(1, 9), (10, 109), (110, 159)]
    """
    lengths = list(lengths)
    for n in lengths:
        if n < 1:
            raise ValueError(f"Fragment lengths must be positive, got {n}")
    ends = list(accumulate(lengths))
    starts = [1] + [e + 1 for e in ends[:-1]]
    return list(zip(starts, ends))


@dataclass(frozen=True)
class FeatureTable(Sequence):
    """Ordered, non-overlapping collection of Range objects."""

    ranges: tuple[Range, ...] = ()

    def __post_init__(self):
        ordered = tuple(sorted(self.ranges, key=lambda r: r.order))
        object.__setattr__(self, "ranges", ordered)

        names = [r.name for r in ordered]
        if len(set(names)) != len(names):
            dupes = sorted({n for n in names if names.count(n) > 1})
            raise ValueError(f"Duplicate feature names: {', '.join(dupes)}")

        by_start = sorted(ordered, key=lambda r: r.start)
        for prev, cur in zip(by_start, by_start[1:]):
            if cur.start <= prev.end:
                raise ValueError(
                    f"Features overlap: {prev.name} ({prev.start}-{prev.end}) "
                    f"and {cur.name} ({cur.start}-{cur.end})"
                )

    def __len__(self) -> int:
        return len(self.ranges)

    def __getitem__(self, i):
        return self.ranges[i]

    def __iter__(self) -> Iterator[Range]:
        return iter(self.ranges)

    def __str__(self) -> str:
        return "|".join(f"{r.name}:{r.start}-{r.end}" for r in self.ranges)

    def names(self) -> list[str]:
        return [r.name for r in self.ranges]

    def by_name(self, name: str) -> Range:
        for r in self.ranges:
            if r.name == name:
                return r
        raise NotFoundError(f"Feature {name!r} not found")

    def has(self, name: str) -> bool:
        return any(r.name == name for r in self.ranges)

    def by_kind(
        self,
        kind: FeatureType | str,
        index: int | None = None,
    ) -> list[Range] | Range:
        """Return the ranges of one kind, or the ``index``-th of them.

        ``index`` is 1-based and counts only ranges of ``kind`` in
        biological order: ``by_kind("UTR", 2)`` is the 3' UTR.

        Raises:
            NotFoundError: if ``index`` is given and no such range exists.
        """
        kind = FeatureType.parse(kind)
        matches = [r for r in self.ranges if r.kind == kind]
        if index is None:
            return matches
        if not 1 <= index <= len(matches):
            raise NotFoundError(
                f"No {kind.value} {index}: only {len(matches)} present"
            )
        return matches[index - 1]

    @staticmethod
    def slice(sequence: str, rng: Range) -> str:
        """Substring of ``sequence`` covered by ``rng``."""
        return sequence[rng.start - 1:rng.end]

    def total_length(self) -> int:
        return sum(r.length for r in self.ranges)

    def is_contiguous(self) -> bool:
        by_start = sorted(self.ranges, key=lambda r: r.start)
        return all(
            cur.start == prev.end + 1 for prev, cur in zip(by_start, by_start[1:])
        )

    def tiles(self, length: int) -> bool:
        """True if the ranges cover positions 1..length with no gaps."""
        if not self.ranges:
            return False
        by_start = sorted(self.ranges, key=lambda r: r.start)
        return (
            by_start[0].start == 1
            and by_start[-1].end == length
            and self.is_contiguous()
        )

    def normalized(self) -> "FeatureTable":
        """Re-base the table onto contiguous coordinates in biological order."""
        spans = normalize_ranges(r.length for r in self.ranges)
        return FeatureTable(tuple(
            r.with_span(s, e) for r, (s, e) in zip(self.ranges, spans)
        ))
