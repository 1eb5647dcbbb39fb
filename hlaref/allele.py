"""Allele records and HLA locus/allele name handling."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Protocol, runtime_checkable

from .config import FIELD_SEPARATOR, LSL_PATTERN, VALID_LOCI
from .errors import InvalidLocusError, NotFoundError
from .features import FeatureTable, FeatureType

_LSL_RE = re.compile(LSL_PATTERN)


# ---------------------------------------------------------------------------
# Locus and allele names
# ---------------------------------------------------------------------------


def match_locus(locusname: str) -> str:
    """Return the canonical "HLA-" form of a locus designation.

    Accepts "DPB1", "HLA-DPB1", "hla-dpb1" or a full allele name.

    Raises:
        InvalidLocusError: if the locus is not a recognized HLA gene.
    """
    text = (locusname or "").strip().upper().split("*")[0]
    if not text.startswith("HLA-"):
        text = f"HLA-{text}"
    if text not in VALID_LOCI:
        raise InvalidLocusError(
            f"{locusname!r} is not a recognized HLA locus "
            f"(expected one of {', '.join(VALID_LOCI)})"
        )
    return text


def expand_allele_name(name: str, locus: str | None = None) -> str:
    """Expand a short allele designation to its full name.

    E.g. with locus "DPA1":
        "01:03"            -> "HLA-DPA1*01:03"
        "DPA1*01:03"       -> "HLA-DPA1*01:03"
        "HLA-DPA1*01:03"   -> unchanged

    Without a locus only the "HLA-" prefix is added.
    """
    if locus is None:
        return name if re.match(r"^HLA-\S+", name) else f"HLA-{name}"

    gene = re.escape(match_locus(locus)[len("HLA-"):])
    if re.match(rf"^HLA-{gene}\*\d\d\d?:?.*$", name):
        return name
    if re.match(rf"^{gene}\*\d\d\d?:?.*$", name):
        return f"HLA-{name}"
    if re.match(r"^\d\d\d?:?.*$", name):
        return f"HLA-{match_locus(locus)[len('HLA-'):]}*{name}"
    return name


def name_matches(allele_name: str, designation: str, partial: bool = True) -> bool:
    """True if ``allele_name`` is ``designation`` or, when ``partial``, one of
    its descendants at field granularity ("...*01:03" matches "...*01:03:01"
    but never "...*01:031")."""
    if allele_name == designation:
        return True
    return partial and allele_name.startswith(designation + FIELD_SEPARATOR)


# ---------------------------------------------------------------------------
# Allele records
# ---------------------------------------------------------------------------


class CwdStatus(str, Enum):
    COMMON = "Common"
    WELL_DOCUMENTED = "Well-documented"
    RARE = "Rare"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value) -> "CwdStatus":
        if isinstance(value, cls):
            return value
        text = re.sub(r"[\s_-]+", "", str(value or "")).lower()
        aliases = {
            "common": cls.COMMON,
            "c": cls.COMMON,
            "welldocumented": cls.WELL_DOCUMENTED,
            "wd": cls.WELL_DOCUMENTED,
            "rare": cls.RARE,
        }
        return aliases.get(text, cls.UNKNOWN)


@runtime_checkable
class AlleleSet(Protocol):
    """Read-only accessors shared by a single allele and a whole locus."""

    locus: str

    def __len__(self) -> int: ...

    def __iter__(self) -> Iterator["AlleleRecord"]: ...

    def names(self) -> list[str]: ...

    def sequences(self) -> dict[str, str]: ...

    def feature_tables(self) -> dict[str, FeatureTable]: ...

    def metadata(self) -> list[dict]: ...

    def is_complete(self) -> list[bool]: ...

    def is_lsl(self) -> list[bool]: ...

    def exon(self, index: int | None = None) -> dict[str, str]: ...

    def intron(self, index: int | None = None) -> dict[str, str]: ...

    def utr(self, index: int | None = None) -> dict[str, str]: ...


def _serial(rng) -> int | None:
    """Number a feature is asked for by: "Exon 2" -> 2, 5' UTR -> 1, 3' UTR -> 2."""
    if rng.kind == FeatureType.UTR:
        return {"5": 1, "3": 2}.get(rng.name[:1])
    return rng.number


def feature_sequences(
    alleles,
    kind: FeatureType,
    index: int | None = None,
) -> dict[str, str]:
    """Collect feature subsequences of one kind across ``alleles``.

    Keys are "<allele name> <feature name>"; values are the subsequences.
    ``index`` picks the feature by its number ("Exon 2" is exon 2 whatever
    precedes it on a partial allele); alleles without it are skipped.

    Raises:
        NotFoundError: if ``index`` is given and no allele has that feature.
    """
    out: dict[str, str] = {}
    for allele in alleles:
        for rng in allele.features.by_kind(kind):
            if index is None or _serial(rng) == index:
                out[f"{allele.allele_name} {rng.name}"] = FeatureTable.slice(
                    allele.sequence, rng
                )
    if index is not None and not out:
        raise NotFoundError(f"No {FeatureType.parse(kind).value} {index} present")
    return out


@dataclass(frozen=True)
class AlleleRecord:
    """One parsed allele of a locus.

    Immutable once built; reconstructed sequences and consensus are derived
    products and never stored back on the record.
    """

    allele_id: str
    allele_name: str
    locus: str
    sequence: str
    features: FeatureTable
    complete: bool = False
    g_group: str | None = None
    p_group: str | None = None
    cwd_status: CwdStatus = CwdStatus.UNKNOWN
    ethnicities: frozenset[str] = frozenset()
    sample_names: frozenset[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "sequence", self.sequence.upper())
        object.__setattr__(self, "cwd_status", CwdStatus.parse(self.cwd_status))
        object.__setattr__(self, "ethnicities", frozenset(self.ethnicities))
        object.__setattr__(self, "sample_names", frozenset(self.sample_names))
        if not isinstance(self.features, FeatureTable):
            object.__setattr__(self, "features", FeatureTable(tuple(self.features)))

        seq_len = len(self.sequence)
        for rng in self.features:
            if rng.end > seq_len:
                raise ValueError(
                    f"{self.allele_name}: feature {rng.name} ends at {rng.end}, "
                    f"past sequence length {seq_len}"
                )
        if self.complete and not self.features.tiles(seq_len):
            raise ValueError(
                f"{self.allele_name}: marked complete but features do not "
                f"tile the sequence (1..{seq_len})"
            )

    # Single-allele view of the AlleleSet contract

    def __len__(self) -> int:
        return 1

    def __iter__(self) -> Iterator["AlleleRecord"]:
        return iter((self,))

    def names(self) -> list[str]:
        return [self.allele_name]

    def sequences(self) -> dict[str, str]:
        return {self.allele_name: self.sequence}

    def feature_tables(self) -> dict[str, FeatureTable]:
        return {self.allele_name: self.features}

    def metadata(self) -> list[dict]:
        return [self.as_dict()]

    def is_complete(self) -> list[bool]:
        return [self.complete]

    def is_lsl(self) -> list[bool]:
        return [self.lsl]

    def exon(self, index: int | None = None) -> dict[str, str]:
        return feature_sequences(self, FeatureType.EXON, index)

    def intron(self, index: int | None = None) -> dict[str, str]:
        return feature_sequences(self, FeatureType.INTRON, index)

    def utr(self, index: int | None = None) -> dict[str, str]:
        return feature_sequences(self, FeatureType.UTR, index)

    # Record-level helpers

    @property
    def length(self) -> int:
        return len(self.sequence)

    @property
    def lsl(self) -> bool:
        """Submitted by the DKMS Life Science Lab."""
        return any(_LSL_RE.search(s) for s in self.sample_names)

    @property
    def designation(self) -> str:
        """Everything after the "*": e.g. '01:03:01:01'."""
        return self.allele_name.split("*", 1)[1] if "*" in self.allele_name else ""

    @property
    def fields(self) -> list[str]:
        designation = self.designation
        return designation.split(FIELD_SEPARATOR) if designation else []

    def feature_sequence(self, name: str) -> str:
        """Subsequence for one named feature.

        Raises:
            NotFoundError: if the allele has no such feature.
        """
        try:
            rng = self.features.by_name(name)
        except NotFoundError:
            raise NotFoundError(
                f"Feature {name!r} not found in {self.allele_name}"
            ) from None
        return FeatureTable.slice(self.sequence, rng)

    def as_dict(self) -> dict:
        return {
            "allele_id": self.allele_id,
            "allele_name": self.allele_name,
            "locus": self.locus,
            "g_group": self.g_group,
            "p_group": self.p_group,
            "cwd_status": self.cwd_status.value,
            "ethnicity": ":".join(sorted(self.ethnicities)),
            "samples": ":".join(sorted(self.sample_names)),
            "complete": self.complete,
            "lsl": self.lsl,
            "length": self.length,
        }
