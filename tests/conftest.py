"""Shared test fixtures."""

import json
from pathlib import Path

import pytest

from hlaref.allele import AlleleRecord
from hlaref.collection import AlleleCollection
from hlaref.features import FeatureStatus, FeatureTable, FeatureType, Range, normalize_ranges

FIXTURES_DIR = Path(__file__).parent / "fixtures"

LOCUS = "HLA-DPA1"


def load_fixture(name: str) -> dict:
    """Load a JSON fixture file."""
    return json.loads((FIXTURES_DIR / name).read_text())


def _kind(name: str) -> FeatureType:
    if name.endswith("UTR"):
        return FeatureType.UTR
    return FeatureType.parse(name.split()[0])


def make_record(
    name: str,
    parts: list[tuple[str, str]],
    complete: bool = False,
    order: list[int] | None = None,
    **kwargs,
) -> AlleleRecord:
    """Build a record from ordered (feature name, subsequence) parts.

    Features are laid end to end; ``order`` overrides their biological
    order numbers (default 1, 2, 3, ...).
    """
    spans = normalize_ranges(len(seq) for _, seq in parts)
    order = order or list(range(1, len(parts) + 1))
    ranges = tuple(
        Range(
            start=s, end=e, name=fname, kind=_kind(fname), order=o,
            status=FeatureStatus.COMPLETE,
        )
        for (fname, _), (s, e), o in zip(parts, spans, order)
    )
    kwargs.setdefault("allele_id", "HLA" + name.rsplit("*", 1)[-1].replace(":", ""))
    kwargs.setdefault("locus", name.split("*")[0])
    return AlleleRecord(
        allele_name=name,
        sequence="".join(seq for _, seq in parts),
        features=FeatureTable(ranges),
        complete=complete,
        **kwargs,
    )


class PadAligner:
    """Aligner stand-in: right-pads sequences with gaps to a common length.

    Right padding only adds terminal gap columns, which distances ignore.
    """

    def __init__(self):
        self.calls = 0

    def align(self, sequences: dict[str, str]) -> dict[str, str]:
        self.calls += 1
        width = max((len(s) for s in sequences.values()), default=0)
        return {n: s.upper().ljust(width, "-") for n, s in sequences.items()}


class FailingAligner:
    def align(self, sequences):
        from hlaref.errors import AlignmentUnavailableError
        raise AlignmentUnavailableError("mafft not found")


# Four complete alleles and three partial ones. Exon 2 is 10 bp in all of
# them so PadAligner lines them up column for column.
UTR5 = "ATGCA"
EXON1 = "GGCCTTAA"
INTRON1 = "ttttccccgggg"
UTR3 = "CCAAT"

EXON2 = {
    "01:03:01:01": "ACGTACGTAC",
    "01:03:01:02": "ACGTACGTAA",
    "02:01:01:01": "TTTTACGTAC",
    "02:02:01:01": "TTTTTTTTTT",
    "01:03:02": "ACGTACGTAA",
    "02:01:02": "TTTTACGTAA",
    "01:031": "TTTTTTTTTA",
}


def complete_parts(exon2: str) -> list[tuple[str, str]]:
    return [
        ("5' UTR", UTR5),
        ("Exon 1", EXON1),
        ("Intron 1", INTRON1),
        ("Exon 2", exon2),
        ("3' UTR", UTR3),
    ]


@pytest.fixture
def pad_aligner():
    return PadAligner()


@pytest.fixture
def dpa_records():
    """Ordered DPA1 records: four complete, three partial (Exon 2 only, or Exon 1-2)."""
    recs = []
    for fields in ("01:03:01:01", "01:03:01:02", "02:01:01:01", "02:02:01:01"):
        recs.append(make_record(
            f"{LOCUS}*{fields}", complete_parts(EXON2[fields]), complete=True,
            cwd_status="Common",
        ))
    recs.append(make_record(
        f"{LOCUS}*01:03:02", [("Exon 2", EXON2["01:03:02"])],
        sample_names={"DKMS-LSL-DPA1-17"},
    ))
    recs.append(make_record(
        f"{LOCUS}*02:01:02", [("Exon 1", "GGCCTTAAC"), ("Exon 2", EXON2["02:01:02"])],
        order=[2, 4],
    ))
    recs.append(make_record(f"{LOCUS}*01:031", [("Exon 2", EXON2["01:031"])]))
    return recs


@pytest.fixture
def dpa(dpa_records, pad_aligner):
    """AlleleCollection over dpa_records with a PadAligner."""
    return AlleleCollection(LOCUS, dpa_records, db_version="3.55.0", aligner=pad_aligner)


@pytest.fixture
def ref_alt():
    """REF (9775 bp, Exon 2 of 75 bp at its 3' end) and ALT (Exon 2 of 80 bp)."""
    ref = make_record(
        "HLA-A*01:01:01:01",
        [
            ("5' UTR", "A" * 50),
            ("Exon 1", "C" * 100),
            ("Intron 1", "G" * 9550),
            ("Exon 2", "T" * 75),
        ],
        complete=True,
    )
    alt = make_record("HLA-A*01:02", [("Exon 2", "ACGT" * 20)])
    return ref, alt
