"""Tests for feature ranges and feature tables."""

import pytest

from hlaref.errors import NotFoundError
from hlaref.features import (
    FeatureStatus,
    FeatureTable,
    FeatureType,
    Range,
    normalize_ranges,
)


def _table():
    return FeatureTable((
        Range(1, 9, "5' UTR", FeatureType.UTR, order=1),
        Range(10, 109, "Exon 1", FeatureType.EXON, order=2),
        Range(110, 159, "Intron 1", FeatureType.INTRON, order=3),
        Range(160, 199, "Exon 2", FeatureType.EXON, order=4),
        Range(200, 220, "3' UTR", FeatureType.UTR, order=5),
    ))


class TestNormalizeRanges:
    def test_cumulative_coordinates(self):
        assert normalize_ranges([9, 100, 50]) == [(1, 9), (10, 109), (110, 159)]

    def test_empty(self):
        assert normalize_ranges([]) == []

    def test_rejects_zero_length(self):
        with pytest.raises(ValueError):
            normalize_ranges([9, 0, 50])


class TestRange:
    def test_length_is_inclusive(self):
        assert Range(10, 109, "Exon 1").length == 100

    def test_start_past_end(self):
        with pytest.raises(ValueError, match="past end"):
            Range(20, 10, "Exon 1")

    def test_start_below_one(self):
        with pytest.raises(ValueError):
            Range(0, 10, "Exon 1")

    def test_number(self):
        assert Range(1, 10, "Exon 2", FeatureType.EXON).number == 2
        assert Range(1, 10, "Intron 7", FeatureType.INTRON).number == 7

    def test_utr_has_no_number(self):
        assert Range(1, 10, "3' UTR", FeatureType.UTR).number is None

    def test_shifted(self):
        r = Range(10, 20, "Exon 1").shifted(5)
        assert (r.start, r.end, r.name) == (15, 25, "Exon 1")


class TestFeatureTypes:
    def test_type_parse_case_insensitive(self):
        assert FeatureType.parse("exon") is FeatureType.EXON
        assert FeatureType.parse("INTRON") is FeatureType.INTRON
        assert FeatureType.parse("utr") is FeatureType.UTR

    def test_type_parse_unknown(self):
        assert FeatureType.parse("pseudoexon") is FeatureType.OTHER
        assert FeatureType.parse(None) is FeatureType.OTHER

    def test_status_parse(self):
        assert FeatureStatus.parse("partial") is FeatureStatus.PARTIAL
        assert FeatureStatus.parse("") is FeatureStatus.UNKNOWN


class TestFeatureTable:
    def test_sorted_by_order(self):
        table = FeatureTable((
            Range(10, 20, "Exon 2", FeatureType.EXON, order=4),
            Range(1, 9, "Exon 1", FeatureType.EXON, order=2),
        ))
        assert table.names() == ["Exon 1", "Exon 2"]

    def test_duplicate_names(self):
        with pytest.raises(ValueError, match="Duplicate"):
            FeatureTable((Range(1, 5, "Exon 1"), Range(6, 9, "Exon 1")))

    def test_overlap(self):
        with pytest.raises(ValueError, match="overlap"):
            FeatureTable((
                Range(1, 10, "Exon 1", order=1),
                Range(10, 20, "Intron 1", order=2),
            ))

    def test_by_name(self):
        assert _table().by_name("Intron 1").start == 110

    def test_by_name_missing(self):
        with pytest.raises(NotFoundError):
            _table().by_name("Exon 9")

    def test_by_kind(self):
        table = _table()
        assert [r.name for r in table.by_kind("Exon")] == ["Exon 1", "Exon 2"]
        assert table.by_kind(FeatureType.UTR, 2).name == "3' UTR"

    def test_by_kind_index_out_of_range(self):
        with pytest.raises(NotFoundError, match="only 2 present"):
            _table().by_kind(FeatureType.UTR, 3)

    def test_tiles(self):
        table = _table()
        assert table.tiles(220)
        assert not table.tiles(221)
        assert table.total_length() == 220

    def test_gap_is_not_contiguous(self):
        table = FeatureTable((
            Range(1, 9, "Exon 1", order=1),
            Range(20, 30, "Exon 2", order=2),
        ))
        assert not table.is_contiguous()
        assert not table.tiles(30)

    def test_normalized(self):
        table = FeatureTable((
            Range(5, 13, "Exon 1", order=1),
            Range(40, 139, "Exon 2", order=2),
        ))
        assert str(table.normalized()) == "Exon 1:1-9|Exon 2:10-109"

    def test_slice(self):
        assert FeatureTable.slice("AACCGGTT", Range(3, 6, "x")) == "CCGG"

    def test_sequence_protocol(self):
        table = _table()
        assert len(table) == 5
        assert table[0].name == "5' UTR"
        assert [r.order for r in table] == [1, 2, 3, 4, 5]
