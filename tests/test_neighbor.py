"""Tests for closest complete neighbor resolution."""

import pytest

from conftest import LOCUS, make_record
from hlaref.collection import AlleleCollection
from hlaref.errors import NoCompleteNeighborError, NotFoundError
from hlaref.neighbor import closest_complete_neighbor


class TestClosestCompleteNeighbor:
    def test_complete_allele_is_its_own_neighbor(self, dpa):
        assert closest_complete_neighbor(dpa, "01:03:01:02") == "HLA-DPA1*01:03:01:02"

    def test_complete_short_circuit_skips_matrix(self, dpa):
        closest_complete_neighbor(dpa, "01:03:01:01")
        assert not dpa.has_distances()

    def test_first_complete_candidate_wins(self, dpa):
        # 01:03 covers two complete alleles and one partial one
        assert closest_complete_neighbor(dpa, "01:03") == "HLA-DPA1*01:03:01:01"

    def test_partial_uses_distances(self, dpa):
        assert closest_complete_neighbor(dpa, "01:03:02") == "HLA-DPA1*01:03:01:02"
        assert closest_complete_neighbor(dpa, "02:01:02") == "HLA-DPA1*02:01:01:01"
        assert closest_complete_neighbor(dpa, "01:031") == "HLA-DPA1*02:02:01:01"
        assert dpa.has_distances()

    def test_exact_name_only(self, dpa):
        assert closest_complete_neighbor(
            dpa, "HLA-DPA1*01:03:02", match_partial_name=False,
        ) == "HLA-DPA1*01:03:01:02"

    def test_tie_goes_to_first_complete(self, pad_aligner):
        a = make_record(f"{LOCUS}*01:01:01:01", [("Exon 2", "AAAA")], complete=True)
        b = make_record(f"{LOCUS}*01:01:01:02", [("Exon 2", "CCCC")], complete=True)
        q = make_record(f"{LOCUS}*01:02", [("Exon 2", "ACAC")])
        coll = AlleleCollection(LOCUS, [a, b, q], aligner=pad_aligner)
        assert closest_complete_neighbor(coll, "01:02") == "HLA-DPA1*01:01:01:01"

    def test_summed_over_candidates(self, pad_aligner):
        a = make_record(f"{LOCUS}*01:01:01:01", [("Exon 2", "AAAA")], complete=True)
        b = make_record(f"{LOCUS}*01:01:01:02", [("Exon 2", "CCCC")], complete=True)
        q1 = make_record(f"{LOCUS}*03:01:01", [("Exon 2", "AAAC")])
        q2 = make_record(f"{LOCUS}*03:01:02", [("Exon 2", "CCCA")])
        q3 = make_record(f"{LOCUS}*03:01:03", [("Exon 2", "CCCC")])
        coll = AlleleCollection(LOCUS, [a, b, q1, q2, q3], aligner=pad_aligner)
        # a: 0.25 + 0.75 + 1.0, b: 0.75 + 0.25 + 0.0
        assert closest_complete_neighbor(coll, "03:01") == "HLA-DPA1*01:01:01:02"

    def test_not_found(self, dpa):
        with pytest.raises(NotFoundError, match="09:01"):
            closest_complete_neighbor(dpa, "09:01")

    def test_no_complete_allele(self, pad_aligner):
        coll = AlleleCollection(LOCUS, [
            make_record(f"{LOCUS}*01:03:02", [("Exon 2", "ACGT")]),
        ], aligner=pad_aligner)
        with pytest.raises(NoCompleteNeighborError):
            closest_complete_neighbor(coll, "01:03:02")
        # the matrix is never built for an impossible query
        assert pad_aligner.calls == 0
