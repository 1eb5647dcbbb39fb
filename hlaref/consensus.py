"""Majority-rule consensus over the complete alleles of a locus."""

import logging
from collections import Counter

from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from .config import BASE_PRIORITY
from .errors import InsufficientDataError

logger = logging.getLogger(__name__)


def consensus_from_alignment(rows: list[str]) -> str:
    """Most frequent base per alignment column.

    Only A, C, G and T are counted (case-insensitive); ties follow
    BASE_PRIORITY. Columns without any counted base are dropped.
    """
    if not rows:
        return ""
    widths = {len(r) for r in rows}
    if len(widths) > 1:
        raise ValueError(f"Aligned rows differ in length: {sorted(widths)}")

    out = []
    for column in zip(*(r.upper() for r in rows)):
        counts = Counter(b for b in column if b in BASE_PRIORITY)
        if not counts:
            continue
        # max() keeps the first maximum, so iterate in priority order
        out.append(max(BASE_PRIORITY, key=lambda b: counts[b]))
    return "".join(out)


def build_consensus(collection, aligner) -> str:
    """Align the full sequences of all complete alleles and take the consensus.

    Raises:
        InsufficientDataError: if fewer than two alleles are complete.
        AlignmentUnavailableError: if the aligner cannot run.
    """
    completes = collection.complete()
    if len(completes) < 2:
        raise InsufficientDataError(
            f"Consensus needs at least 2 complete alleles; "
            f"{collection.locus} has {len(completes)}"
        )
    logger.info(
        "Building consensus over %d complete alleles of %s",
        len(completes), collection.locus,
    )
    aligned = aligner.align(completes.sequences())
    consensus = consensus_from_alignment(list(aligned.values()))
    logger.info("Consensus length: %d bp", len(consensus))
    return consensus


def consensus_record(collection) -> SeqRecord:
    """The collection's (memoized) consensus as a SeqRecord."""
    return SeqRecord(
        Seq(collection.consensus()),
        id=collection.locus,
        name=collection.locus,
        description=f"{collection.locus} consensus",
    )
