"""Pick the complete allele that should donate sequence to a partial one."""

import logging

import numpy as np

from .errors import NoCompleteNeighborError, NotFoundError

logger = logging.getLogger(__name__)


def closest_complete_neighbor(
    collection,
    query: str,
    match_partial_name: bool = True,
) -> str:
    """Return the name of the complete allele closest to ``query``.

    ``query`` may be a full allele name or a short designation; with
    ``match_partial_name`` every allele below that designation is a
    candidate. A complete candidate is returned straight away (the first
    one in collection order). Otherwise the exon distance matrix is used:
    the complete allele with the smallest summed distance to all candidates
    wins, ties going to the earlier allele.

    Args:
        collection: AlleleCollection to search.
        query: Allele name or designation, e.g. "DPA1*01:03" or "01:03".
        match_partial_name: Also consider alleles below ``query``.

    Returns:
        Full name of the chosen complete allele.

    Raises:
        NotFoundError: if no allele matches ``query``.
        NoCompleteNeighborError: if the collection has no complete allele.
    """
    candidates = collection.match(query, partial=match_partial_name)
    if len(candidates) == 0:
        raise NotFoundError(
            f"No allele matching {collection.expand(query)!r} in {collection.locus}"
        )

    for rec in candidates:
        if rec.complete:
            logger.debug("%s is complete; using it as its own template", rec.allele_name)
            return rec.allele_name

    completes = collection.complete().names()
    if not completes:
        raise NoCompleteNeighborError(
            f"{collection.locus} has no complete allele to use as a template"
        )

    dm = collection.distance_matrix()
    sums = dm.submatrix(candidates.names(), completes).sum(axis=0)
    # argmin returns the first minimum
    best = completes[int(np.argmin(sums))]
    logger.debug(
        "Closest complete neighbor of %s: %s (summed distance %.4f over %d candidates)",
        query, best, float(sums.min()), len(candidates),
    )
    return best
