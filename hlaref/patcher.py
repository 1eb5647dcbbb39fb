"""Rebuild full-length sequences for partial alleles from a complete template.

The template's sequence is the lowercase background. Every feature the
query shares with the template (matched by name) is cut out of the
background and replaced with the query's uppercase sequence, walking the
template's features 5' to 3' and carrying the length difference forward
as an offset.
"""

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field

from Bio.SeqRecord import SeqRecord

from .allele import AlleleRecord
from .errors import AlignmentUnavailableError, CurationError, NoMatchingFeaturesError
from .features import FeatureTable, Range
from .neighbor import closest_complete_neighbor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Reconstruction:
    """A full-length sequence built for ``query`` on ``template``.

    ``spans`` holds the output coordinates of each substituted feature, in
    the order they were processed; it is empty when nothing was patched.
    """

    query: str
    template: str
    sequence: str
    features: FeatureTable
    spans: tuple[Range, ...] = ()

    @property
    def is_patched(self) -> bool:
        return self.query != self.template

    @property
    def name(self) -> str:
        """Audit trail, e.g. "HLA-A*01:02 HLA-A*01:01:01:01 1:73|74:343"."""
        if not self.is_patched:
            return self.query
        coords = "|".join(r.span_string() for r in self.spans)
        return f"{self.query} {self.template} {coords}"

    @property
    def length(self) -> int:
        return len(self.sequence)

    def to_seqrecord(self) -> SeqRecord:
        from .flatfile import reconstruction_to_seqrecord
        return reconstruction_to_seqrecord(self)


@dataclass
class BatchResult:
    """Outcome of reconstructing every allele in a collection."""

    reconstructions: list[Reconstruction] = field(default_factory=list)
    failures: dict[str, Exception] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


# ---------------------------------------------------------------------------
# Single allele
# ---------------------------------------------------------------------------


def reconstruct(template: AlleleRecord, query: AlleleRecord) -> Reconstruction:
    """Patch ``query``'s features into ``template``.

    Args:
        template: Complete allele providing the background sequence.
        query: Allele whose features are substituted in.

    Returns:
        Reconstruction with the patched sequence and its feature table.

    Raises:
        NoMatchingFeaturesError: if the two alleles share no feature name.
    """
    if template.allele_name == query.allele_name:
        return Reconstruction(
            query=query.allele_name,
            template=template.allele_name,
            sequence=template.sequence,
            features=template.features,
        )

    for rng in query.features:
        if not template.features.has(rng.name):
            logger.debug(
                "%s: %s has no counterpart in %s, ignored",
                query.allele_name, rng.name, template.allele_name,
            )

    pairs = [
        (rref, query.features.by_name(rref.name) if query.features.has(rref.name) else None)
        for rref in template.features
    ]
    if all(ralt is None for _, ralt in pairs):
        raise NoMatchingFeaturesError(
            f"{query.allele_name} shares no feature with {template.allele_name}"
        )

    background = template.sequence.lower()
    offset = 0
    out_ranges: list[Range] = []
    spans: list[Range] = []
    for rref, ralt in pairs:
        sr = rref.start + offset
        er = rref.end + offset
        if ralt is None:
            out_ranges.append(rref.with_span(sr, er))
            continue

        wr, wa = rref.length, ralt.length
        offset -= wr - wa
        patch = FeatureTable.slice(query.sequence, ralt).upper()
        background = background[:sr - 1] + patch + background[er:]

        span = rref.with_span(sr, er - (wr - wa))
        spans.append(span)
        out_ranges.append(
            Range(
                start=span.start,
                end=span.end,
                name=rref.name,
                kind=rref.kind,
                order=rref.order,
                status=ralt.status,
                frame=ralt.frame,
            )
        )
        logger.debug(
            "%s: %s %d..%d -> %s (offset %d)",
            query.allele_name, rref.name, rref.start, rref.end,
            span.span_string(), offset,
        )

    return Reconstruction(
        query=query.allele_name,
        template=template.allele_name,
        sequence=background,
        features=FeatureTable(tuple(out_ranges)),
        spans=tuple(spans),
    )


def reference_sequence(collection, allele: str) -> Reconstruction:
    """Reconstruct ``allele`` on its closest complete neighbor.

    A complete allele is returned unchanged.

    Raises:
        NotFoundError: if ``allele`` is not in the collection.
        NoCompleteNeighborError: if there is no complete allele to use.
        NoMatchingFeaturesError: if the template shares no feature.
    """
    query = collection.get(allele)
    if query.complete:
        return reconstruct(query, query)
    template = collection.get(
        closest_complete_neighbor(collection, query.allele_name, match_partial_name=False)
    )
    return reconstruct(template, query)


def all_reference_sequences(collection, allele: str) -> list[Reconstruction]:
    """Reconstruct ``allele`` on every complete allele of the collection.

    A complete allele yields just itself.
    """
    query = collection.get(allele)
    if query.complete:
        return [reconstruct(query, query)]
    templates = list(collection.complete())
    logger.info(
        "Reconstructing %s against %d complete alleles",
        query.allele_name, len(templates),
    )
    return [reconstruct(template, query) for template in templates]


# ---------------------------------------------------------------------------
# Whole collection
# ---------------------------------------------------------------------------


def reconstruct_all(collection, workers: int | None = None) -> BatchResult:
    """Reconstruct every allele of ``collection``.

    One task per allele on a thread pool. A failing allele is logged and
    reported in ``failures``; the rest of the batch carries on. Results keep
    collection order.

    Raises:
        AlignmentUnavailableError: if the distance matrix is needed and the
            aligner cannot run.
    """
    names = collection.names()
    partial = [rec for rec in collection if not rec.complete]
    if partial and any(collection.is_complete()):
        logger.info("Preparing distance matrix for %d partial alleles", len(partial))
        try:
            collection.distance_matrix()
        except CurationError as exc:
            logger.warning("Distance matrix unavailable: %s", exc)

    workers = workers or os.cpu_count() or 1
    logger.info(
        "Reconstructing %d alleles of %s with %d workers",
        len(names), collection.locus, workers,
    )

    def _one(name: str) -> Reconstruction | Exception:
        try:
            return reference_sequence(collection, name)
        except AlignmentUnavailableError:
            raise
        except Exception as exc:
            return exc

    result = BatchResult()
    with ThreadPoolExecutor(max_workers=workers) as pool:
        for name, outcome in zip(names, pool.map(_one, names)):
            if isinstance(outcome, Reconstruction):
                result.reconstructions.append(outcome)
            else:
                logger.warning("Skipping %s: %s", name, outcome)
                result.failures[name] = outcome

    logger.info(
        "Reconstructed %d of %d alleles (%d failed)",
        len(result.reconstructions), len(names), len(result.failures),
    )
    return result
