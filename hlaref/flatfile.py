"""Render reconstructed alleles as hla.dat-style flat-file records or GenBank."""

import logging
from pathlib import Path

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqFeature import FeatureLocation, SeqFeature
from Bio.SeqRecord import SeqRecord

from .config import (
    FLATFILE_GROUP_WIDTH,
    FLATFILE_INDENT,
    FLATFILE_LINE_WIDTH,
    FLATFILE_SPECIES,
)
from .features import FeatureType, Range

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# hla.dat-style text
# ---------------------------------------------------------------------------


def id_line(reconstruction) -> str:
    return f"ID   HLAxxxxx; SV 1; standard; DNA; HUM; {reconstruction.length} BP."


def de_line(reconstruction) -> str:
    """Description line; a patched record names its template's fields in brackets."""
    text = reconstruction.query
    if reconstruction.is_patched:
        fields = reconstruction.template.split("*", 1)[-1]
        text = f"{text}[{fields}]"
    return f"DE   {text}, {FLATFILE_SPECIES}"


def feature_key(rng: Range) -> str:
    if rng.kind == FeatureType.UTR or rng.name.endswith("UTR"):
        return "UTR"
    return rng.name.split()[0].lower()


def ft_lines(reconstruction) -> str:
    lines = []
    for rng in reconstruction.features:
        lines.append(f"FT   {feature_key(rng):<16}{rng.start}..{rng.end}\n")
        if feature_key(rng) != "UTR" and rng.number is not None:
            lines.append(f'FT                   /number="{rng.number}"\n')
    return "".join(lines)


def sq_block(sequence: str) -> str:
    """Sequence block: 60 bases per line in groups of 10, closed by "//"."""
    lines = [f"SQ   Sequence {len(sequence)} BP;"]
    pad = " " * FLATFILE_INDENT
    for i in range(0, len(sequence), FLATFILE_LINE_WIDTH):
        chunk = sequence[i:i + FLATFILE_LINE_WIDTH]
        groups = [
            chunk[j:j + FLATFILE_GROUP_WIDTH]
            for j in range(0, len(chunk), FLATFILE_GROUP_WIDTH)
        ]
        # a short last line carries no trailing blanks
        lines.append(pad + " ".join(groups))
    lines.append("//")
    return "\n".join(lines)


def format_record(reconstruction) -> str:
    """One complete record, ending in "//" and a newline."""
    return (
        f"{id_line(reconstruction)}\n"
        f"{de_line(reconstruction)}\n"
        f"{ft_lines(reconstruction)}"
        f"{sq_block(reconstruction.sequence)}\n"
    )


def format_records(reconstructions) -> str:
    return "".join(format_record(r) for r in reconstructions)


def write_flatfile(reconstructions, output_path: Path) -> int:
    """Write records to ``output_path``; returns the number written."""
    reconstructions = list(reconstructions)
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as fh:
        fh.write(format_records(reconstructions))
    logger.info("Wrote %d records to %s", len(reconstructions), output_path)
    return len(reconstructions)


# ---------------------------------------------------------------------------
# GenBank
# ---------------------------------------------------------------------------


def reconstruction_to_seqrecord(reconstruction) -> SeqRecord:
    """Convert a Reconstruction to a BioPython SeqRecord.

    Feature locations are 0-based, end-exclusive; patched features carry a
    note naming the template that supplied the surrounding sequence.
    """
    allele_name = reconstruction.query
    locus_name = allele_name.split("*", 1)[0]
    seq_len = reconstruction.length
    accession = allele_name.replace("*", "_").replace(":", "_")

    sr = SeqRecord(
        seq=Seq(reconstruction.sequence),
        id=accession,
        name=accession[:16],
        description=f"{allele_name}, {FLATFILE_SPECIES}",
    )
    sr.annotations["molecule_type"] = "DNA"
    sr.annotations["topology"] = "linear"
    sr.annotations["data_file_division"] = "PRI"
    sr.annotations["organism"] = "Homo sapiens"
    sr.annotations["source"] = "Homo sapiens (human)"
    sr.annotations["keywords"] = ["IPD-IMGT/HLA", locus_name]
    if reconstruction.is_patched:
        sr.annotations["comment"] = (
            f"Reconstructed on template {reconstruction.template}\n"
            f"Substituted spans: {'|'.join(r.span_string() for r in reconstruction.spans)}"
        )

    # Source feature
    sr.features.append(SeqFeature(
        location=FeatureLocation(0, seq_len),
        type="source",
        qualifiers={"organism": ["Homo sapiens"], "mol_type": ["genomic DNA"]},
    ))

    # Gene feature
    sr.features.append(SeqFeature(
        location=FeatureLocation(0, seq_len),
        type="gene",
        qualifiers={"gene": [locus_name], "allele": [allele_name]},
    ))

    patched = {r.name for r in reconstruction.spans}
    for rng in reconstruction.features:
        if rng.kind == FeatureType.UTR:
            ftype = "5'UTR" if rng.name.startswith("5") else "3'UTR"
        elif rng.kind in (FeatureType.EXON, FeatureType.INTRON):
            ftype = rng.kind.value.lower()
        else:
            ftype = "misc_feature"
        qualifiers = {"gene": [locus_name]}
        if rng.number is not None:
            qualifiers["number"] = [str(rng.number)]
        if rng.name in patched:
            qualifiers["note"] = [f"from {allele_name}"]
        elif reconstruction.is_patched:
            qualifiers["note"] = [f"from {reconstruction.template}"]
        sr.features.append(SeqFeature(
            location=FeatureLocation(rng.start - 1, rng.end),
            type=ftype,
            qualifiers=qualifiers,
        ))

    return sr


def write_genbank_file(reconstructions, output_path: Path) -> int:
    """
    Write reconstructions to a multi-entry GenBank file.

    Returns the number of records written.
    """
    seq_records = []
    for rec in reconstructions:
        try:
            seq_records.append(reconstruction_to_seqrecord(rec))
        except ValueError as e:
            logger.warning("Skipping %s: %s", rec.query, e)

    if seq_records:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as fh:
            SeqIO.write(seq_records, fh, "genbank")

    return len(seq_records)
