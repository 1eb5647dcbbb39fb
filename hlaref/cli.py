"""CLI entry points for HLA reference curation."""

import argparse
import logging
import sys
from pathlib import Path

from Bio import SeqIO

from .aligner import ALIGNERS, get_aligner
from .consensus import consensus_record
from .errors import AlignmentUnavailableError, CurationError
from .flatfile import format_records, write_flatfile, write_genbank_file
from .loader import load_collection
from .neighbor import closest_complete_neighbor
from .patcher import all_reference_sequences, reconstruct_all, reference_sequence
from .release_tracker import (
    current_db_version,
    has_new_release,
    load_version_file,
    save_version_file,
    scrape_current_release,
)

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Curate HLA alleles and rebuild full-length reference sequences"
    )
    parser.add_argument(
        "--repo-root", type=Path, default=Path(__file__).resolve().parent.parent,
        help="Repository root directory (holds version.json)",
    )
    parser.add_argument(
        "--records", type=Path,
        help="JSON record set for one locus",
    )
    parser.add_argument("--locus", help="Locus to load (e.g. DPA1)")
    parser.add_argument(
        "--aligner", choices=sorted(ALIGNERS), default="mafft",
        help="Multiple sequence aligner (default: mafft)",
    )
    sub = parser.add_subparsers(dest="command")

    nb_cmd = sub.add_parser("neighbor", help="Closest complete allele for an allele")
    nb_cmd.add_argument("allele")
    nb_cmd.add_argument(
        "--exact", action="store_true",
        help="Do not include alleles below the given designation",
    )

    ref_cmd = sub.add_parser("reference", help="Reconstruct one allele")
    ref_cmd.add_argument("allele")
    ref_cmd.add_argument("-o", "--output", type=Path, help="Flat-file output (default: stdout)")
    ref_cmd.add_argument(
        "--all", action="store_true",
        help="Reconstruct against every complete allele",
    )

    ext_cmd = sub.add_parser("extend", help="Reconstruct every allele of the locus")
    ext_cmd.add_argument("-o", "--output", type=Path, help="Flat-file output (default: stdout)")
    ext_cmd.add_argument("--workers", type=int, default=None)
    ext_cmd.add_argument("--genbank", type=Path, help="Also write a GenBank file")

    cons_cmd = sub.add_parser("consensus", help="Consensus of the complete alleles")
    cons_cmd.add_argument("-o", "--output", type=Path, help="FASTA output (default: stdout)")

    check_cmd = sub.add_parser("check", help="Check if IPD-IMGT/HLA has a new release")
    check_cmd.add_argument(
        "--save", action="store_true",
        help="Store the remote release in version.json",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    repo_root = args.repo_root

    if args.command == "check":
        run_check(repo_root, save=args.save)
        return
    if args.command is None:
        parser.print_help()
        sys.exit(1)
    if args.records is None:
        parser.error(f"{args.command} requires --records")

    try:
        if args.command == "neighbor":
            run_neighbor(repo_root, args)
        elif args.command == "reference":
            run_reference(repo_root, args)
        elif args.command == "extend":
            run_extend(repo_root, args)
        elif args.command == "consensus":
            run_consensus(repo_root, args)
    except (CurationError, AlignmentUnavailableError) as exc:
        logger.error("%s", exc)
        sys.exit(1)


def _load(repo_root: Path, args):
    collection = load_collection(
        args.records,
        locus=args.locus,
        aligner=get_aligner(args.aligner),
        fallback_version=current_db_version(repo_root),
    )
    logger.info("Using %r", collection)
    return collection


def _emit(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text)
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text)
    logger.info("Wrote %s", output)


def run_neighbor(repo_root: Path, args) -> None:
    """Print the closest complete allele."""
    collection = _load(repo_root, args)
    print(closest_complete_neighbor(
        collection, args.allele, match_partial_name=not args.exact,
    ))


def run_reference(repo_root: Path, args) -> None:
    """Reconstruct one allele on its neighbor (or on every complete allele)."""
    collection = _load(repo_root, args)
    if args.all:
        reconstructions = all_reference_sequences(collection, args.allele)
    else:
        reconstructions = [reference_sequence(collection, args.allele)]
    for r in reconstructions:
        logger.info("  %s (%d bp)", r.name, r.length)
    _emit(format_records(reconstructions), args.output)


def run_extend(repo_root: Path, args) -> None:
    """Reconstruct every allele. Exit 1 if any allele failed."""
    collection = _load(repo_root, args)
    result = reconstruct_all(collection, workers=args.workers)

    if args.output is None:
        sys.stdout.write(format_records(result.reconstructions))
    else:
        write_flatfile(result.reconstructions, args.output)
    if args.genbank:
        n = write_genbank_file(result.reconstructions, args.genbank)
        logger.info("Wrote %d GenBank records to %s", n, args.genbank)

    if not result.ok:
        for name, exc in result.failures.items():
            logger.error("  %s: %s", name, exc)
        logger.error("%d of %d alleles failed.", len(result.failures), len(collection))
        sys.exit(1)


def run_consensus(repo_root: Path, args) -> None:
    """Write the locus consensus as FASTA."""
    collection = _load(repo_root, args)
    record = consensus_record(collection)
    if args.output is None:
        SeqIO.write([record], sys.stdout, "fasta")
        return
    args.output.parent.mkdir(parents=True, exist_ok=True)
    with open(args.output, "w") as fh:
        SeqIO.write([record], fh, "fasta")
    logger.info("Wrote consensus (%d bp) to %s", len(record), args.output)


def run_check(repo_root: Path, save: bool = False) -> None:
    """Check for a new release. Exit 0 if update needed, 1 if current."""
    if has_new_release(repo_root):
        logger.info("IPD-IMGT/HLA has a new release available")
        if save:
            version_data = load_version_file(repo_root)
            version_data["db_version"] = scrape_current_release()["version"]
            save_version_file(repo_root, version_data)
            logger.info("Stored release %s", version_data["db_version"])
        sys.exit(0)
    else:
        logger.info("No new releases detected.")
        sys.exit(1)
