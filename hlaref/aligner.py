"""Multiple sequence alignment primitives.

Every aligner maps ``{name: sequence}`` to ``{name: aligned_row}``: rows
share one length, use "-" for gaps, are uppercase and keep the input order.

MafftAligner shells out to MAFFT and is the default. CenterStarAligner is a
pure-Python fallback built on BioPython's PairwiseAligner: each sequence is
aligned globally to the first one and the gap columns are merged.
"""

import io
import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from Bio import SeqIO
from Bio.Align import PairwiseAligner
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from .config import MAFFT_ARGS, MAFFT_BIN
from .errors import AlignmentUnavailableError

logger = logging.getLogger(__name__)


class Aligner(Protocol):
    def align(self, sequences: dict[str, str]) -> dict[str, str]: ...


# ---------------------------------------------------------------------------
# MAFFT
# ---------------------------------------------------------------------------


class MafftAligner:
    """Run MAFFT on a set of sequences."""

    def __init__(
        self,
        binary: str = MAFFT_BIN,
        args: tuple[str, ...] = MAFFT_ARGS,
        threads: int = -1,
    ):
        self.binary = binary
        self.args = tuple(args)
        self.threads = threads

    def align(self, sequences: dict[str, str]) -> dict[str, str]:
        if not sequences:
            return {}
        if len(sequences) == 1:
            return {name: seq.upper() for name, seq in sequences.items()}

        # Allele names carry "*" and ":"; keep them out of MAFFT's way
        keys = {f"seq{i}": name for i, name in enumerate(sequences)}
        records = [
            SeqRecord(Seq(seq.upper()), id=key, description="")
            for key, seq in zip(keys, sequences.values())
        ]

        with tempfile.TemporaryDirectory() as tmp:
            input_path = Path(tmp) / "input.fasta"
            with open(input_path, "w") as fh:
                SeqIO.write(records, fh, "fasta")

            cmd = [
                self.binary, *self.args,
                "--thread", str(self.threads),
                str(input_path),
            ]
            logger.info("Running %s on %d sequences", self.binary, len(records))
            try:
                result = subprocess.run(
                    cmd, capture_output=True, text=True, check=True,
                )
            except FileNotFoundError as exc:
                raise AlignmentUnavailableError(
                    f"MAFFT binary {self.binary!r} not found on PATH"
                ) from exc
            except subprocess.CalledProcessError as exc:
                stderr = (exc.stderr or "").strip()
                raise AlignmentUnavailableError(
                    f"MAFFT exited with status {exc.returncode}: {stderr}"
                ) from exc

        aligned = {
            rec.id: str(rec.seq).upper()
            for rec in SeqIO.parse(io.StringIO(result.stdout), "fasta")
        }
        missing = [keys[k] for k in keys if k not in aligned]
        if missing:
            raise AlignmentUnavailableError(
                f"MAFFT output is missing {len(missing)} sequence(s), "
                f"e.g. {missing[0]}"
            )
        return {keys[k]: aligned[k] for k in keys}


# ---------------------------------------------------------------------------
# Center-star fallback
# ---------------------------------------------------------------------------


class CenterStarAligner:
    """Progressive center-star alignment over BioPython's PairwiseAligner.

    The first sequence is the center. Fine for closely related alleles;
    MAFFT should be preferred for whole loci.
    """

    def __init__(
        self,
        match_score: float = 2,
        mismatch_score: float = -1,
        open_gap_score: float = -5,
        extend_gap_score: float = -0.5,
    ):
        self.aligner = PairwiseAligner()
        self.aligner.mode = "global"
        self.aligner.match_score = match_score
        self.aligner.mismatch_score = mismatch_score
        self.aligner.open_gap_score = open_gap_score
        self.aligner.extend_gap_score = extend_gap_score

    def align(self, sequences: dict[str, str]) -> dict[str, str]:
        if not sequences:
            return {}
        names = list(sequences)
        seqs = [s.upper() for s in sequences.values()]
        center = seqs[0]

        pairs: list[tuple[str, str]] = []
        for seq in seqs[1:]:
            alignment = self.aligner.align(center, seq)[0]
            pairs.append((alignment[0], alignment[1]))

        # Widest gap block seen before each center position (and at the end)
        insert = [0] * (len(center) + 1)
        for center_row, _ in pairs:
            for j, n in enumerate(_gaps_before(center_row, len(center))):
                insert[j] = max(insert[j], n)

        rows = [_project(center, center, insert)]
        rows.extend(_project(c, s, insert) for c, s in pairs)
        logger.debug("Center-star alignment of %d sequences, %d columns",
                     len(rows), len(rows[0]))
        return dict(zip(names, rows))


def _gaps_before(center_row: str, center_len: int) -> list[int]:
    """Count gap columns in ``center_row`` before each center position."""
    counts = [0] * (center_len + 1)
    pos = 0
    for ch in center_row:
        if ch == "-":
            counts[pos] += 1
        else:
            pos += 1
    return counts


def _project(center_row: str, other_row: str, insert: list[int]) -> str:
    """Lay one pairwise row onto the merged center-star columns."""
    out = []
    pending: list[str] = []
    j = 0
    for c, s in zip(center_row, other_row):
        if c == "-":
            pending.append(s)
        else:
            out.append("".join(pending).ljust(insert[j], "-"))
            out.append(s)
            pending = []
            j += 1
    out.append("".join(pending).ljust(insert[j], "-"))
    return "".join(out)


ALIGNERS = {
    "mafft": MafftAligner,
    "center-star": CenterStarAligner,
}


def get_aligner(name: Optional[str] = None):
    """Instantiate an aligner by name (default: MAFFT)."""
    name = name or "mafft"
    try:
        return ALIGNERS[name]()
    except KeyError:
        raise AlignmentUnavailableError(
            f"Unknown aligner {name!r} (choose from {', '.join(ALIGNERS)})"
        ) from None
