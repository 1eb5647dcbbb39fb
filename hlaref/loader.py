"""Load parsed allele records from their JSON rendition.

The IPD-IMGT/HLA XML is parsed upstream; this module only reads the per
locus record set it produces:

    {
      "locus": "HLA-DPA1",
      "db_version": "3.55.0",
      "alleles": [
        {
          "allele_id": "HLA00499",
          "allele_name": "HLA-DPA1*01:03:01:01",
          "sequence": "...",
          "complete": true,
          "g_group": "DPA1*01:03:01G",
          "p_group": "DPA1*01:03P",
          "cwd_status": "Common",
          "ethnicity": ["European"],
          "samples": "DKMS-LSL-DPA1-1:IHW9080",
          "features": [
            {"name": "5' UTR", "type": "UTR", "order": 1, "start": 1, "end": 9},
            ...
          ]
        }
      ]
    }
"""

import json
import logging
from pathlib import Path

from .allele import AlleleRecord, match_locus
from .collection import AlleleCollection
from .config import DEFAULT_DB_VERSION
from .features import FeatureStatus, FeatureTable, FeatureType, Range, normalize_ranges

logger = logging.getLogger(__name__)


def _split_field(value) -> frozenset[str]:
    if not value:
        return frozenset()
    if isinstance(value, str):
        value = value.split(":")
    return frozenset(v.strip() for v in value if v and v.strip())


def _feature_table(features: list[dict]) -> FeatureTable:
    features = sorted(features, key=lambda f: f.get("order", 0))
    if features and all("start" not in f for f in features):
        spans = normalize_ranges(int(f["length"]) for f in features)
    else:
        spans = [(int(f["start"]), int(f["end"])) for f in features]

    ranges = []
    for i, (f, (start, end)) in enumerate(zip(features, spans), 1):
        frame = f.get("frame")
        ranges.append(Range(
            start=start,
            end=end,
            name=f["name"],
            kind=FeatureType.parse(f.get("type")),
            order=int(f.get("order", i)),
            status=FeatureStatus.parse(f.get("status")),
            frame=int(frame) if frame not in (None, "") else None,
        ))
    return FeatureTable(tuple(ranges))


def _record_locus(data: dict, default: str) -> str:
    """Locus of one record: explicit, else the allele name prefix, else ``default``."""
    if data.get("locus"):
        return data["locus"]
    name = data.get("allele_name", "")
    return name.split("*", 1)[0] if "*" in name else default


def record_from_dict(data: dict, locus: str) -> AlleleRecord:
    """Build one AlleleRecord from its JSON form.

    Features give either ``start``/``end`` or just ``length``; when none of
    them has coordinates they are laid end to end in ``order``.

    Raises:
        KeyError: if a required field is missing.
        ValueError: if the record is malformed.
    """
    return AlleleRecord(
        allele_id=data["allele_id"],
        allele_name=data["allele_name"],
        locus=_record_locus(data, locus),
        sequence=data["sequence"],
        features=_feature_table(data.get("features", [])),
        complete=bool(data.get("complete", False)),
        g_group=data.get("g_group") or None,
        p_group=data.get("p_group") or None,
        cwd_status=data.get("cwd_status"),
        ethnicities=_split_field(data.get("ethnicity")),
        sample_names=_split_field(data.get("samples")),
    )


def load_collection(
    path: Path,
    locus: str | None = None,
    db_version: str | None = None,
    aligner=None,
    fallback_version: str = DEFAULT_DB_VERSION,
) -> AlleleCollection:
    """Read a JSON record set into an AlleleCollection.

    Args:
        path: JSON file as described in the module docstring.
        locus: Locus to load. Defaults to the file's "locus"; when both are
            given, records of other loci are dropped.
        db_version: Overrides the file's "db_version".
        aligner: Aligner for the collection's distance matrix and consensus.
        fallback_version: Version used when neither ``db_version`` nor the
            file gives one.

    Raises:
        InvalidLocusError: if the locus is not a recognized HLA gene.
    """
    path = Path(path)
    with open(path) as fh:
        payload = json.load(fh)

    locus = match_locus(locus or payload["locus"])
    db_version = db_version or payload.get("db_version") or fallback_version

    records = []
    skipped = 0
    for data in payload.get("alleles", []):
        name = data.get("allele_name", "?")
        try:
            if match_locus(_record_locus(data, locus)) != locus:
                continue
            records.append(record_from_dict(data, locus))
        except (KeyError, ValueError) as e:
            logger.warning("Skipping %s: %s", name, e)
            skipped += 1

    logger.info(
        "Loaded %d %s alleles from %s (db %s, %d skipped)",
        len(records), locus, path, db_version, skipped,
    )
    return AlleleCollection(locus, records, db_version=db_version, aligner=aligner)
