"""Curation configuration constants."""

# Recognized HLA loci (canonical "HLA-" form)
VALID_LOCI = (
    "HLA-A", "HLA-B", "HLA-C",
    "HLA-DPA1", "HLA-DPB1",
    "HLA-DQA1", "HLA-DQB1",
    "HLA-DRB1", "HLA-DRB3", "HLA-DRB4", "HLA-DRB5",
    "HLA-E", "HLA-F", "HLA-G",
    "HLA-DMA", "HLA-DMB",
    "HLA-DOA", "HLA-DOB",
    "HLA-DRA",
)

# Allele name fields are colon-separated after the "*"
FIELD_SEPARATOR = ":"

# Feature used as the identity anchor for the distance matrix.
# Exon 2 is the only feature present in every allele submission.
DISTANCE_FEATURE = "Exon 2"

# Consensus tie-break order
BASE_PRIORITY = ("A", "C", "G", "T")

# Sample names submitted by the DKMS Life Science Lab
LSL_PATTERN = r"DKMS-LSL"

# Flat-file (hla.dat style) layout
FLATFILE_LINE_WIDTH = 60
FLATFILE_GROUP_WIDTH = 10
FLATFILE_INDENT = 5
FLATFILE_SPECIES = "Human MHC sequence"

# External multiple sequence alignment
MAFFT_BIN = "mafft"
MAFFT_ARGS = ("--auto", "--quiet")

# Release tracking
RELEASE_PAGE = "https://www.ebi.ac.uk/ipd/imgt/hla/"
VERSION_FILE = "version.json"
DEFAULT_DB_VERSION = "Latest"
