"""Exceptions raised by the curation core."""


class CurationError(ValueError):
    """Base class for data problems found while curating a locus."""


class NotFoundError(CurationError, LookupError):
    """An allele or feature lookup came up empty."""


class NoCompleteNeighborError(CurationError):
    """The collection holds no full-length allele to use as a template."""


class NoMatchingFeaturesError(CurationError):
    """Template and query share no feature names."""


class InsufficientDataError(CurationError):
    """Too few complete alleles to compute a consensus."""


class InvalidLocusError(CurationError):
    """Locus designation is not among the recognized HLA genes."""


class AlignmentUnavailableError(RuntimeError):
    """The external alignment collaborator is missing or failed.

    Not a CurationError: it signals a broken environment, not bad data.
    """
