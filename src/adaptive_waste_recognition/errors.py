"""Exceptions raised inside the recognition pipeline."""

from __future__ import annotations


class RecognitionError(Exception):
    """Base class for every error raised by the recognition core."""


class ExtractionFailure(RecognitionError):
    """Feature extraction could not process the supplied image."""


class ClassifierFailure(RecognitionError):
    """A strategy classifier raised or returned malformed candidates."""


class ConsolidationInconsistency(RecognitionError):
    """A candidate references a region that is not part of the current pass."""


class PersistenceFailure(RecognitionError):
    """Loading or saving learning state through the persistence collaborator failed."""


class ScanCancelled(RecognitionError):
    """The caller cancelled a scan before it completed."""
