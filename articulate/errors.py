"""Exception taxonomy for the articulation pipeline.

Fatal errors end a job as ``failed``; per-partner errors are logged and
skipped; extraction errors become a non-articulated result with a note.
"""
from __future__ import annotations


class ArticulationError(Exception):
    """Base class for all errors raised by this package."""
    pass


class InstitutionNotFoundError(ArticulationError):
    """Raised when no directory entry matches the requested institution name."""

    def __init__(self, institution_name: str) -> None:
        self.institution_name = institution_name
        super().__init__(f'Institution "{institution_name}" not found')


class UpstreamFetchError(ArticulationError):
    """Raised when the catalog API cannot be reached or answers unexpectedly."""
    pass


class ArtifactFetchError(UpstreamFetchError):
    """Raised when an agreement document download does not return 200."""

    def __init__(self, artifact_key: str, status_code: int) -> None:
        self.artifact_key = artifact_key
        self.status_code = status_code
        super().__init__(f"Artifact {artifact_key} returned HTTP {status_code}")


class PartnerProcessingError(ArticulationError):
    """Raised for a failure that only affects one sending institution."""

    def __init__(self, institution_id: int | str, reason: str) -> None:
        self.institution_id = institution_id
        super().__init__(f"Institution {institution_id}: {reason}")


class ExtractionError(ArticulationError):
    """Raised when document text cannot be produced or scanned."""
    pass


class JobNotFoundError(ArticulationError):
    """Raised when polling a job id the store does not know."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")
