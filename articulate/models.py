"""Core domain records for articulation jobs.

Records are frozen dataclasses; the job store replaces them wholesale instead
of mutating them in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Job lifecycle status."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not JobStatus.PROCESSING


@dataclass(frozen=True)
class ArticulationVerdict:
    """Outcome of scanning one agreement document for a course."""
    institution_name: str
    is_articulated: bool
    articulated_text: str | None = None


@dataclass(frozen=True)
class MatchResult:
    """Articulation result for one downloaded agreement document."""
    institution_name: str
    is_articulated: bool
    artifact_key: str
    articulated_text: str | None = None
    error: str | None = None

    @classmethod
    def from_verdict(cls, verdict: ArticulationVerdict, artifact_key: str) -> MatchResult:
        return cls(
            institution_name=verdict.institution_name,
            is_articulated=verdict.is_articulated,
            articulated_text=verdict.articulated_text,
            artifact_key=artifact_key,
        )


@dataclass(frozen=True)
class PartnerCandidate:
    """Sending institution paired with the agreement document to scan."""
    institution_id: int
    artifact_key: str


@dataclass(frozen=True)
class Institution:
    """Directory entry from the institutions listing."""
    id: int
    names: tuple[str, ...] = ()

    @property
    def display_name(self) -> str | None:
        """Primary display name (first name variant)."""
        return self.names[0] if self.names else None

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Institution:
        names = tuple(
            entry.get("name", "")
            for entry in payload.get("names") or []
            if isinstance(entry, dict)
        )
        return cls(id=payload["id"], names=names)


@dataclass(frozen=True)
class AgreementReport:
    """Major-agreement record for a receiving/sending pair."""
    label: str
    key: str


@dataclass(frozen=True)
class Job:
    """Pollable state of one articulation search."""
    id: str
    status: JobStatus = JobStatus.PROCESSING
    progress: str = "Queued"
    matches: tuple[MatchResult, ...] = ()
    error: str | None = None
    total_processed: int = 0
    matched_count: int = 0
    summary: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    completed_at: datetime | None = None
