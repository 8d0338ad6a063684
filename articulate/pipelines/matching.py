"""Matching pipeline: target course → sending institutions that articulate it.

One background task per job walks every partner institution of the
receiving institution in enumeration order, downloads the agreement for the
requested major and scans it for the course. Only institution resolution and
agreement enumeration can fail a job; partner failures are logged and skipped.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable

from articulate.clients import AssistClient
from articulate.config import settings
from articulate.errors import (
    ArticulationError,
    InstitutionNotFoundError,
    PartnerProcessingError,
)
from articulate.jobs import JobStore
from articulate.models import JobStatus, MatchResult, PartnerCandidate
from articulate.parsers import extract_text_from_pdf
from articulate.pipelines.extraction import extract_articulation

logger = logging.getLogger(__name__)

DocumentReader = Callable[[bytes], str]


class MatchingOrchestrator:
    """Drives articulation jobs and records their progress in a JobStore."""

    def __init__(
        self,
        store: JobStore,
        client: AssistClient,
        *,
        document_reader: DocumentReader = extract_text_from_pdf,
        academic_year_id: int | None = None,
    ) -> None:
        self._store = store
        self._client = client
        self._document_reader = document_reader
        self._academic_year_id = academic_year_id or settings.assist.academic_year_id
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def start(self, job_id: str, institution_name: str, major: str, course: str) -> asyncio.Task:
        """Schedule a job on the running event loop and return immediately."""
        task = asyncio.create_task(
            self.run(job_id, institution_name, major, course),
            name=f"articulation-job-{job_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight job to finish."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def run(self, job_id: str, institution_name: str, major: str, course: str) -> None:
        """Run the full pipeline for one job.

        Steps:
        1. Resolve the receiving institution by exact display name
        2. Enumerate partner institutions with agreements
        3. For each partner, in order: find the major's agreement, download
           it, scan it for the course
        4. Record the verdict summary
        """
        logger.info(f"Job {job_id}: {course} in {major} at {institution_name}")

        try:
            self._store.update(job_id, progress="Resolving institution...")
            receiving_id = await self.resolve_institution(institution_name)

            self._store.update(job_id, progress="Fetching agreements...")
            partner_ids = await self._client.list_partner_ids(receiving_id)
        except ArticulationError as e:
            logger.warning(f"Job {job_id} failed: {e}")
            self._fail(job_id, str(e))
            return
        except Exception as e:
            logger.error(f"Job {job_id} failed unexpectedly: {e}", exc_info=True)
            self._fail(job_id, str(e))
            return

        total = len(partner_ids)
        self._store.update(job_id, progress=f"Processing {total} institutions...")

        matches: list[MatchResult] = []
        processed = 0
        for partner_id in partner_ids:
            match = await self.process_partner(receiving_id, partner_id, major, course)
            if match is not None and match.is_articulated:
                matches.append(match)
                self._store.append_match(job_id, match)
                logger.info(f"Job {job_id}: {match.institution_name or partner_id} articulates {course}")

            processed += 1
            self._store.update(
                job_id,
                total_processed=processed,
                progress=f"Processed {processed}/{total} institutions",
            )

        self._store.update(
            job_id,
            status=JobStatus.COMPLETED,
            progress="Done",
            matches=tuple(matches),
            matched_count=len(matches),
            summary=f'Found {len(matches)} institutions that articulate the course "{course}"',
        )
        logger.info(f"Job {job_id} completed: {len(matches)}/{total} institutions articulate {course}")

    async def resolve_institution(self, institution_name: str) -> int:
        """Return the id of the institution whose display name equals ``institution_name``.

        Raises:
            InstitutionNotFoundError: If no entry matches exactly
        """
        institutions = await self._client.list_institutions()
        for institution in institutions:
            if institution.display_name == institution_name:
                return institution.id
        raise InstitutionNotFoundError(institution_name)

    async def locate_agreement(self, receiving_id: int, sending_id: int, major: str) -> PartnerCandidate:
        """Find the first agreement report labelled exactly ``major``.

        Raises:
            PartnerProcessingError: If the partner has no report for the major
        """
        reports = await self._client.list_major_reports(
            receiving_id,
            sending_id,
            academic_year_id=self._academic_year_id,
        )
        for report in reports:
            if report.label == major:
                return PartnerCandidate(institution_id=sending_id, artifact_key=report.key)
        raise PartnerProcessingError(sending_id, f'no agreement for major "{major}"')

    async def process_partner(
        self,
        receiving_id: int,
        sending_id: int,
        major: str,
        course: str,
    ) -> MatchResult | None:
        """Scan one partner's agreement; None when it could not be retrieved."""
        try:
            candidate = await self.locate_agreement(receiving_id, sending_id, major)
            content = await self._client.fetch_artifact(candidate.artifact_key)
        except ArticulationError as e:
            logger.warning(f"Skipping institution {sending_id}: {e}")
            return None
        except Exception as e:
            logger.error(f"Error processing institution {sending_id}: {e}", exc_info=True)
            return None

        return self.scan_document(content, course, candidate.artifact_key)

    def scan_document(self, content: bytes, course: str, artifact_key: str) -> MatchResult:
        """Convert a downloaded agreement to text and run the extractor on it."""
        try:
            text = self._document_reader(content)
            verdict = extract_articulation(text, course)
        except Exception as e:
            logger.error(f"Error checking course articulation for artifact {artifact_key}: {e}")
            return MatchResult(
                institution_name="",
                is_articulated=False,
                artifact_key=artifact_key,
                error=str(e),
            )
        return MatchResult.from_verdict(verdict, artifact_key)

    def _fail(self, job_id: str, message: str) -> None:
        self._store.update(
            job_id,
            status=JobStatus.FAILED,
            progress="Failed",
            matches=(),
            error=message,
        )
