"""Async client for the ASSIST transfer-agreement catalog API."""
from __future__ import annotations

import logging
from typing import Any

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import AssistSettings, settings
from .errors import ArtifactFetchError, UpstreamFetchError
from .models import AgreementReport, Institution

logger = logging.getLogger(__name__)


class AssistClient:
    """Institution directory lookups and agreement document downloads.

    Calls are retried on transport errors; HTTP error statuses are not
    retried. Every failure surfaces as :class:`UpstreamFetchError`. An
    injected ``http_client`` must carry the catalog base URL.
    """

    def __init__(
        self,
        config: AssistSettings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._config = config or settings.assist
        self._client = http_client or httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout,
        )
        self._owns_client = http_client is None

    async def __aenter__(self) -> AssistClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    async def _get(self, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._config.retry_attempts),
            wait=wait_exponential(multiplier=1, max=self._config.retry_max_wait),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise UpstreamFetchError(f"GET {path} failed: {e}") from e
        return response

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> Any:
        response = await self._get(path, params)
        if response.status_code != httpx.codes.OK:
            raise UpstreamFetchError(f"GET {path} returned HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamFetchError(f"GET {path} returned invalid JSON: {e}") from e

    # ------------------------------------------------------------------
    # public API
    # ------------------------------------------------------------------
    async def list_institutions(self) -> list[Institution]:
        payload = await self._get_json("/institutions")
        if not isinstance(payload, list):
            raise UpstreamFetchError("Institutions listing is not a list")
        try:
            return [Institution.from_payload(item) for item in payload]
        except (KeyError, TypeError, AttributeError) as e:
            raise UpstreamFetchError(f"Malformed institution record: {e}") from e

    async def list_partner_ids(self, institution_id: int) -> list[int]:
        """Ids of sending institutions with an agreement, duplicates kept."""
        payload = await self._get_json(f"/institutions/{institution_id}/agreements")
        if not isinstance(payload, list):
            raise UpstreamFetchError("Agreements listing is not a list")
        try:
            return [entry["institutionParentId"] for entry in payload]
        except (KeyError, TypeError) as e:
            raise UpstreamFetchError(f"Malformed agreement record: {e}") from e

    async def list_major_reports(
        self,
        receiving_id: int,
        sending_id: int,
        *,
        academic_year_id: int | None = None,
    ) -> list[AgreementReport]:
        params = {
            "receivingInstitutionId": receiving_id,
            "sendingInstitutionId": sending_id,
            "academicYearId": academic_year_id or self._config.academic_year_id,
            "categoryCode": self._config.category_code,
        }
        payload = await self._get_json("/agreements", params)
        if not isinstance(payload, dict):
            raise UpstreamFetchError("Agreements response is not an object")
        reports = payload.get("reports") or []
        return [
            AgreementReport(label=report.get("label", ""), key=report.get("key", ""))
            for report in reports
            if isinstance(report, dict)
        ]

    async def fetch_artifact(self, artifact_key: str) -> bytes:
        response = await self._get(f"/artifacts/{artifact_key}")
        if response.status_code != httpx.codes.OK:
            raise ArtifactFetchError(artifact_key, response.status_code)
        logger.debug(f"Downloaded artifact {artifact_key} ({len(response.content)} bytes)")
        return response.content


__all__ = ["AssistClient"]
