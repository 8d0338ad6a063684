from __future__ import annotations

from dataclasses import dataclass, field

import httpx
import pytest
import pytest_asyncio

from articulate.clients import AssistClient
from articulate.config import AssistSettings
from articulate.jobs import JobStore
from articulate.pipelines.matching import MatchingOrchestrator
from tests.factories import BASE_URL, read_text_document


@dataclass
class FakeCatalog:
    """In-memory stand-in for the catalog API, served through httpx.MockTransport."""

    institutions: list[dict] = field(default_factory=list)
    agreements: dict[int, list[dict]] = field(default_factory=dict)
    reports: dict[tuple[int, int], dict] = field(default_factory=dict)
    artifacts: dict[str, bytes] = field(default_factory=dict)
    failures: dict[str, int] = field(default_factory=dict)
    report_failures: dict[tuple[int, int], int] = field(default_factory=dict)
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/api")

        if path in self.failures:
            return httpx.Response(self.failures[path], json={"error": "upstream"})

        if path == "/institutions":
            return httpx.Response(200, json=self.institutions)

        if path.startswith("/institutions/") and path.endswith("/agreements"):
            institution_id = int(path.split("/")[2])
            return httpx.Response(200, json=self.agreements.get(institution_id, []))

        if path == "/agreements":
            params = request.url.params
            pair = (int(params["receivingInstitutionId"]), int(params["sendingInstitutionId"]))
            if pair in self.report_failures:
                return httpx.Response(self.report_failures[pair])
            return httpx.Response(200, json=self.reports.get(pair, {"reports": []}))

        if path.startswith("/artifacts/"):
            key = path.removeprefix("/artifacts/")
            if key not in self.artifacts:
                return httpx.Response(404)
            return httpx.Response(200, content=self.artifacts[key])

        return httpx.Response(404)


@pytest.fixture()
def catalog() -> FakeCatalog:
    return FakeCatalog(
        institutions=[
            {"id": 1, "names": [{"name": "UCLA"}, {"name": "University of California, Los Angeles"}]},
            {"id": 2, "names": [{"name": "UC Berkeley"}]},
        ],
    )


@pytest.fixture()
def assist_settings() -> AssistSettings:
    return AssistSettings(base_url=BASE_URL, retry_attempts=1, retry_max_wait=0)


@pytest_asyncio.fixture()
async def assist_client(catalog, assist_settings):
    async with httpx.AsyncClient(
        transport=httpx.MockTransport(catalog.handler),
        base_url=BASE_URL,
    ) as http_client:
        yield AssistClient(assist_settings, http_client=http_client)


@pytest.fixture()
def store() -> JobStore:
    return JobStore()


@pytest.fixture()
def orchestrator(store, assist_client) -> MatchingOrchestrator:
    return MatchingOrchestrator(
        store,
        assist_client,
        document_reader=read_text_document,
        academic_year_id=72,
    )
