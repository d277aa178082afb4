from typing import Optional

import aiohttp
import pytest

from autorerun.devops import Build, DevOpsAPI, JobRequest
from autorerun.errors import MalformedResponse, NotFound, TransportError, Unauthorized


class _FakeResponse:
    def __init__(self, payload, status: int = 200):
        self.payload = payload
        self.status = status

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self):
        if self.status >= 400:
            raise aiohttp.ClientResponseError(
                request_info=None, history=(), status=self.status, message="error"
            )

    async def json(self):
        return self.payload


class _FakeSession:
    def __init__(
        self, payload=None, status: int = 200, error: Optional[Exception] = None
    ):
        self.payload = payload
        self.status = status
        self.error = error
        self.calls = []

    def get(self, url, auth=None):
        self.calls.append((url, auth))
        if self.error is not None:
            raise self.error
        return _FakeResponse(self.payload, self.status)


def test_job_request_model():
    job = JobRequest.model_validate(
        {
            "requestId": 99,
            "poolId": 12,
            "definition": {"id": 4, "name": "All Projects"},
            "owner": {"id": 5, "_links": {"self": {"href": "https://dev/build/5"}}},
        }
    )
    assert job.pool_id == "12"
    assert not job.is_finished
    assert job.definition_name == "All Projects"
    assert job.build_url == "https://dev/build/5"

    finished = JobRequest.model_validate({"result": "succeeded"})
    assert finished.is_finished
    assert finished.definition_name is None
    assert finished.build_url is None

    assert not JobRequest.model_validate({"result": ""}).is_finished


def test_build_model():
    build = Build.model_validate(
        {
            "reason": "pullRequest",
            "sourceBranch": "refs/pull/12/merge",
            "triggerInfo": {"pr.number": "12"},
        }
    )
    assert build.is_pull_request
    assert build.pr_number == 12
    assert build.source_branch == "refs/pull/12/merge"

    manual = Build.model_validate({"reason": "manual"})
    assert not manual.is_pull_request
    assert manual.pr_number is None


@pytest.mark.asyncio
async def test_get_job_requests():
    session = _FakeSession(
        {
            "count": 2,
            "value": [
                {"requestId": 1, "definition": {"name": "All Projects"}},
                {"requestId": 2, "result": "failed"},
            ],
        }
    )
    api = DevOpsAPI(session, "https://dev.azure.com/org/", "secret")

    jobs = await api.get_job_requests("12")

    assert [j.request_id for j in jobs] == [1, 2]
    assert {j.pool_id for j in jobs} == {"12"}
    url, auth = session.calls[0]
    assert url == (
        "https://dev.azure.com/org/_apis/distributedtask/pools/12/"
        "jobrequests?api-version=5.1"
    )
    assert auth == aiohttp.BasicAuth("PAT", "secret")
    assert api.call_count == 1


@pytest.mark.asyncio
async def test_get_build():
    session = _FakeSession({"reason": "pullRequest", "triggerInfo": {}})
    build = await DevOpsAPI(session, "https://dev", "t").get_build("https://dev/b/1")
    assert build.pr_number is None


@pytest.mark.parametrize(
    "status,expected", [(401, Unauthorized), (404, NotFound), (500, TransportError)]
)
@pytest.mark.asyncio
async def test_http_errors(status, expected):
    api = DevOpsAPI(_FakeSession({}, status=status), "https://dev", "t")
    with pytest.raises(expected):
        await api.get_job_requests("12")


@pytest.mark.asyncio
async def test_transport_and_shape_errors():
    api = DevOpsAPI(
        _FakeSession(error=aiohttp.ClientConnectionError()), "https://dev", "t"
    )
    with pytest.raises(TransportError):
        await api.get_build("https://dev/b/1")

    api = DevOpsAPI(_FakeSession({"unexpected": []}), "https://dev", "t")
    with pytest.raises(MalformedResponse):
        await api.get_job_requests("12")


@pytest.mark.asyncio
async def test_finished_jobs_without_links_or_definition_name():
    session = _FakeSession(
        {
            "value": [
                {"requestId": 1, "result": "succeeded", "owner": {"id": 3}},
                {"requestId": 2, "result": "canceled", "definition": {"id": 4}},
            ]
        }
    )
    jobs = await DevOpsAPI(session, "https://dev", "t").get_job_requests("12")

    assert [j.is_finished for j in jobs] == [True, True]
    assert jobs[0].build_url is None
    assert jobs[1].definition_name is None
