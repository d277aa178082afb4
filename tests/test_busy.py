from typing import Dict, List, Optional

import pytest

from autorerun.decision import LocalBusyDetector, PoolBusyDetector
from autorerun.devops.model import Build, JobRequest
from autorerun.errors import MalformedResponse, TransportError
from autorerun.github import PullRequestBundle
from autorerun.github.model import (
    CheckRun,
    PullRequestDetail,
    PullRequestSummary,
    Review,
)


def _bundle(number: int, check_runs=()) -> PullRequestBundle:
    pr = PullRequestDetail.model_validate(
        {
            "number": number,
            "head": {"ref": f"feature/{number}", "sha": "a" * 40},
            "base": {"ref": "develop", "sha": "b" * 40},
            "updated_at": "2026-02-17T10:00:00Z",
            "mergeable_state": "behind",
        }
    )
    return PullRequestBundle(
        summary=PullRequestSummary.model_validate(pr.model_dump()),
        detail=pr,
        reviews=(),
        check_runs=tuple(check_runs),
    )


def _check(name="All Projects", status="in_progress") -> CheckRun:
    return CheckRun(name=name, head_sha="a" * 40, status=status)


def _job(
    build_url: Optional[str],
    *,
    name: str = "All Projects",
    result: Optional[str] = None,
    pool_id: str = "12",
) -> JobRequest:
    payload = {"poolId": pool_id, "result": result, "definition": {"name": name}}
    if build_url is not None:
        payload["owner"] = {"_links": {"self": {"href": build_url}}}
    return JobRequest.model_validate(payload)


def _build(pr_number: Optional[str], reason: str = "pullRequest") -> Build:
    trigger_info = {} if pr_number is None else {"pr.number": pr_number}
    return Build.model_validate(
        {
            "reason": reason,
            "sourceBranch": f"refs/pull/{pr_number}/merge",
            "triggerInfo": trigger_info,
        }
    )


class _FakeDevOps:
    def __init__(self, pools: Dict[str, List[JobRequest]], builds: Dict[str, Build]):
        self.pools = pools
        self.builds = builds
        self.build_calls: List[str] = []

    async def get_job_requests(self, pool_id: str) -> List[JobRequest]:
        if pool_id not in self.pools:
            raise TransportError(f"pool {pool_id} unreachable")
        return self.pools[pool_id]

    async def get_build(self, url: str) -> Build:
        self.build_calls.append(url)
        return self.builds[url]


class _FakeGitHub:
    def __init__(self, approvals: Dict[int, int]):
        self.approvals = approvals
        self.review_calls: List[int] = []

    async def get_reviews(self, number: int) -> List[Review]:
        self.review_calls.append(number)
        return [
            Review(id=i, state="APPROVED", pull_request_number=number)
            for i in range(self.approvals.get(number, 0))
        ]


@pytest.mark.asyncio
async def test_local_detector_in_progress_aggregate():
    detector = LocalBusyDetector()

    assert not await detector.is_busy([])
    assert not await detector.is_busy(
        [_bundle(1, [_check(status="completed")]), _bundle(2, [_check("lint")])]
    )
    assert await detector.is_busy([_bundle(1), _bundle(2, [_check()])])
    assert await detector.is_busy([_bundle(1, [_check(status="In_Progress")])])
    # queued is not in progress
    assert not await detector.is_busy([_bundle(1, [_check(status="queued")])])


@pytest.mark.asyncio
async def test_local_detector_custom_check_name():
    detector = LocalBusyDetector("Everything")
    assert not await detector.is_busy([_bundle(1, [_check()])])
    assert await detector.is_busy([_bundle(1, [_check("Everything")])])


def _detector(devops, github, pool_ids=("12", "22")) -> PoolBusyDetector:
    return PoolBusyDetector(devops=devops, github=github, pool_ids=pool_ids)


@pytest.mark.asyncio
async def test_pool_detector_busy_for_approved_pull_request():
    devops = _FakeDevOps(
        pools={
            "12": [_job("b/1", result="succeeded"), _job("b/2", name="Docs")],
            "22": [_job("b/3"), _job("b/4")],
        },
        builds={"b/3": _build("7"), "b/4": _build("8")},
    )
    github = _FakeGitHub({7: 2, 8: 2})

    assert await _detector(devops, github).is_busy([])
    assert devops.build_calls == ["b/3"]
    assert github.review_calls == [7]


@pytest.mark.asyncio
async def test_pool_detector_ignores_unapproved_and_non_pr_builds():
    devops = _FakeDevOps(
        pools={"12": [_job("b/1"), _job("b/2")], "22": []},
        builds={"b/1": _build("7"), "b/2": _build(None, reason="manual")},
    )
    github = _FakeGitHub({7: 1})

    assert not await _detector(devops, github).is_busy([])
    assert github.review_calls == [7]


@pytest.mark.asyncio
async def test_pool_detector_missing_pr_number_stops_scan():
    devops = _FakeDevOps(
        pools={
            "12": [_job("b/1"), _job("b/2")],
            "22": [_job("b/3")],
        },
        builds={"b/1": _build(None), "b/2": _build("8"), "b/3": _build("9")},
    )
    github = _FakeGitHub({8: 5, 9: 5})

    assert not await _detector(devops, github).is_busy([])
    assert devops.build_calls == ["b/1"]
    assert github.review_calls == []


@pytest.mark.asyncio
async def test_pool_detector_busy_before_missing_pr_number():
    devops = _FakeDevOps(
        pools={"12": [_job("b/1"), _job("b/2")]},
        builds={"b/1": _build("8"), "b/2": _build(None)},
    )
    github = _FakeGitHub({8: 2})

    assert await _detector(devops, github, pool_ids=["12"]).is_busy([])


@pytest.mark.asyncio
async def test_pool_detector_custom_threshold():
    devops = _FakeDevOps(pools={"12": [_job("b/1")]}, builds={"b/1": _build("8")})
    github = _FakeGitHub({8: 1})

    detector = PoolBusyDetector(
        devops=devops, github=github, pool_ids=["12"], approvals_required=1
    )
    assert await detector.is_busy([])


@pytest.mark.asyncio
async def test_pool_detector_errors_propagate():
    devops = _FakeDevOps(pools={"12": []}, builds={})
    with pytest.raises(TransportError):
        await _detector(devops, _FakeGitHub({}), pool_ids=["12", "99"]).is_busy([])

    devops = _FakeDevOps(pools={"12": [_job(None)]}, builds={})
    with pytest.raises(MalformedResponse):
        await _detector(devops, _FakeGitHub({}), pool_ids=["12"]).is_busy([])


@pytest.mark.asyncio
async def test_pool_detector_skips_finished_jobs_without_owner_link():
    finished = JobRequest.model_validate(
        {
            "result": "succeeded",
            "definition": {"name": "All Projects"},
            "owner": {"id": 3},
        }
    )
    devops = _FakeDevOps(
        pools={"12": [finished, _job("b/2")]}, builds={"b/2": _build("8")}
    )
    github = _FakeGitHub({8: 2})

    assert await _detector(devops, github, pool_ids=["12"]).is_busy([])
    assert devops.build_calls == ["b/2"]

    running = JobRequest.model_validate(
        {"definition": {"name": "All Projects"}, "owner": {"id": 3}}
    )
    devops = _FakeDevOps(pools={"12": [running]}, builds={})
    with pytest.raises(MalformedResponse):
        await _detector(devops, github, pool_ids=["12"]).is_busy([])
