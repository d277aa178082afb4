from __future__ import annotations

import asyncio
import logging
from typing import List, Protocol, Sequence

from autorerun.decision.selector import aggregate_in_progress, is_approved
from autorerun.devops import DevOpsAPI, JobRequest
from autorerun.errors import MalformedResponse
from autorerun.github import API, PullRequestBundle
from autorerun.model import AGGREGATE_CHECK_NAME

logger = logging.getLogger("autorerun")


class BusyDetector(Protocol):
    async def is_busy(self, bundles: Sequence[PullRequestBundle]) -> bool:
        ...


class LocalBusyDetector:
    """Busy when any pull request shows the aggregate check as in progress."""

    def __init__(self, check_name: str = AGGREGATE_CHECK_NAME):
        self.check_name = check_name

    async def is_busy(self, bundles: Sequence[PullRequestBundle]) -> bool:
        for bundle in bundles:
            if aggregate_in_progress(bundle.check_runs, self.check_name):
                logger.debug("'%s' in progress on %s", self.check_name, bundle)
                return True
        return False


class PoolBusyDetector:
    """
    Busy when a worker pool is running the aggregate check for a pull request
    that already has enough approvals to be merged.

    Job requests of all pools are fetched concurrently, the scan itself is
    sequential since it stops on the first match.
    """

    def __init__(
        self,
        *,
        devops: DevOpsAPI,
        github: API,
        pool_ids: Sequence[str],
        check_name: str = AGGREGATE_CHECK_NAME,
        approvals_required: int = 2,
    ):
        self.devops = devops
        self.github = github
        self.pool_ids = list(pool_ids)
        self.check_name = check_name
        self.approvals_required = approvals_required

    async def get_jobs(self) -> List[JobRequest]:
        pools = await asyncio.gather(
            *(self.devops.get_job_requests(pool_id) for pool_id in self.pool_ids)
        )
        return [job for jobs in pools for job in jobs]

    async def is_busy(self, bundles: Sequence[PullRequestBundle]) -> bool:
        jobs = await self.get_jobs()
        logger.debug(
            "Have %d job requests across %d pools", len(jobs), len(self.pool_ids)
        )

        for job in jobs:
            if job.is_finished or job.definition_name != self.check_name:
                continue

            if job.build_url is None:
                raise MalformedResponse(
                    f"Job request {job.request_id} in pool {job.pool_id} "
                    "has no owning build"
                )
            build = await self.devops.get_build(job.build_url)

            if not build.is_pull_request:
                continue

            pr_number = build.pr_number
            if pr_number is None:
                # ends the whole scan, not only this job
                logger.warning(
                    "Build for %s has no pull request number, stop scanning "
                    "remaining job requests",
                    build.source_branch,
                )
                break

            logger.debug("Checking #%d to see if it's been approved", pr_number)
            reviews = await self.github.get_reviews(pr_number)
            if is_approved(reviews, self.approvals_required):
                logger.info(
                    "'%s' build triggered by: %s", self.check_name, build.source_branch
                )
                return True

        return False
