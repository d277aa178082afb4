import asyncio
from dataclasses import dataclass
import logging
from typing import List, Optional, Tuple

from autorerun.github.api import API
from autorerun.github.model import (
    CheckRun,
    PullRequestDetail,
    PullRequestSummary,
    Review,
)

logger = logging.getLogger("autorerun")


@dataclass(frozen=True)
class PullRequestBundle:
    summary: PullRequestSummary
    detail: PullRequestDetail
    reviews: Tuple[Review, ...]
    check_runs: Tuple[CheckRun, ...]

    @property
    def number(self) -> int:
        return self.detail.number

    @property
    def head_moved(self) -> bool:
        # check runs were loaded for the listing sha
        return self.detail.head.sha != self.summary.head.sha

    def __str__(self) -> str:
        return str(self.detail)


async def load_bundle(api: API, pull: PullRequestSummary) -> PullRequestBundle:
    detail, reviews, check_runs = await asyncio.gather(
        api.get_pull(pull.number),
        api.get_reviews(pull.number),
        api.get_check_runs_for_ref(pull.head.sha),
    )
    bundle = PullRequestBundle(
        summary=pull,
        detail=detail,
        reviews=tuple(reviews),
        check_runs=tuple(check_runs),
    )
    if bundle.head_moved:
        logger.warning(
            "Head of %s moved from %s to %s while loading, check runs are stale",
            pull,
            pull.head.sha,
            detail.head.sha,
        )
    logger.debug(
        "Loaded %s: %d reviews, %d check runs",
        pull,
        len(bundle.reviews),
        len(bundle.check_runs),
    )
    return bundle


async def load_bundles(
    api: API, pr_number: Optional[int] = None
) -> List[PullRequestBundle]:
    pulls = [pr async for pr in api.get_pulls()]
    logger.info("Found %d open pull requests in %s", len(pulls), api.repo)

    if pr_number is not None:
        pulls = [pr for pr in pulls if pr.number == pr_number]
        logger.debug("Filtered to %d pull requests for #%d", len(pulls), pr_number)

    # gather keeps the listing order, oldest update first
    return list(await asyncio.gather(*(load_bundle(api, pr) for pr in pulls)))


__all__ = ["API", "PullRequestBundle", "load_bundle", "load_bundles"]
