from contextlib import contextmanager
from typing import AsyncIterator, Iterator, List
import logging

import aiohttp
import gidgethub
from gidgethub.abc import GitHubAPI
import pydantic

from autorerun.errors import MalformedResponse, TransportError, error_for_status
from autorerun.github.model import (
    CheckRun,
    PullRequestDetail,
    PullRequestSummary,
    Review,
)
from autorerun.metric import record_api_call

logger = logging.getLogger("autorerun")


@contextmanager
def translate_errors(url: str) -> Iterator[None]:
    try:
        yield
    except gidgethub.HTTPException as e:
        raise error_for_status(
            int(e.status_code), f"GitHub request {url} failed: {e}", url
        ) from e
    except aiohttp.ClientError as e:
        raise TransportError(f"GitHub request {url} failed: {e}", url=url) from e
    except pydantic.ValidationError as e:
        raise MalformedResponse(
            f"Unexpected GitHub response from {url}: {e}", url=url
        ) from e


class API:
    gh: GitHubAPI
    repo: str

    call_count: int

    def __init__(self, gh: GitHubAPI, repo: str):
        self.gh = gh
        self.repo = repo
        self.call_count = 0

    @property
    def repo_url(self) -> str:
        return f"/repos/{self.repo}"

    def _count(self, url: str) -> None:
        self.call_count += 1
        record_api_call(url)

    async def get_pulls(self) -> AsyncIterator[PullRequestSummary]:
        url = f"{self.repo_url}/pulls?state=open&sort=updated&direction=asc"
        self._count(url)
        logger.debug("Get open pulls %s", url)
        with translate_errors(url):
            async for item in self.gh.getiter(url):
                yield PullRequestSummary.model_validate(item)

    async def get_pull(self, number: int) -> PullRequestDetail:
        url = f"{self.repo_url}/pulls/{number}"
        self._count(url)
        logger.debug("Get pull %s", url)
        with translate_errors(url):
            return PullRequestDetail.model_validate(await self.gh.getitem(url))

    async def get_reviews(self, number: int) -> List[Review]:
        url = f"{self.repo_url}/pulls/{number}/reviews"
        self._count(url)
        logger.debug("Get reviews %s", url)
        with translate_errors(url):
            return [
                Review.model_validate({**item, "pull_request_number": number})
                async for item in self.gh.getiter(url)
            ]

    async def get_check_runs_for_ref(self, ref: str) -> List[CheckRun]:
        url = f"{self.repo_url}/commits/{ref}/check-runs"
        self._count(url)
        logger.debug("Get check runs for ref %s", url)
        with translate_errors(url):
            return [
                CheckRun.model_validate(item)
                async for item in self.gh.getiter(url, iterable_key="check_runs")
            ]
