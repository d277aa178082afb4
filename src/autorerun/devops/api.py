from contextlib import contextmanager
from typing import Iterator, List
import logging

import aiohttp
import pydantic

from autorerun.devops.model import Build, JobRequest
from autorerun.errors import MalformedResponse, TransportError, error_for_status
from autorerun.metric import record_api_call

logger = logging.getLogger("autorerun")


@contextmanager
def translate_errors(url: str) -> Iterator[None]:
    try:
        yield
    except aiohttp.ClientResponseError as e:
        raise error_for_status(
            e.status, f"DevOps request {url} failed: {e.message}", url
        ) from e
    except aiohttp.ClientError as e:
        raise TransportError(f"DevOps request {url} failed: {e}", url=url) from e
    except (pydantic.ValidationError, KeyError, ValueError) as e:
        raise MalformedResponse(
            f"Unexpected DevOps response from {url}: {e}", url=url
        ) from e


class DevOpsAPI:
    session: aiohttp.ClientSession
    organization_url: str

    call_count: int

    def __init__(
        self, session: aiohttp.ClientSession, organization_url: str, token: str
    ):
        self.session = session
        self.organization_url = organization_url.rstrip("/")
        self._auth = aiohttp.BasicAuth("PAT", token)
        self.call_count = 0

    async def _get_json(self, url: str):
        self.call_count += 1
        record_api_call(url)
        async with self.session.get(url, auth=self._auth) as response:
            response.raise_for_status()
            return await response.json()

    async def get_job_requests(self, pool_id: str) -> List[JobRequest]:
        url = (
            f"{self.organization_url}/_apis/distributedtask/pools/"
            f"{pool_id}/jobrequests?api-version=5.1"
        )
        logger.debug("Get job requests for pool %s", url)
        with translate_errors(url):
            data = await self._get_json(url)
            return [
                JobRequest.model_validate({"poolId": pool_id, **item})
                for item in data["value"]
            ]

    async def get_build(self, url: str) -> Build:
        logger.debug("Get build %s", url)
        with translate_errors(url):
            return Build.model_validate(await self._get_json(url))
