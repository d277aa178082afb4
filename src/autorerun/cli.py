import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
from pathlib import Path
from typing import List, Optional, Tuple

import aiohttp
import cachetools
from gidgethub import aiohttp as gh_aiohttp
from gidgethub.apps import get_installation_access_token
import humanize
from tabulate import tabulate
import typer

from autorerun import config
from autorerun.actions import set_failed, set_outputs
from autorerun.decision import (
    BusyDetector,
    Decision,
    Eligibility,
    Failure,
    LocalBusyDetector,
    PoolBusyDetector,
    RerunEngine,
    Selected,
)
from autorerun.devops import DevOpsAPI
from autorerun.errors import AutorerunError
from autorerun.github import API
from autorerun.logger import get_log_handlers
from autorerun.metric import error_counter, push_metrics, record_api_call
from autorerun.model import Config, load_config, parse_approvals_required

logging.basicConfig(
    format="%(asctime)s %(name)s %(levelname)s - %(message)s", level=logging.INFO
)
logger = logging.getLogger("autorerun")

app = typer.Typer()
httpcache = cachetools.LRUCache(maxsize=500)


@app.callback()
def init():
    logging.getLogger().setLevel(config.OVERRIDE_LOGGING)
    logger.setLevel(config.OVERRIDE_LOGGING)


async def get_access_token(gh: gh_aiohttp.GitHubAPI) -> str:
    if config.GITHUB_TOKEN:
        return config.GITHUB_TOKEN
    if config.GITHUB_APP_ID is None or config.GITHUB_INSTALLATION_ID is None:
        raise AutorerunError(
            "No GitHub credentials: set GITHUB_TOKEN or the GitHub App variables"
        )
    logger.debug(
        "Getting installation access token for %d", config.GITHUB_INSTALLATION_ID
    )
    record_api_call(
        f"/app/installations/{config.GITHUB_INSTALLATION_ID}/access_tokens"
    )
    access_token_response = await get_installation_access_token(
        gh,
        installation_id=config.GITHUB_INSTALLATION_ID,
        app_id=config.GITHUB_APP_ID,
        private_key=config.GITHUB_PRIVATE_KEY,
    )
    return access_token_response["token"]


@asynccontextmanager
async def github_client(session: aiohttp.ClientSession):
    gh = gh_aiohttp.GitHubAPI(session, __name__, base_url=config.GITHUB_API_URL)
    token = await get_access_token(gh)
    yield gh_aiohttp.GitHubAPI(
        session,
        __name__,
        oauth_token=token,
        cache=httpcache,
        base_url=config.GITHUB_API_URL,
    )


def resolve_config(
    config_file: Optional[Path], approvals_required: Optional[str]
) -> Config:
    policy = load_config(config_file or config.AUTORERUN_CONFIG or None)
    updates = {}
    if approvals_required:
        updates["approvals_required"] = parse_approvals_required(approvals_required)
    if not policy.pool_ids and config.DEVOPS_POOL_IDS:
        updates["pool_ids"] = config.DEVOPS_POOL_IDS
    return policy.model_copy(update=updates)


def parse_pr_number(pr: Optional[str]) -> Optional[int]:
    if pr is None or pr.strip() == "":
        return None
    return int(pr)


def make_busy_detector(
    session: aiohttp.ClientSession, api: API, policy: Config
) -> BusyDetector:
    if config.DEVOPS_TOKEN:
        if config.DEVOPS_ORGANIZATION_URL is None:
            raise AutorerunError(
                "DEVOPS_ORGANIZATION_URL is required with DEVOPS_TOKEN"
            )
        if not policy.pool_ids:
            raise AutorerunError(
                "DEVOPS_POOL_IDS or pool-ids is required with DEVOPS_TOKEN"
            )
        logger.debug("Using worker pools %s to detect running checks", policy.pool_ids)
        devops = DevOpsAPI(
            session, config.DEVOPS_ORGANIZATION_URL, config.DEVOPS_TOKEN
        )
        return PoolBusyDetector(
            devops=devops,
            github=api,
            pool_ids=policy.pool_ids,
            check_name=policy.check_name,
            approvals_required=policy.busy_approvals_required,
        )
    return LocalBusyDetector(policy.check_name)


@asynccontextmanager
async def engine_for(repo: str, policy: Config, pr_number: Optional[int]):
    async with aiohttp.ClientSession() as session:
        async with github_client(session) as gh:
            api = API(gh, repo)
            yield RerunEngine(
                api=api,
                config=policy,
                busy_detector=make_busy_detector(session, api, policy),
                pr_number=pr_number,
            )


async def decide(repo: str, policy: Config, pr_number: Optional[int]) -> Decision:
    try:
        async with engine_for(repo, policy, pr_number) as engine:
            return await engine.decide()
    except Exception as exc:  # noqa: BLE001
        error_counter.labels(context="setup").inc()
        logger.error("Could not set up rerun decision", exc_info=True)
        return Failure(error=str(exc), cause=exc)


def report(decision: Decision) -> None:
    if isinstance(decision, Selected):
        set_outputs(decision.target.outputs())
    elif isinstance(decision, Failure):
        set_failed(decision.error)

    if config.PUSH_GATEWAY is not None:
        push_metrics(config.PUSH_GATEWAY)

    if isinstance(decision, Failure):
        raise typer.Exit(code=1)


def _yes(value: bool) -> str:
    return "yes" if value else "no"


def format_eligibility(rows: List[Eligibility], now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    table = []
    for e in rows:
        pr = e.bundle.detail
        table.append(
            (
                f"#{pr.number}",
                pr.head.ref,
                humanize.naturaltime(now - e.bundle.summary.updated_at),
                pr.mergeable_state,
                _yes(e.draft),
                _yes(e.approved),
                _yes(e.failed),
                _yes(e.not_ran),
                _yes(e.behind),
                _yes(e.disabled),
                _yes(e.eligible),
            )
        )
    return tabulate(
        table,
        headers=(
            "PR",
            "Head",
            "Updated",
            "Mergeable",
            "Draft",
            "Approved",
            "Failed",
            "Not ran",
            "Behind",
            "Disabled",
            "Eligible",
        ),
        tablefmt="github",
    )


def prepare(
    repo: Optional[str],
    pr: Optional[str],
    approvals_required: Optional[str],
    config_file: Optional[Path],
) -> Tuple[Config, Optional[int]]:
    if not repo:
        raise AutorerunError("No repository given, set --repo or GITHUB_REPOSITORY")
    get_log_handlers(logger, repo)
    return resolve_config(config_file, approvals_required), parse_pr_number(pr)


@app.command()
def run(
    repo: Optional[str] = typer.Option(config.GITHUB_REPOSITORY, help="owner/name"),
    pr: Optional[str] = typer.Option(config.INPUT_PR, help="Only consider this PR"),
    approvals_required: Optional[str] = typer.Option(
        config.INPUT_APPROVALS_REQUIRED or None
    ),
    config_file: Optional[Path] = typer.Option(None, "--config"),
):
    try:
        policy, pr_number = prepare(repo, pr, approvals_required, config_file)
    except (AutorerunError, OSError, ValueError) as e:
        decision = Failure(error=str(e), cause=e)
    else:
        decision = asyncio.run(decide(repo, policy, pr_number))

    report(decision)


@app.command()
def explain(
    repo: Optional[str] = typer.Option(config.GITHUB_REPOSITORY, help="owner/name"),
    pr: Optional[str] = typer.Option(config.INPUT_PR, help="Only consider this PR"),
    approvals_required: Optional[str] = typer.Option(
        config.INPUT_APPROVALS_REQUIRED or None
    ),
    config_file: Optional[Path] = typer.Option(None, "--config"),
):
    async def handle(policy: Config, pr_number: Optional[int]):
        async with engine_for(repo, policy, pr_number) as engine:
            return await engine.explain()

    try:
        policy, pr_number = prepare(repo, pr, approvals_required, config_file)
        busy, rows = asyncio.run(handle(policy, pr_number))
    except Exception as e:  # noqa: BLE001
        logger.error("Could not explain rerun decision", exc_info=True)
        report(Failure(error=str(e), cause=e))
        return

    typer.echo(f"Busy: {_yes(busy)}")
    typer.echo(format_eligibility(rows))
