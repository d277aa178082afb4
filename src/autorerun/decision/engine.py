from __future__ import annotations

import logging
import time
from typing import List, Optional, Tuple

from autorerun.decision.busy import BusyDetector
from autorerun.decision.selector import Eligibility, evaluate_bundles, select_candidate
from autorerun.decision.types import (
    Busy,
    Decision,
    Failure,
    NoCandidate,
    RerunTarget,
    Selected,
)
from autorerun.github import API, PullRequestBundle, load_bundles
from autorerun.metric import decision_counter, error_counter
from autorerun.model import Config

logger = logging.getLogger("autorerun")


class RerunEngine:
    def __init__(
        self,
        *,
        api: API,
        config: Config,
        busy_detector: BusyDetector,
        pr_number: Optional[int] = None,
    ):
        self.api = api
        self.config = config
        self.busy_detector = busy_detector
        self.pr_number = pr_number

    async def load_bundles(self) -> List[PullRequestBundle]:
        return await load_bundles(self.api, self.pr_number)

    async def decide(self) -> Decision:
        started = time.monotonic()
        logger.info(
            "Rerun decision start repo=%s pr=%s approvals_required=%d",
            self.api.repo,
            self.pr_number,
            self.config.approvals_required,
        )
        try:
            decision = await self._decide()
        except Exception as exc:  # noqa: BLE001
            error_counter.labels(context="decide").inc()
            logger.error(
                "Rerun decision failed repo=%s pr=%s",
                self.api.repo,
                self.pr_number,
                exc_info=True,
            )
            decision = Failure(error=str(exc), cause=exc)

        decision_counter.labels(result=decision.result).inc()
        logger.info(
            "Rerun decision done repo=%s result=%s api_calls=%d duration_ms=%.1f",
            self.api.repo,
            decision.result,
            self.api.call_count,
            (time.monotonic() - started) * 1000.0,
        )
        return decision

    async def _decide(self) -> Decision:
        bundles = await self.load_bundles()

        if await self.busy_detector.is_busy(bundles):
            logger.info("Check in progress")
            return Busy(reason=f"'{self.config.check_name}' is in progress")

        logger.info("No check in progress")
        bundle = select_candidate(bundles, self.config)
        if bundle is None:
            return NoCandidate()

        pr = bundle.detail
        logger.info("Selected %s for rerun", pr)
        return Selected(
            target=RerunTarget(
                number=pr.number, head_ref=pr.head.ref, base_ref=pr.base.ref
            )
        )

    async def explain(self) -> Tuple[bool, List[Eligibility]]:
        bundles = await self.load_bundles()
        busy = await self.busy_detector.is_busy(bundles)
        return busy, evaluate_bundles(bundles, self.config)
