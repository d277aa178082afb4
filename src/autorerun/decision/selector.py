from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Iterable, List, Optional, Sequence

from autorerun.github import PullRequestBundle
from autorerun.github.model import CheckRun, PullRequestDetail, Review
from autorerun.metric import candidate_count
from autorerun.model import AGGREGATE_CHECK_NAME, DISABLE_LABEL, Config

logger = logging.getLogger("autorerun")


def is_approved(reviews: Iterable[Review], approvals_required: int) -> bool:
    # repeated approvals by the same reviewer each count
    approvals = [r for r in reviews if r.state == "APPROVED"]
    return len(approvals) >= approvals_required


def aggregate_check_runs(
    check_runs: Iterable[CheckRun], check_name: str = AGGREGATE_CHECK_NAME
) -> List[CheckRun]:
    return [cr for cr in check_runs if cr.name == check_name]


def aggregate_in_progress(
    check_runs: Iterable[CheckRun], check_name: str = AGGREGATE_CHECK_NAME
) -> bool:
    return any(
        cr.is_in_progress for cr in aggregate_check_runs(check_runs, check_name)
    )


def aggregate_failed(
    check_runs: Iterable[CheckRun], check_name: str = AGGREGATE_CHECK_NAME
) -> bool:
    return any(cr.is_failure for cr in aggregate_check_runs(check_runs, check_name))


def aggregate_succeeded(
    check_runs: Iterable[CheckRun], check_name: str = AGGREGATE_CHECK_NAME
) -> bool:
    return any(cr.is_success for cr in aggregate_check_runs(check_runs, check_name))


def aggregate_not_ran(
    check_runs: Iterable[CheckRun], check_name: str = AGGREGATE_CHECK_NAME
) -> bool:
    return len(aggregate_check_runs(check_runs, check_name)) == 0


def _mergeable_state_is(pr: PullRequestDetail, state: str) -> bool:
    return pr.mergeable_state is not None and pr.mergeable_state.lower() == state


def is_behind(pr: PullRequestDetail) -> bool:
    return _mergeable_state_is(pr, "behind")


def has_unknown_merge_state(pr: PullRequestDetail) -> bool:
    return _mergeable_state_is(pr, "unknown")


def is_conflicted(pr: PullRequestDetail) -> bool:
    return _mergeable_state_is(pr, "dirty")


def has_label(pr: PullRequestDetail, label: str = DISABLE_LABEL) -> bool:
    return label in pr.label_names


@dataclass(frozen=True)
class Eligibility:
    bundle: PullRequestBundle
    draft: bool
    approved: bool
    conflicted: bool
    unknown_merge_state: bool
    failed: bool
    disabled: bool
    behind: bool
    not_ran: bool
    succeeded: bool
    head_moved: bool = False

    @property
    def eligible(self) -> bool:
        return (
            not self.draft
            and self.approved
            and not self.conflicted
            and not self.failed
            and not self.unknown_merge_state
            and not self.disabled
            and not self.head_moved
            and (self.behind or self.not_ran)
        )


def evaluate_bundle(bundle: PullRequestBundle, config: Config) -> Eligibility:
    pr = bundle.detail
    check_runs = bundle.check_runs
    eligibility = Eligibility(
        bundle=bundle,
        draft=pr.draft,
        approved=is_approved(bundle.reviews, config.approvals_required),
        conflicted=is_conflicted(pr),
        unknown_merge_state=has_unknown_merge_state(pr),
        failed=aggregate_failed(check_runs, config.check_name),
        disabled=has_label(pr, config.disable_label),
        behind=is_behind(pr),
        not_ran=aggregate_not_ran(check_runs, config.check_name),
        succeeded=aggregate_succeeded(check_runs, config.check_name),
        head_moved=bundle.head_moved,
    )

    logger.debug("pull number: %d", pr.number)
    logger.debug(
        "- approved (%d required): %s",
        config.approvals_required,
        eligibility.approved,
    )
    logger.debug("- mergeable state: %s", pr.mergeable_state)
    logger.debug("- conflicted: %s", eligibility.conflicted)
    logger.debug("- failed: %s", eligibility.failed)
    logger.debug("- unknown merge state: %s", eligibility.unknown_merge_state)
    logger.debug("- behind: %s", eligibility.behind)
    logger.debug("- draft: %s", eligibility.draft)
    logger.debug("- check success: %s", eligibility.succeeded)
    logger.debug("- check not ran: %s", eligibility.not_ran)
    logger.debug("- disable label set: %s", eligibility.disabled)
    logger.debug("- eligible: %s", eligibility.eligible)

    return eligibility


def evaluate_bundles(
    bundles: Sequence[PullRequestBundle], config: Config
) -> List[Eligibility]:
    return [evaluate_bundle(bundle, config) for bundle in bundles]


def select_candidate(
    bundles: Sequence[PullRequestBundle], config: Config
) -> Optional[PullRequestBundle]:
    """
    Pick the first eligible bundle. Bundles are expected in listing order,
    so this is the least recently updated eligible pull request.
    """
    candidates = [e.bundle for e in evaluate_bundles(bundles, config) if e.eligible]
    logger.info("Have %d rerun candidates", len(candidates))
    candidate_count.set(len(candidates))
    if len(candidates) == 0:
        return None
    return candidates[0]
