from autorerun.decision.busy import BusyDetector, LocalBusyDetector, PoolBusyDetector
from autorerun.decision.engine import RerunEngine
from autorerun.decision.selector import Eligibility, evaluate_bundle, select_candidate
from autorerun.decision.types import (
    Busy,
    Decision,
    Failure,
    NoCandidate,
    RerunTarget,
    Selected,
)

__all__ = [
    "Busy",
    "BusyDetector",
    "Decision",
    "Eligibility",
    "Failure",
    "LocalBusyDetector",
    "NoCandidate",
    "PoolBusyDetector",
    "RerunEngine",
    "RerunTarget",
    "Selected",
    "evaluate_bundle",
    "select_candidate",
]
