from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Dict


@dataclass(frozen=True)
class RerunTarget:
    number: int
    head_ref: str
    base_ref: str

    def outputs(self) -> Dict[str, str]:
        return {
            "pullRequestToRerun": str(self.number),
            "headRef": self.head_ref,
            "baseRef": self.base_ref,
        }


@dataclass(frozen=True)
class Decision:
    result: ClassVar[str]


@dataclass(frozen=True)
class Selected(Decision):
    result: ClassVar[str] = "selected"
    target: RerunTarget


@dataclass(frozen=True)
class NoCandidate(Decision):
    result: ClassVar[str] = "no_candidate"


@dataclass(frozen=True)
class Busy(Decision):
    result: ClassVar[str] = "busy"
    reason: str = ""


@dataclass(frozen=True)
class Failure(Decision):
    result: ClassVar[str] = "error"
    error: str
    cause: BaseException | None = field(default=None, compare=False)
