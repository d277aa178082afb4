from datetime import datetime
from typing import Annotated, List, Optional

import pydantic

CommitSha = Annotated[
    str, pydantic.StringConstraints(min_length=40, max_length=40)
]


class Model(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore")


class PrConnection(Model):
    ref: str
    sha: CommitSha


class Label(Model):
    name: str


class PullRequestSummary(Model):
    number: int
    head: PrConnection
    base: PrConnection
    updated_at: datetime

    def __str__(self) -> str:
        return f"PR(#{self.number}, {self.head.ref} -> {self.base.ref})"


class PullRequestDetail(PullRequestSummary):
    draft: bool = False
    mergeable_state: Optional[str] = None
    labels: List[Label] = pydantic.Field(default_factory=list)

    @property
    def label_names(self) -> List[str]:
        return [label.name for label in self.labels]


class User(Model):
    login: str


class Review(Model):
    id: int
    state: str
    user: Optional[User] = None
    pull_request_number: Optional[int] = None


class CheckRun(Model):
    id: Optional[int] = None
    name: str
    head_sha: CommitSha
    status: str = "queued"
    conclusion: Optional[str] = None
    html_url: Optional[str] = None

    @property
    def is_in_progress(self) -> bool:
        return self.status.lower() == "in_progress"

    @property
    def is_failure(self) -> bool:
        return self.conclusion is not None and self.conclusion.lower() == "failure"

    @property
    def is_success(self) -> bool:
        return self.conclusion is not None and self.conclusion.lower() == "success"
