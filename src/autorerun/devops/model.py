from typing import Dict, Optional

import pydantic


class Model(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="ignore", populate_by_name=True)


class Link(Model):
    href: str


class Links(Model):
    self_link: Link = pydantic.Field(alias="self")


class Owner(Model):
    id: Optional[int] = None
    links: Optional[Links] = pydantic.Field(None, alias="_links")


class Definition(Model):
    id: Optional[int] = None
    name: Optional[str] = None


class JobRequest(Model):
    request_id: Optional[int] = pydantic.Field(None, alias="requestId")
    pool_id: Optional[str] = pydantic.Field(None, alias="poolId")
    result: Optional[str] = None
    definition: Optional[Definition] = None
    owner: Optional[Owner] = None

    @pydantic.field_validator("pool_id", mode="before")
    @classmethod
    def validate_pool_id(cls, value):
        return None if value is None else str(value)

    @property
    def is_finished(self) -> bool:
        return bool(self.result)

    @property
    def definition_name(self) -> Optional[str]:
        if self.definition is None:
            return None
        return self.definition.name

    @property
    def build_url(self) -> Optional[str]:
        if self.owner is None or self.owner.links is None:
            return None
        return self.owner.links.self_link.href


class Build(Model):
    id: Optional[int] = None
    reason: str
    source_branch: Optional[str] = pydantic.Field(None, alias="sourceBranch")
    trigger_info: Dict[str, str] = pydantic.Field(
        default_factory=dict, alias="triggerInfo"
    )

    @property
    def is_pull_request(self) -> bool:
        return self.reason == "pullRequest"

    @property
    def pr_number(self) -> Optional[int]:
        raw = self.trigger_info.get("pr.number")
        if not raw:
            return None
        return int(raw)
