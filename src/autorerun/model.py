from pathlib import Path
from typing import Any, List, Optional, Union
import io

import pydantic
import yaml

from autorerun.errors import InvalidConfig

AGGREGATE_CHECK_NAME = "All Projects"
DISABLE_LABEL = "disable-auto-ci-trigger"


class Model(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(extra="forbid", populate_by_name=True)


def parse_approvals_required(value: Any) -> int:
    """Blank means no approvals are required."""
    if value is None:
        return 0
    if isinstance(value, str):
        value = value.strip()
        if value == "":
            return 0
        try:
            value = int(value)
        except ValueError:
            raise ValueError(f"approvals required must be an integer, got {value!r}")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"approvals required must be an integer, got {value!r}")
    if value < 0:
        raise ValueError("approvals required must not be negative")
    return value


class Config(Model):
    approvals_required: int = pydantic.Field(0, alias="approvals-required")
    check_name: str = pydantic.Field(AGGREGATE_CHECK_NAME, alias="check-name")
    disable_label: str = pydantic.Field(DISABLE_LABEL, alias="disable-label")
    busy_approvals_required: int = pydantic.Field(
        2, alias="busy-approvals-required"
    )
    pool_ids: List[str] = pydantic.Field(default_factory=list, alias="pool-ids")

    @pydantic.field_validator(
        "approvals_required", "busy_approvals_required", mode="before"
    )
    @classmethod
    def validate_approvals(cls, value: Any) -> int:
        return parse_approvals_required(value)

    @pydantic.field_validator("pool_ids", mode="before")
    @classmethod
    def validate_pool_ids(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(v) for v in value]
        return value


def load_config(
    source: Optional[Union[str, Path]] = None, raw: Optional[str] = None
) -> Config:
    if raw is None:
        if source is None:
            return Config()
        with open(source) as fh:
            raw = fh.read()

    try:
        data = yaml.safe_load(io.StringIO(raw))
    except yaml.YAMLError as e:
        raise InvalidConfig(str(e), raw_config=raw, source=str(source))

    try:
        return Config() if data is None else Config.model_validate(data)
    except pydantic.ValidationError as e:
        raise InvalidConfig(str(e), raw_config=raw, source=str(source))
