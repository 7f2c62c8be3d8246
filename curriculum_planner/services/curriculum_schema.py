"""Decoding of the model's curriculum text into typed objects.

The decoder never raises: it returns one of three tagged results so callers
can tell unparseable text apart from valid JSON of the wrong shape.
"""

import json
from dataclasses import dataclass
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from curriculum_planner.domain.ai.providers.common import parse_json_text


BIAS_NOTE = "Bias evaluation pending"


class Resource(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str
    url: str
    type: Literal["free", "paid"]

    @field_validator("type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class CurriculumModule(BaseModel):
    model_config = ConfigDict(extra="allow")

    week: int
    subject: str
    title: str
    learning_outcomes: list[str] = Field(default_factory=list)
    activities: list[str] = Field(default_factory=list)
    resources: list[Resource] = Field(default_factory=list)
    biasNote: str | None = None


class Curriculum(BaseModel):
    model_config = ConfigDict(extra="allow")

    planId: str | None = None
    duration_weeks: int | None = None
    modules: list[CurriculumModule]

    @field_validator("planId", mode="before")
    @classmethod
    def _coerce_plan_id(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    def to_payload(self) -> dict[str, Any]:
        # 모델이 보낸 null 값은 그대로 두고, 비어 있는 선택 필드만 뺀다.
        payload = self.model_dump()
        if payload.get("planId") is None:
            payload.pop("planId", None)
        for module in payload["modules"]:
            if module.get("biasNote") is None:
                module.pop("biasNote", None)
        return payload


@dataclass(frozen=True)
class DecodedCurriculum:
    curriculum: Curriculum


@dataclass(frozen=True)
class WrongShape:
    reason: str
    raw_text: str


@dataclass(frozen=True)
class InvalidJson:
    reason: str
    raw_text: str


DecodeResult = Union[DecodedCurriculum, WrongShape, InvalidJson]


def decode_curriculum(text: str) -> DecodeResult:
    try:
        parsed = parse_json_text(text)
    except json.JSONDecodeError as exc:
        return InvalidJson(reason=f"json_decode_error:{exc.msg}@{exc.pos}", raw_text=text)

    if not isinstance(parsed, dict):
        return WrongShape(reason=f"top_level_{type(parsed).__name__}", raw_text=text)

    try:
        return DecodedCurriculum(curriculum=Curriculum.model_validate(parsed))
    except PydanticValidationError as exc:
        return WrongShape(reason=_summarize_errors(exc), raw_text=text)


def _summarize_errors(exc: PydanticValidationError) -> str:
    parts = []
    for item in exc.errors()[:5]:
        loc = ".".join(str(part) for part in item.get("loc", ()))
        parts.append(f"{loc}:{item.get('type')}")
    return "schema_errors:" + "|".join(parts)


def week_sequence_issues(curriculum: Curriculum, expected_weeks: int) -> list[str]:
    """Check that the modules cover weeks 1..expected_weeks exactly once each."""
    issues: list[str] = []
    weeks = [module.week for module in curriculum.modules]
    if len(weeks) != expected_weeks:
        issues.append(f"module_count:{len(weeks)}!={expected_weeks}")
    if sorted(weeks) != list(range(1, len(weeks) + 1)):
        issues.append("weeks_not_contiguous")
    return issues
