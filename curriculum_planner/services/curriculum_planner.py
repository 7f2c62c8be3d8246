import copy
import logging
import secrets
import string
import time
from typing import Any

from pydantic import BaseModel, field_validator

from curriculum_planner.core.errors import MalformedResponseError, ValidationError
from curriculum_planner.domain.ai.providers.base import CompletionProvider
from curriculum_planner.services.curriculum_schema import (
    BIAS_NOTE,
    DecodedCurriculum,
    InvalidJson,
    decode_curriculum,
    week_sequence_issues,
)
from curriculum_planner.services.pipeline_runtime import run_ai_with_retry


logger = logging.getLogger(__name__)

LEARNING_STYLES = ("visual", "auditory", "reading_writing", "kinesthetic", "balanced")
DEFAULT_LEARNING_STYLE = "balanced"
MAX_DURATION_WEEKS = 52
MAX_HOURS_PER_DAY = 24

CURRICULUM_SYSTEM_PROMPT = (
    "You are a curriculum design expert. Always return valid JSON only, no markdown formatting."
)

FAIRNESS_MODULE: dict[str, Any] = {
    "subject": "Ethics",
    "title": "Fair Learning Practices",
    "learning_outcomes": [
        "Understand the importance of ethical learning practices",
        "Recognize bias in educational materials and AI-generated content",
        "Apply fairness principles to personal learning journey",
    ],
    "activities": [
        "Reflect on potential biases in learning materials",
        "Evaluate AI-generated content critically",
        "Develop strategies for inclusive and fair learning",
    ],
    "resources": [
        {
            "title": "Ethics in AI Education",
            "url": "https://ethics.org.uk/education",
            "type": "free",
        },
        {
            "title": "Understanding Bias in Learning",
            "url": "https://www.coursera.org/learn/ethics-technology-engineering",
            "type": "paid",
        },
    ],
}

_PLAN_ID_ALPHABET = string.digits + string.ascii_lowercase


class CurriculumRequest(BaseModel):
    subjects: list[str] | None = None
    durationWeeks: int | None = None
    hoursPerDay: int | None = None
    goal: str | None = None
    hardestSubject: str | None = None
    learningStyle: str | None = None
    includeBiasWarnings: bool | None = False
    focusOnFairness: bool | None = False

    @field_validator("subjects", mode="before")
    @classmethod
    def _split_subjects(cls, value: Any) -> Any:
        # 폼 입력처럼 "Math, Physics" 한 줄로 들어와도 허용한다.
        if isinstance(value, str):
            return value.split(",")
        return value


def normalize_learning_style(value: str | None) -> str:
    raw = str(value or "").strip().lower()
    if not raw:
        return DEFAULT_LEARNING_STYLE
    key = raw.replace("/", "_").replace("-", "_").replace(" ", "_")
    if key in {"reading", "writing", "reading_and_writing"}:
        key = "reading_writing"
    if key in {"mixed", "multimodal"}:
        key = DEFAULT_LEARNING_STYLE
    if key not in LEARNING_STYLES:
        raise ValidationError(f"learningStyle must be one of: {', '.join(LEARNING_STYLES)}")
    return key


def validate_request(request: CurriculumRequest) -> CurriculumRequest:
    subjects = [subject.strip() for subject in (request.subjects or []) if subject and subject.strip()]
    if not subjects:
        raise ValidationError("subjects must contain at least one subject")

    if request.durationWeeks is None:
        raise ValidationError("durationWeeks is required")
    if not 1 <= request.durationWeeks <= MAX_DURATION_WEEKS:
        raise ValidationError(f"durationWeeks must be between 1 and {MAX_DURATION_WEEKS}")

    if request.hoursPerDay is None:
        raise ValidationError("hoursPerDay is required")
    if not 1 <= request.hoursPerDay <= MAX_HOURS_PER_DAY:
        raise ValidationError(f"hoursPerDay must be between 1 and {MAX_HOURS_PER_DAY}")

    return request.model_copy(
        update={
            "subjects": subjects,
            "goal": (request.goal or "").strip() or None,
            "hardestSubject": (request.hardestSubject or "").strip() or None,
            "learningStyle": normalize_learning_style(request.learningStyle),
            "includeBiasWarnings": bool(request.includeBiasWarnings),
            "focusOnFairness": bool(request.focusOnFairness),
        }
    )


def new_plan_id() -> str:
    suffix = "".join(secrets.choice(_PLAN_ID_ALPHABET) for _ in range(9))
    return f"plan-{int(time.time() * 1000)}-{suffix}"


def build_fairness_module(week: int, *, include_bias_note: bool) -> dict[str, Any]:
    module = {"week": week, **copy.deepcopy(FAIRNESS_MODULE)}
    if include_bias_note:
        module["biasNote"] = BIAS_NOTE
    return module


def build_curriculum_prompt(request: CurriculumRequest, *, retry_reason: str | None = None) -> str:
    weeks = request.durationWeeks
    style = request.learningStyle
    lines = [
        "You are an expert curriculum designer. "
        f"Create a detailed, personalized {weeks}-week study curriculum for a student "
        "with the following requirements:",
        "",
        f"Subjects: {', '.join(request.subjects or [])}",
        f"Study Time: {request.hoursPerDay} hours per day",
        f"Academic Goal: {request.goal or 'General mastery'}",
        f"Learning Style: {style}",
    ]
    if request.hardestSubject:
        lines.append(f"Hardest Subject (needs extra focus): {request.hardestSubject}")
    if request.includeBiasWarnings:
        lines.append(f"IMPORTANT: Include a 'biasNote' field in each module with text '{BIAS_NOTE}'")
    if request.focusOnFairness:
        lines.append(
            "NOTE: A final 'Fair Learning Practices' module on ethical considerations is added "
            f"separately as week {weeks + 1}. Do not include it yourself."
        )

    lines += [
        "",
        "CRITICAL INSTRUCTIONS:",
        f"1. Create exactly {weeks} weekly modules, numbered with week 1 through {weeks}",
        "2. Distribute subjects evenly across the weeks",
        "3. Include progressive learning - start with fundamentals, build to advanced topics",
        f"4. Tailor activities to the {style} learning style",
        "5. For each week, provide:",
        "   - Week number",
        "   - Subject focus",
        "   - Specific topic title",
        "   - 3-5 clear learning outcomes",
        "   - 3-5 practical activities (exercises, readings, practice problems)",
        "   - 3-5 specific resources with ACTUAL WORKING URLs (mix of free and paid)",
    ]
    if request.includeBiasWarnings:
        lines.append(f'   - A biasNote field with the text "{BIAS_NOTE}"')

    lines += [
        "",
        "RESOURCE REQUIREMENTS:",
        '- Each resource must be a JSON object with "title", "url", and "type" (free/paid)',
        "- Include real, working URLs to actual educational resources",
        "- Mix free resources (Khan Academy, MIT OpenCourseWare, YouTube, etc.) "
        "with paid options (Udemy, Coursera, textbooks)",
        "- For textbooks, include Amazon or publisher links",
        "- Ensure all URLs are valid and currently accessible",
    ]
    if request.hardestSubject:
        lines += ["", f"Give extra attention and more practice activities for {request.hardestSubject}."]

    if retry_reason:
        lines += [
            "",
            f"Your previous answer was rejected ({retry_reason}). "
            f"Return exactly {weeks} modules as one JSON object and nothing else.",
        ]

    bias_field = f',\n      "biasNote": "{BIAS_NOTE}"' if request.includeBiasWarnings else ""
    lines += [
        "",
        "Return ONLY a valid JSON object in this exact format (no markdown, no code blocks):",
        "{",
        '  "planId": "unique-id-string",',
        f'  "duration_weeks": {weeks},',
        '  "modules": [',
        "    {",
        '      "week": 1,',
        '      "subject": "Subject Name",',
        '      "title": "Specific Topic Title",',
        '      "learning_outcomes": ["outcome 1", "outcome 2", "outcome 3"],',
        '      "activities": ["activity 1", "activity 2", "activity 3"],',
        '      "resources": [',
        '        {"title": "Resource Name", "url": "https://actual-url.com", "type": "free"},',
        '        {"title": "Paid Course Name", "url": "https://actual-url.com", "type": "paid"}',
        f"      ]{bias_field}",
        "    }",
        "  ]",
        "}",
    ]
    return "\n".join(lines)


class CurriculumPlanner:
    def __init__(
        self,
        ai_service: CompletionProvider,
        *,
        temperature: float = 0.7,
        max_attempts: int = 2,
        retry_backoff_sec: float = 0.5,
    ) -> None:
        self.ai_service = ai_service
        self.temperature = temperature
        self.max_attempts = max_attempts
        self.retry_backoff_sec = retry_backoff_sec

    def generate(self, request: CurriculumRequest) -> dict[str, Any]:
        request = validate_request(request)
        logger.info(
            "Generating curriculum: subjects=%s weeks=%s hours=%s style=%s hardest=%s bias=%s fairness=%s",
            request.subjects,
            request.durationWeeks,
            request.hoursPerDay,
            request.learningStyle,
            request.hardestSubject,
            request.includeBiasWarnings,
            request.focusOnFairness,
        )

        rejections: list[str] = []

        def attempt_once(attempt: int) -> dict[str, Any]:
            retry_reason = rejections[-1] if attempt > 1 and rejections else None
            try:
                return self._generate_once(request, retry_reason=retry_reason)
            except MalformedResponseError as exc:
                rejections.append(exc.kind)
                raise

        curriculum, attempt_count = run_ai_with_retry(
            attempt_once,
            pipeline="curriculum_generate",
            max_attempts=self.max_attempts,
            backoff_sec=self.retry_backoff_sec,
            retry_malformed=True,
        )

        if not curriculum.get("planId"):
            curriculum["planId"] = new_plan_id()

        if request.focusOnFairness:
            curriculum["modules"].append(
                build_fairness_module(
                    request.durationWeeks + 1,
                    include_bias_note=bool(request.includeBiasWarnings),
                )
            )

        logger.info(
            "Curriculum generated: planId=%s modules=%d attempts=%d",
            curriculum["planId"],
            len(curriculum["modules"]),
            attempt_count,
        )
        return curriculum

    def _generate_once(self, request: CurriculumRequest, *, retry_reason: str | None) -> dict[str, Any]:
        messages = [
            {"role": "system", "content": CURRICULUM_SYSTEM_PROMPT},
            {"role": "user", "content": build_curriculum_prompt(request, retry_reason=retry_reason)},
        ]
        text = self.ai_service.complete(messages=messages, temperature=self.temperature)

        result = decode_curriculum(text)
        if not isinstance(result, DecodedCurriculum):
            kind = "invalid_json" if isinstance(result, InvalidJson) else "schema_mismatch"
            logger.error("Curriculum response rejected (%s): %s", result.reason, result.raw_text)
            raise MalformedResponseError(result.reason, kind=kind, raw_text=result.raw_text)

        curriculum = result.curriculum
        issues = week_sequence_issues(curriculum, request.durationWeeks)
        if issues:
            logger.error("Curriculum response rejected (%s): %s", "|".join(issues), text)
            raise MalformedResponseError("|".join(issues), kind="schema_mismatch", raw_text=text)

        curriculum.modules.sort(key=lambda module: module.week)
        if curriculum.duration_weeks != request.durationWeeks:
            curriculum.duration_weeks = request.durationWeeks

        payload = curriculum.to_payload()
        return {
            "planId": payload.pop("planId", None),
            "duration_weeks": payload.pop("duration_weeks"),
            "modules": payload.pop("modules"),
            **payload,
        }
