"""
resumezen/models/analysis.py

Structured resume data and analysis records.

AI providers return loosely typed JSON: fields go missing, lists arrive as
comma separated strings, scores arrive as "85%" or not at all. Every field
here has a defined fallback ("NA" for text, [] for lists, None for the ATS
score) so callers never need presence checks.
"""

import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_serializer, field_validator

from resumezen.models.base import CamelModel

NA = "NA"

_SCORE_RE = re.compile(r"-?\d+(?:\.\d+)?")
_LIST_SPLIT_RE = re.compile(r"[,;\n]|•")


def coerce_text(value: Any) -> str:
    if isinstance(value, bool) or value is None:
        return NA
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped or stripped.lower() in {"null", "none", "n/a", "na"}:
            return NA
        return stripped
    return NA


def coerce_text_list(value: Any) -> List[str]:
    if value is None or isinstance(value, bool):
        return []
    if isinstance(value, str):
        parts = _LIST_SPLIT_RE.split(value) if _LIST_SPLIT_RE.search(value) else [value]
        items = [coerce_text(p) for p in parts]
    elif isinstance(value, (list, tuple)):
        items = []
        for item in value:
            if isinstance(item, dict):
                # {"name": "Python"} style entries
                item = next((v for v in item.values() if isinstance(v, str)), None)
            items.append(coerce_text(item))
    else:
        return []
    return [item for item in items if item != NA]


def coerce_ats_score(value: Any) -> Optional[int]:
    """Parse an ATS score into 0..100, or None when absent or unparseable."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _SCORE_RE.search(value)
        if not match:
            return None
        number = float(match.group(0))
    else:
        return None
    # "0.85" style fractions
    if 0 < number < 1 and isinstance(value, float):
        number *= 100
    return max(0, min(100, int(round(number))))


def _as_dict(value: Any) -> dict:
    return value if isinstance(value, dict) else {}


def _as_list_of_dicts(value: Any) -> List[dict]:
    if isinstance(value, dict):
        return [value]
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class ContactInformation(CamelModel):
    name: str = NA
    email: str = NA
    phone: str = NA
    location: str = NA
    linkedin: str = NA

    @field_validator("*", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return coerce_text(value)


class Skills(CamelModel):
    technical: List[str] = []
    soft: List[str] = []

    @field_validator("*", mode="before")
    @classmethod
    def _list(cls, value: Any) -> List[str]:
        return coerce_text_list(value)

    @classmethod
    def from_provider(cls, value: Any) -> "Skills":
        # A flat list means the model did not split technical from soft
        if isinstance(value, (list, str)):
            return cls(technical=value)
        return cls.model_validate(_as_dict(value))


class WorkExperience(CamelModel):
    company: str = NA
    position: str = NA
    duration: str = NA
    responsibilities: List[str] = []
    achievements: List[str] = []

    @field_validator("company", "position", "duration", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return coerce_text(value)

    @field_validator("responsibilities", "achievements", mode="before")
    @classmethod
    def _list(cls, value: Any) -> List[str]:
        return coerce_text_list(value)


class Education(CamelModel):
    institution: str = NA
    degree: str = NA
    field: str = NA
    graduation_date: str = NA

    @field_validator("*", mode="before")
    @classmethod
    def _text(cls, value: Any) -> str:
        return coerce_text(value)


class AnalysisBlock(CamelModel):
    ats_score: Optional[int] = None
    strengths: List[str] = []
    areas_for_improvement: List[str] = []
    keywords: List[str] = []

    @field_validator("ats_score", mode="before")
    @classmethod
    def _score(cls, value: Any) -> Optional[int]:
        return coerce_ats_score(value)

    @field_validator("strengths", "areas_for_improvement", "keywords", mode="before")
    @classmethod
    def _list(cls, value: Any) -> List[str]:
        return coerce_text_list(value)

    @field_serializer("ats_score")
    def _serialize_score(self, value: Optional[int]):
        return NA if value is None else value


class StructuredResume(CamelModel):
    """Normalized AI output for one resume."""
    contact_information: ContactInformation = ContactInformation()
    skills: Skills = Skills()
    work_experience: List[WorkExperience] = []
    education: List[Education] = []
    certifications: List[str] = []
    summary: str = NA
    analysis: AnalysisBlock = AnalysisBlock()

    @classmethod
    def from_provider(cls, data: Any) -> "StructuredResume":
        """Build from a raw provider JSON object, applying fallbacks field by field."""
        if not isinstance(data, dict):
            raise ValueError("AI response is not a JSON object")
        return cls(
            contact_information=ContactInformation.model_validate(
                _as_dict(data.get("contactInformation") or data.get("contact_information"))
            ),
            skills=Skills.from_provider(data.get("skills")),
            work_experience=[
                WorkExperience.model_validate(item)
                for item in _as_list_of_dicts(data.get("workExperience") or data.get("work_experience"))
            ],
            education=[Education.model_validate(item) for item in _as_list_of_dicts(data.get("education"))],
            certifications=coerce_text_list(data.get("certifications")),
            summary=coerce_text(data.get("summary")),
            analysis=AnalysisBlock.model_validate(_as_dict(data.get("analysis"))),
        )


class AnalysisRecord(CamelModel):
    """
    One completed analysis. Created once per successful pipeline run,
    never mutated afterwards.
    """
    analysis_id: str = Field(serialization_alias="resumeAnalysisId")
    user_id: str
    user_plan_id: str
    resume_url: str
    contact_information: ContactInformation
    skills: Skills
    work_experience: List[WorkExperience]
    education: List[Education]
    certifications: List[str]
    summary: str
    analysis: AnalysisBlock
    ai_model: Optional[str] = None
    raw_response: Optional[str] = Field(default=None, exclude=True)
    created_at: datetime

    @classmethod
    def from_structured(
        cls,
        *,
        analysis_id: str,
        user_id: str,
        user_plan_id: str,
        resume_url: str,
        structured: StructuredResume,
        ai_model: Optional[str],
        raw_response: Optional[str],
        created_at: datetime,
    ) -> "AnalysisRecord":
        return cls(
            analysis_id=analysis_id,
            user_id=user_id,
            user_plan_id=user_plan_id,
            resume_url=resume_url,
            contact_information=structured.contact_information,
            skills=structured.skills,
            work_experience=structured.work_experience,
            education=structured.education,
            certifications=structured.certifications,
            summary=structured.summary,
            analysis=structured.analysis,
            ai_model=ai_model,
            raw_response=raw_response,
            created_at=created_at,
        )


class ValidationDetails(CamelModel):
    """Outcome of the is-this-a-resume check."""
    is_resume: bool
    score: int
    reasons: List[str] = []
