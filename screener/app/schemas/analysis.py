"""Scoring and decision schemas"""

import enum
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from screener.app.models.candidate import CandidateStatus


class JobContext(BaseModel):
    """Immutable snapshot of the scoring-relevant fields of a job posting"""
    
    model_config = ConfigDict(frozen=True)
    
    title: Optional[str] = None
    description: Optional[str] = None
    requirements: Optional[str] = None
    skills_required: List[str] = Field(default_factory=list)
    experience_level: Optional[str] = None
    location: Optional[str] = None


class ScoringWeights(BaseModel):
    """Relative importance of the four evaluation axes"""
    
    model_config = ConfigDict(frozen=True)
    
    technical: float = Field(default=0.4, ge=0.0, le=1.0)
    experience: float = Field(default=0.3, ge=0.0, le=1.0)
    language: float = Field(default=0.2, ge=0.0, le=1.0)
    culture: float = Field(default=0.1, ge=0.0, le=1.0)
    
    @model_validator(mode="after")
    def check_sum(self) -> "ScoringWeights":
        total = self.technical + self.experience + self.language + self.culture
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total:.3f}")
        return self


def _as_string_list(value):
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    return value


class ScoringResult(BaseModel):
    """Structured evaluation returned by the scoring oracle"""
    
    model_config = ConfigDict(populate_by_name=True)
    
    score_overall: float = Field(..., ge=0, le=100)
    score_tech: float = Field(..., ge=0, le=100)
    score_experience: float = Field(..., ge=0, le=100)
    score_language: float = Field(..., ge=0, le=100)
    score_culture_fit: float = Field(..., ge=0, le=100)
    
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    matched_skills: List[str] = Field(default_factory=list)
    missing_skills: List[str] = Field(default_factory=list)
    summary: str = ""
    
    interviewer_notes: List[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("interviewer_notes", "notes_for_interviewer"),
    )
    recommended_questions: List[str] = Field(default_factory=list)
    
    @field_validator(
        "score_overall", "score_tech", "score_experience", "score_language", "score_culture_fit",
        mode="before",
    )
    @classmethod
    def reject_non_numeric(cls, value):
        # bools and numeric strings are not scores
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("score must be a number")
        return value
    
    @field_validator(
        "strengths", "weaknesses", "matched_skills", "missing_skills",
        "interviewer_notes", "recommended_questions",
        mode="before",
    )
    @classmethod
    def coerce_string_lists(cls, value):
        return _as_string_list(value)
    
    @field_validator("summary", mode="before")
    @classmethod
    def coerce_summary(cls, value):
        return "" if value is None else value
    
    def score_breakdown(self) -> dict:
        """Score breakdown as persisted on the candidate record"""
        return {
            "overall": self.score_overall,
            "tech": self.score_tech,
            "experience": self.score_experience,
            "language": self.score_language,
            "culture_fit": self.score_culture_fit,
        }


class DecisionOutcome(str, enum.Enum):
    """Outcome of the decision engine"""
    PASSED = "passed"
    BORDERLINE = "borderline"
    REJECTED = "rejected"
    
    @property
    def candidate_status(self) -> CandidateStatus:
        return {
            DecisionOutcome.PASSED: CandidateStatus.SCREENING_PASSED,
            DecisionOutcome.BORDERLINE: CandidateStatus.BORDERLINE,
            DecisionOutcome.REJECTED: CandidateStatus.REJECTED,
        }[self]


class RuleConfig(BaseModel):
    """Thresholds for the decision engine; loaded once at startup"""
    
    model_config = ConfigDict(frozen=True)
    
    pass_overall: float = 70
    pass_tech: float = 65
    borderline_overall: float = 50
    borderline_tech: float = 50
    borderline_max_missing_skills: int = 3
    
    @classmethod
    def from_settings(cls, settings) -> "RuleConfig":
        return cls(
            pass_overall=settings.RULE_PASS_OVERALL,
            pass_tech=settings.RULE_PASS_TECH,
            borderline_overall=settings.RULE_BORDERLINE_OVERALL,
            borderline_tech=settings.RULE_BORDERLINE_TECH,
            borderline_max_missing_skills=settings.RULE_BORDERLINE_MAX_MISSING_SKILLS,
        )


class StatusHistoryEntry(BaseModel):
    """One entry of a candidate's append-only status history"""
    status: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    reason: str
