from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field, field_validator

from beanstalk.schemas.base import CamelModel
from beanstalk.schemas.epic import Epic


class PrdStatus(str, Enum):
    DRAFT = "draft"
    IN_REVIEW = "in_review"
    COMPLETE = "complete"


class Scope(CamelModel):
    in_scope: List[str]
    out_of_scope: List[str]


class Persona(CamelModel):
    name: str
    description: str
    characteristics: List[str]
    needs: List[str]


class CoreFeature(CamelModel):
    name: str
    description: str
    priority: str
    user_story: str


class UiUxAspirations(CamelModel):
    style: str
    tone: str
    user_experience: str


class NonFunctionalRequirement(CamelModel):
    type: str
    requirement: str
    rationale: str


class Dependency(CamelModel):
    type: str
    dependency: str
    impact: str


class RiskAndMitigation(CamelModel):
    risk: str
    impact: str
    mitigation: str


class SuccessMetric(CamelModel):
    metric: str
    target: str
    timeframe: str


class RoadmapItem(CamelModel):
    name: str
    description: str
    business_value: str
    timeframe: str


class PrdContent(CamelModel):
    """Structured PRD body. Every section is required; lists may be empty."""

    purpose_and_vision: str
    scope: Scope
    target_users_and_personas: List[Persona]
    core_features: List[CoreFeature]
    ui_ux_aspirations: UiUxAspirations
    non_functional_requirements: List[NonFunctionalRequirement]
    assumptions: List[str]
    dependencies: List[Dependency]
    risks_and_mitigations: List[RiskAndMitigation]
    success_metrics: List[SuccessMetric]
    future_roadmap: List[RoadmapItem]


class PrdGenerationResult(CamelModel):
    """Shape the model must return for PRD generation."""

    title: str = ""
    content: PrdContent


class GenerationOptions(CamelModel):
    """Optional emphasis flags sent with an upload."""

    extract_personas: bool = False
    identify_features: bool = False
    generate_acceptance_criteria: bool = False


class PrdBase(CamelModel):
    title: str
    content: PrdContent
    status: PrdStatus = PrdStatus.DRAFT
    original_file_name: Optional[str] = None
    processing_time_ms: Optional[int] = None


class PrdCreate(PrdBase):
    pass


class PrdUpdate(CamelModel):
    title: Optional[str] = Field(default=None, min_length=1)
    content: Optional[PrdContent] = None
    status: Optional[PrdStatus] = None
    original_file_name: Optional[str] = None

    class Config:
        extra = "forbid"

    @field_validator("title", "content", "status", mode="before")
    @classmethod
    def reject_null(cls, value, info):
        # Only original_file_name may be cleared
        if value is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return value


class PrdRecord(PrdBase):
    id: int
    created_at: datetime
    updated_at: datetime
    epics: List[Epic] = Field(default_factory=list)


class PrdGenerateResponse(CamelModel):
    success: bool = True
    prd: PrdRecord
    message: str
