from datetime import datetime
from typing import List

from pydantic import Field

from beanstalk.schemas.base import CamelModel


class FollowUpRequest(CamelModel):
    transcript: str
    phase: str = "discovery"
    context: str = ""


class FollowUpQuestion(CamelModel):
    question: str = Field(min_length=1)


class FollowUpAnalysis(CamelModel):
    phase: str
    transcript_length: int
    word_count: int


class FollowUpResponse(CamelModel):
    prompt: str
    analysis: FollowUpAnalysis


class InsightsRequest(CamelModel):
    transcript: str


class InsightPersona(CamelModel):
    name: str
    demographics: str = ""
    needs: List[str] = Field(default_factory=list)
    frustrations: List[str] = Field(default_factory=list)
    goals: List[str] = Field(default_factory=list)


class DesignAndBrandInsights(CamelModel):
    brand_personality: List[str] = Field(default_factory=list)
    visual_direction: str = ""
    tone_of_voice: str = ""
    user_experience_philosophy: str = ""


class EmotionalJourney(CamelModel):
    current_feelings: List[str] = Field(default_factory=list)
    desired_feelings: List[str] = Field(default_factory=list)


class ConversationInsights(CamelModel):
    key_themes: List[str]
    user_personas: List[InsightPersona]
    pain_points: List[str]
    business_goals: List[str]
    technical_requirements: List[str]
    design_and_brand_insights: DesignAndBrandInsights
    emotional_journey: EmotionalJourney
    missing_information: List[str]
    suggested_next_steps: List[str]


class InsightsMetadata(CamelModel):
    transcript_length: int
    word_count: int
    analysis_timestamp: datetime


class InsightsResponse(CamelModel):
    insights: ConversationInsights
    metadata: InsightsMetadata
