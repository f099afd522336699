from enum import Enum
from typing import List

from pydantic import Field, field_validator

from beanstalk.schemas.base import CamelModel


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class StoryStatus(str, Enum):
    TODO = "todo"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class StoryDraft(CamelModel):
    """A user story as the model returns it, before the service assigns an id."""

    title: str = Field(min_length=1)
    description: str
    priority: Priority = Priority.MEDIUM
    acceptance_criteria: List[str]
    estimated_story_points: int = Field(ge=0)

    @field_validator("priority", mode="before")
    @classmethod
    def lowercase_priority(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class UserStory(StoryDraft):
    id: str
    status: StoryStatus = StoryStatus.TODO


class EpicDraft(CamelModel):
    title: str = Field(min_length=1)
    description: str
    priority: Priority = Priority.MEDIUM
    estimated_effort: str
    goals: List[str]
    user_stories: List[StoryDraft] = Field(min_length=1)

    @field_validator("priority", mode="before")
    @classmethod
    def lowercase_priority(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class Epic(CamelModel):
    id: str
    title: str
    description: str
    priority: Priority = Priority.MEDIUM
    estimated_effort: str
    goals: List[str]
    user_stories: List[UserStory] = Field(default_factory=list)


class EpicGenerationResult(CamelModel):
    """Shape the model must return for epic generation."""

    epics: List[EpicDraft] = Field(min_length=1, max_length=10)


class EpicBatch(CamelModel):
    epics: List[Epic]


class EpicGenerationResponse(CamelModel):
    title: str
    content: EpicBatch
    processing_time_ms: int


class AddStoryRequest(CamelModel):
    prompt: str


class AddStoryResponse(CamelModel):
    epic_id: str
    story: UserStory
    processing_time_ms: int
