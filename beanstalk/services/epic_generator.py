import time
from dataclasses import dataclass
from typing import List
from uuid import uuid4

from beanstalk.core.exceptions import ValidationError
from beanstalk.core.logging import generation_logger
from beanstalk.core.monitoring import record_generation
from beanstalk.schemas.epic import (
    Epic, EpicDraft, EpicGenerationResult, StoryDraft, StoryStatus, UserStory
)
from beanstalk.schemas.prd import PrdContent
from beanstalk.services.prompts import build_epic_prompt, build_story_prompt
from beanstalk.services.structured_llm import StructuredGenerator


def new_epic_id() -> str:
    return f"epic-{uuid4().hex[:12]}"


def new_story_id() -> str:
    return f"story-{uuid4().hex[:12]}"


def story_from_draft(draft: StoryDraft) -> UserStory:
    """New stories always start as todo, whatever the model said"""
    return UserStory(
        id=new_story_id(),
        status=StoryStatus.TODO,
        **draft.model_dump(),
    )


def epic_from_draft(draft: EpicDraft) -> Epic:
    return Epic(
        id=new_epic_id(),
        title=draft.title,
        description=draft.description,
        priority=draft.priority,
        estimated_effort=draft.estimated_effort,
        goals=list(draft.goals),
        user_stories=[story_from_draft(story) for story in draft.user_stories],
    )


@dataclass
class GeneratedEpics:
    title: str
    epics: List[Epic]
    processing_time_ms: int


@dataclass
class GeneratedStory:
    story: UserStory
    processing_time_ms: int


class EpicGenerator:
    """Breaks a stored PRD into epics with user stories. Writes nothing."""

    def __init__(self, llm: StructuredGenerator):
        self.llm = llm

    async def generate(self, title: str, content: PrdContent) -> GeneratedEpics:
        start_time = time.perf_counter()
        generation_logger.info("Generating epics", title=title, features=len(content.core_features))

        try:
            result = await self.llm.generate_structured(
                build_epic_prompt(title, content),
                EpicGenerationResult,
            )
        except Exception:
            record_generation("epics", False)
            raise

        epics = [epic_from_draft(draft) for draft in result.epics]
        processing_time_ms = int((time.perf_counter() - start_time) * 1000)
        record_generation("epics", True)
        generation_logger.info(
            "Epics generated",
            title=title,
            epics=len(epics),
            stories=sum(len(epic.user_stories) for epic in epics),
            processing_time_ms=processing_time_ms,
        )
        return GeneratedEpics(title=title, epics=epics, processing_time_ms=processing_time_ms)


class StoryGenerator:
    """Writes one additional user story for an existing epic."""

    def __init__(self, llm: StructuredGenerator):
        self.llm = llm

    async def generate(self, epic: Epic, request: str) -> GeneratedStory:
        if not request or not request.strip():
            raise ValidationError("Story prompt is empty")

        start_time = time.perf_counter()
        try:
            draft = await self.llm.generate_structured(
                build_story_prompt(epic, request.strip()),
                StoryDraft,
            )
        except Exception:
            record_generation("story", False)
            raise

        story = story_from_draft(draft)
        processing_time_ms = int((time.perf_counter() - start_time) * 1000)
        record_generation("story", True)
        generation_logger.info(
            "Story generated",
            epic_id=epic.id,
            story_id=story.id,
            processing_time_ms=processing_time_ms,
        )
        return GeneratedStory(story=story, processing_time_ms=processing_time_ms)
