from datetime import datetime, timezone

from beanstalk.core.exceptions import ValidationError
from beanstalk.core.logging import generation_logger
from beanstalk.schemas.conversation import (
    ConversationInsights, FollowUpAnalysis, FollowUpQuestion, FollowUpResponse,
    InsightsMetadata, InsightsResponse
)
from beanstalk.services.prompts import build_follow_up_prompt, build_insights_prompt
from beanstalk.services.structured_llm import StructuredGenerator

MIN_FOLLOW_UP_CHARS = 20
MIN_INSIGHTS_CHARS = 100


def word_count(text: str) -> int:
    return len(text.split())


class ConversationAnalyzer:
    """Live discovery helpers used while a transcript is still being recorded."""

    def __init__(self, llm: StructuredGenerator):
        self.llm = llm

    async def suggest_follow_up(self, transcript: str, phase: str = "discovery", context: str = "") -> FollowUpResponse:
        transcript = (transcript or "").strip()
        if len(transcript) < MIN_FOLLOW_UP_CHARS:
            raise ValidationError("Transcript too short for analysis")

        generation_logger.info("Generating follow-up question", phase=phase, characters=len(transcript))
        result = await self.llm.generate_structured(
            build_follow_up_prompt(transcript, phase, context),
            FollowUpQuestion,
        )
        return FollowUpResponse(
            prompt=result.question.strip(),
            analysis=FollowUpAnalysis(
                phase=phase,
                transcript_length=len(transcript),
                word_count=word_count(transcript),
            ),
        )

    async def analyze_insights(self, transcript: str) -> InsightsResponse:
        transcript = (transcript or "").strip()
        if len(transcript) < MIN_INSIGHTS_CHARS:
            raise ValidationError("Transcript too short for insights analysis")

        generation_logger.info("Analyzing conversation insights", characters=len(transcript))
        insights = await self.llm.generate_structured(
            build_insights_prompt(transcript),
            ConversationInsights,
        )
        return InsightsResponse(
            insights=insights,
            metadata=InsightsMetadata(
                transcript_length=len(transcript),
                word_count=word_count(transcript),
                analysis_timestamp=datetime.now(timezone.utc),
            ),
        )
