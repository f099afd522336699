from fastapi import APIRouter, Depends

from beanstalk.schemas.conversation import (
    FollowUpRequest, FollowUpResponse, InsightsRequest, InsightsResponse
)
from beanstalk.services.conversation_analyzer import ConversationAnalyzer
from beanstalk.services.structured_llm import StructuredGenerator, get_structured_generator

router = APIRouter(prefix="/api/conversation", tags=["conversation"])


@router.post("/analyze-prompt", response_model=FollowUpResponse)
async def analyze_prompt(
    request: FollowUpRequest,
    llm: StructuredGenerator = Depends(get_structured_generator),
):
    """Suggest the next discovery question for a live transcript"""
    return await ConversationAnalyzer(llm).suggest_follow_up(request.transcript, request.phase, request.context)


@router.post("/analyze-insights", response_model=InsightsResponse)
async def analyze_insights(
    request: InsightsRequest,
    llm: StructuredGenerator = Depends(get_structured_generator),
):
    """Extract themes, personas and gaps from a transcript"""
    return await ConversationAnalyzer(llm).analyze_insights(request.transcript)
