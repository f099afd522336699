from fastapi import APIRouter, Depends, Response, status

from beanstalk.core.exceptions import NotFoundError
from beanstalk.core.logging import get_logger
from beanstalk.crud.prd import PrdRepository
from beanstalk.database.connection import get_store
from beanstalk.schemas.epic import AddStoryRequest, AddStoryResponse
from beanstalk.services.epic_generator import StoryGenerator
from beanstalk.services.structured_llm import StructuredGenerator, get_structured_generator

logger = get_logger(__name__)
router = APIRouter(prefix="/api/epics", tags=["epics"])


@router.delete("/{epic_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_epic(epic_id: str, store: PrdRepository = Depends(get_store)):
    """Remove an epic from its parent PRD"""
    if not await store.delete_epic(epic_id):
        raise NotFoundError("Epic not found", detail={"epicId": epic_id})
    logger.info("Deleted epic", epic_id=epic_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{epic_id}/add-story", response_model=AddStoryResponse)
async def add_story(
    epic_id: str,
    request: AddStoryRequest,
    store: PrdRepository = Depends(get_store),
    llm: StructuredGenerator = Depends(get_structured_generator),
):
    """Generate one user story from a free-text prompt and append it to the epic"""
    found = await store.find_epic(epic_id)
    if not found:
        raise NotFoundError("Epic not found", detail={"epicId": epic_id})
    prd_id, epic = found

    generated = await StoryGenerator(llm).generate(epic, request.prompt)

    if not await store.append_story(epic_id, generated.story):
        raise NotFoundError("Epic was removed while the story was being generated", detail={"epicId": epic_id})

    logger.info("Story added", prd_id=prd_id, epic_id=epic_id, story_id=generated.story.id)
    return AddStoryResponse(
        epic_id=epic_id,
        story=generated.story,
        processing_time_ms=generated.processing_time_ms,
    )
