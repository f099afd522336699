from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Query, Response, UploadFile, status
from pydantic import ValidationError as PydanticValidationError

from beanstalk.core.config import settings
from beanstalk.core.exceptions import NotFoundError, ValidationError
from beanstalk.core.logging import get_logger
from beanstalk.crud.prd import PrdRepository
from beanstalk.database.connection import get_store
from beanstalk.schemas.app import GeneratedApp
from beanstalk.schemas.epic import Epic, EpicBatch, EpicGenerationResponse
from beanstalk.schemas.prd import (
    GenerationOptions, PrdCreate, PrdGenerateResponse, PrdRecord, PrdStatus, PrdUpdate
)
from beanstalk.services.code_generator import AppCodeGenerator, ModelAssistedAppGenerator
from beanstalk.services.epic_generator import EpicGenerator
from beanstalk.services.prd_generator import PrdGenerator
from beanstalk.services.structured_llm import StructuredGenerator, get_structured_generator
from beanstalk.services.text_extractor import extract_text

logger = get_logger(__name__)
router = APIRouter(prefix="/api/prds", tags=["prds"])

app_generator = AppCodeGenerator()


async def load_prd(prd_id: int, store: PrdRepository) -> PrdRecord:
    prd = await store.get(prd_id)
    if not prd:
        raise NotFoundError("PRD not found", detail={"prdId": prd_id})
    return prd


@router.get("", response_model=List[PrdRecord])
async def get_prds(store: PrdRepository = Depends(get_store)):
    """List all PRDs, newest first"""
    prds = await store.list_all()
    logger.info("Listed PRDs", count=len(prds))
    return prds


@router.get("/{prd_id}", response_model=PrdRecord)
async def get_prd(prd_id: int, store: PrdRepository = Depends(get_store)):
    """Get a specific PRD by ID"""
    return await load_prd(prd_id, store)


@router.patch("/{prd_id}", response_model=PrdRecord)
async def update_prd(
    prd_id: int,
    updates: Dict[str, Any] = Body(...),
    store: PrdRepository = Depends(get_store),
):
    """Partially update a PRD; ``content`` is re-validated in full"""
    try:
        prd_update = PrdUpdate.model_validate(updates)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid update data",
            detail=e.errors(include_url=False, include_input=False, include_context=False),
        ) from e

    updated = await store.update(prd_id, prd_update)
    if not updated:
        raise NotFoundError("PRD not found", detail={"prdId": prd_id})
    logger.info("Updated PRD", prd_id=prd_id)
    return updated


@router.delete("/{prd_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_prd(prd_id: int, store: PrdRepository = Depends(get_store)):
    """Delete a PRD together with its epics"""
    if not await store.delete(prd_id):
        raise NotFoundError("PRD not found", detail={"prdId": prd_id})
    logger.info("Deleted PRD", prd_id=prd_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/generate", response_model=PrdGenerateResponse, status_code=status.HTTP_201_CREATED)
async def generate_prd(
    file: Optional[UploadFile] = File(None),
    extract_personas: bool = Form(False, alias="extractPersonas"),
    identify_features: bool = Form(False, alias="identifyFeatures"),
    generate_acceptance_criteria: bool = Form(False, alias="generateAcceptanceCriteria"),
    store: PrdRepository = Depends(get_store),
    llm: StructuredGenerator = Depends(get_structured_generator),
):
    """Upload a transcript and generate a PRD from it"""
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")

    try:
        # One byte past the cap is enough to reject oversized uploads
        contents = await file.read(settings.max_file_size + 1)
        document = extract_text(contents, file.filename)
    finally:
        await file.close()

    options = GenerationOptions(
        extract_personas=extract_personas,
        identify_features=identify_features,
        generate_acceptance_criteria=generate_acceptance_criteria,
    )
    generated = await PrdGenerator(llm).generate(document.content, options)

    prd = await store.create(PrdCreate(
        title=generated.title,
        content=generated.content,
        status=PrdStatus.COMPLETE,
        original_file_name=document.filename,
        processing_time_ms=generated.processing_time_ms,
    ))
    logger.info("PRD created from upload", prd_id=prd.id, filename=document.filename)
    return PrdGenerateResponse(
        prd=prd,
        message=f"PRD generated successfully in {generated.processing_time_ms / 1000:.1f} seconds",
    )


@router.post("/{prd_id}/generate-epics", response_model=EpicGenerationResponse)
async def generate_epics(
    prd_id: int,
    store: PrdRepository = Depends(get_store),
    llm: StructuredGenerator = Depends(get_structured_generator),
):
    """Generate a new epic batch, replacing the previous one once it is valid"""
    prd = await load_prd(prd_id, store)
    generated = await EpicGenerator(llm).generate(prd.title, prd.content)

    updated = await store.replace_epics(prd_id, generated.epics)
    if not updated:
        raise NotFoundError("PRD was deleted while epics were being generated", detail={"prdId": prd_id})

    return EpicGenerationResponse(
        title=generated.title,
        content=EpicBatch(epics=updated.epics),
        processing_time_ms=generated.processing_time_ms,
    )


@router.get("/{prd_id}/epics", response_model=List[Epic])
async def get_epics(prd_id: int, store: PrdRepository = Depends(get_store)):
    """Epics of a PRD; empty until generated"""
    prd = await load_prd(prd_id, store)
    return prd.epics


@router.post("/{prd_id}/generate-app", response_model=GeneratedApp)
async def generate_app(
    prd_id: int,
    enhance: bool = Query(False, description="Let the model rewrite each templated page"),
    store: PrdRepository = Depends(get_store),
    llm: StructuredGenerator = Depends(get_structured_generator),
):
    """Generate the application scaffold for the PRD's current epics; nothing is stored"""
    prd = await load_prd(prd_id, store)
    if enhance:
        return await ModelAssistedAppGenerator(llm, app_generator).generate(prd.title, prd.epics)
    return app_generator.generate(prd.title, prd.epics)
