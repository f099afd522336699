import time
from dataclasses import dataclass
from typing import Optional

from beanstalk.core.exceptions import ValidationError
from beanstalk.core.logging import generation_logger
from beanstalk.core.monitoring import record_generation
from beanstalk.schemas.prd import GenerationOptions, PrdContent, PrdGenerationResult
from beanstalk.services.prompts import build_prd_prompt
from beanstalk.services.structured_llm import StructuredGenerator

DEFAULT_TITLE = "Generated PRD"


@dataclass
class GeneratedPrd:
    title: str
    content: PrdContent
    processing_time_ms: int


class PrdGenerator:
    """Turns a conversation transcript into a validated PRD. Writes nothing."""

    def __init__(self, llm: StructuredGenerator):
        self.llm = llm

    async def generate(
        self,
        conversation_text: str,
        options: Optional[GenerationOptions] = None,
    ) -> GeneratedPrd:
        if not conversation_text or not conversation_text.strip():
            raise ValidationError("Conversation text is empty")

        options = options or GenerationOptions()
        start_time = time.perf_counter()
        generation_logger.info(
            "Generating PRD",
            characters=len(conversation_text),
            options=options.model_dump(),
        )

        try:
            result = await self.llm.generate_structured(
                build_prd_prompt(conversation_text, options),
                PrdGenerationResult,
            )
        except Exception:
            record_generation("prd", False)
            raise

        processing_time_ms = int((time.perf_counter() - start_time) * 1000)
        title = result.title.strip() or DEFAULT_TITLE
        record_generation("prd", True)
        generation_logger.info(
            "PRD generated",
            title=title,
            features=len(result.content.core_features),
            processing_time_ms=processing_time_ms,
        )
        return GeneratedPrd(title=title, content=result.content, processing_time_ms=processing_time_ms)
