"""Structured-generation port.

Generators describe what they want as a ``PromptSpec`` plus a pydantic schema
and get back a validated instance of that schema. Prompt wording lives in
``beanstalk.services.prompts``; transport and parsing live here, so tests can
swap the whole model side for a fake.
"""

import json
import re
import time
from dataclasses import dataclass
from typing import Optional, Protocol, Type, TypeVar, runtime_checkable

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from beanstalk.core.config import settings
from beanstalk.core.exceptions import GenerationFailedError, SchemaValidationError
from beanstalk.core.logging import llm_logger
from beanstalk.core.monitoring import record_llm_request

T = TypeVar("T", bound=BaseModel)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


@dataclass(frozen=True)
class PromptSpec:
    operation: str
    system: str
    user: str


@runtime_checkable
class StructuredGenerator(Protocol):
    async def generate_structured(self, prompt: PromptSpec, schema: Type[T]) -> T:
        """Run the prompt and return an instance of ``schema``.

        Raises GenerationFailedError when the call fails or the reply is not
        JSON, SchemaValidationError when the JSON does not fit ``schema``.
        """
        ...


def parse_structured_response(raw: str, schema: Type[T], operation: str) -> T:
    """Decode a JSON object reply and validate it against ``schema``"""
    text = (raw or "").strip()
    fenced = _FENCE.match(text)
    if fenced:
        text = fenced.group(1)

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise GenerationFailedError(
            f"Model returned invalid JSON for {operation}",
            detail=str(e),
        ) from e

    if not isinstance(data, dict):
        raise GenerationFailedError(
            f"Model returned {type(data).__name__} instead of a JSON object for {operation}"
        )

    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise SchemaValidationError(
            f"Model output for {operation} does not match the {schema.__name__} schema",
            detail=e.errors(include_url=False, include_input=False, include_context=False),
        ) from e


class OpenAIStructuredGenerator:
    """JSON-mode chat completions through langchain-openai."""

    def __init__(self, model: Optional[ChatOpenAI] = None):
        self._model = model
        self._json_model = None

    @property
    def json_model(self):
        """Model bound to JSON mode; built on first use so a missing key fails here"""
        if self._json_model is None:
            if self._model is None:
                config = settings.get_openai_config()
                self._model = ChatOpenAI(
                    model=config["model"],
                    api_key=config["api_key"],
                    temperature=config["temperature"],
                    max_tokens=config["max_tokens"],
                    timeout=config["timeout"],
                    max_retries=0,
                )
            self._json_model = self._model.bind(response_format={"type": "json_object"})
        return self._json_model

    async def generate_structured(self, prompt: PromptSpec, schema: Type[T]) -> T:
        json_model = self.json_model
        start_time = time.time()
        try:
            response = await json_model.ainvoke([
                SystemMessage(content=prompt.system),
                HumanMessage(content=prompt.user),
            ])
        except Exception as e:
            duration = time.time() - start_time
            record_llm_request(prompt.operation, duration, False)
            llm_logger.error("LLM call failed", operation=prompt.operation, error=str(e), duration=duration)
            raise GenerationFailedError(f"Language model call failed for {prompt.operation}", detail=str(e)) from e

        duration = time.time() - start_time
        content = response.content if isinstance(response.content, str) else json.dumps(response.content)

        try:
            result = parse_structured_response(content, schema, prompt.operation)
        except (GenerationFailedError, SchemaValidationError) as e:
            record_llm_request(prompt.operation, duration, False)
            llm_logger.warning(
                "LLM output rejected",
                operation=prompt.operation,
                error=e.message,
                response_chars=len(content),
            )
            raise

        record_llm_request(prompt.operation, duration, True)
        llm_logger.info("LLM call completed", operation=prompt.operation, duration=duration)
        return result


_generator: Optional[StructuredGenerator] = None


def get_structured_generator() -> StructuredGenerator:
    """Dependency returning the shared generator, built on first use"""
    global _generator
    if _generator is None:
        _generator = OpenAIStructuredGenerator()
    return _generator
