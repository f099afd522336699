"""Tests for structured response parsing and the OpenAI-backed generator."""

import pytest

from beanstalk.core.config import settings
from beanstalk.core.exceptions import (
    ConfigurationError, GenerationFailedError, SchemaValidationError, UpstreamGenerationError
)
from beanstalk.schemas.conversation import FollowUpQuestion
from beanstalk.schemas.epic import StoryDraft
from beanstalk.services.structured_llm import (
    OpenAIStructuredGenerator, PromptSpec, parse_structured_response
)

PROMPT = PromptSpec(operation="follow_up_question", system="system text", user="user text")


class FakeReply:
    def __init__(self, content):
        self.content = content


class FakeBoundModel:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return FakeReply(self.reply)


class FakeChatModel:
    """Mimics ChatOpenAI.bind() returning a runnable with ainvoke."""

    def __init__(self, bound):
        self.bound = bound
        self.bind_kwargs = None

    def bind(self, **kwargs):
        self.bind_kwargs = kwargs
        return self.bound


class TestParseStructuredResponse:
    """Decoding and validation of raw model replies."""

    def test_valid_object(self):
        result = parse_structured_response('{"question": "Who renews?"}', FollowUpQuestion, "op")
        assert result.question == "Who renews?"

    def test_code_fence_is_stripped(self):
        raw = '```json\n{"question": "Who renews?"}\n```'
        assert parse_structured_response(raw, FollowUpQuestion, "op").question == "Who renews?"

    def test_invalid_json(self):
        with pytest.raises(GenerationFailedError) as exc_info:
            parse_structured_response("Sure! Here is your JSON", FollowUpQuestion, "follow_up_question")
        assert "follow_up_question" in exc_info.value.message

    def test_non_object_json(self):
        with pytest.raises(GenerationFailedError):
            parse_structured_response('["a", "b"]', FollowUpQuestion, "op")

    def test_empty_reply(self):
        with pytest.raises(GenerationFailedError):
            parse_structured_response("", FollowUpQuestion, "op")

    def test_schema_mismatch_lists_errors(self):
        raw = '{"title": "Export", "description": "x", "acceptanceCriteria": []}'
        with pytest.raises(SchemaValidationError) as exc_info:
            parse_structured_response(raw, StoryDraft, "add_story")
        missing = [error["loc"] for error in exc_info.value.detail]
        assert ("estimatedStoryPoints",) in missing

    def test_both_failures_are_upstream_errors(self):
        assert issubclass(GenerationFailedError, UpstreamGenerationError)
        assert issubclass(SchemaValidationError, UpstreamGenerationError)
        assert UpstreamGenerationError.status_code == 502


class TestOpenAIStructuredGenerator:
    """Transport wrapper around a JSON-mode chat model."""

    @pytest.mark.asyncio
    async def test_binds_json_mode_and_parses(self):
        bound = FakeBoundModel(reply='{"question": "What breaks today?"}')
        model = FakeChatModel(bound)
        generator = OpenAIStructuredGenerator(model=model)

        result = await generator.generate_structured(PROMPT, FollowUpQuestion)

        assert result.question == "What breaks today?"
        assert model.bind_kwargs == {"response_format": {"type": "json_object"}}
        system, human = bound.calls[0]
        assert system.content == "system text"
        assert human.content == "user text"

    @pytest.mark.asyncio
    async def test_call_failure_is_wrapped(self):
        generator = OpenAIStructuredGenerator(model=FakeChatModel(FakeBoundModel(error=TimeoutError("slow"))))
        with pytest.raises(GenerationFailedError) as exc_info:
            await generator.generate_structured(PROMPT, FollowUpQuestion)
        assert exc_info.value.detail == "slow"

    @pytest.mark.asyncio
    async def test_schema_mismatch_propagates(self):
        generator = OpenAIStructuredGenerator(model=FakeChatModel(FakeBoundModel(reply='{"question": ""}')))
        with pytest.raises(SchemaValidationError):
            await generator.generate_structured(PROMPT, FollowUpQuestion)

    @pytest.mark.asyncio
    async def test_missing_api_key_fails_at_first_use(self, monkeypatch):
        monkeypatch.setattr(settings, "openai_api_key", None)
        generator = OpenAIStructuredGenerator()
        with pytest.raises(ConfigurationError) as exc_info:
            await generator.generate_structured(PROMPT, FollowUpQuestion)
        assert exc_info.value.status_code == 503
