"""
Shared pytest fixtures for all tests.

Provides an isolated PRD store, a scripted structured generator standing in
for the language model, and a TestClient wired to both.
"""

import json
import os

# Settings are read at import time; select the testing profile first
os.environ.setdefault("ENVIRONMENT", "testing")

import pytest
from fastapi.testclient import TestClient

from beanstalk.core.exceptions import GenerationFailedError
from beanstalk.crud.prd import InMemoryPrdRepository
from beanstalk.database.connection import get_store
from beanstalk.main import app
from beanstalk.schemas.app import EnhancedFile
from beanstalk.schemas.conversation import ConversationInsights, FollowUpQuestion
from beanstalk.schemas.epic import EpicGenerationResult, StoryDraft
from beanstalk.schemas.prd import PrdGenerationResult
from beanstalk.services.structured_llm import parse_structured_response, get_structured_generator


# =============================================================================
# SCRIPTED GENERATOR
# =============================================================================

class FakeStructuredGenerator:
    """
    Stand-in for the language model.

    Responses are keyed by schema. A response may be a dict (serialized and
    parsed exactly like a real reply), a callable taking the PromptSpec, or
    an exception instance to raise. Every prompt is recorded.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.prompts = []

    def operations(self):
        return [prompt.operation for prompt in self.prompts]

    async def generate_structured(self, prompt, schema):
        self.prompts.append(prompt)
        if schema not in self.responses:
            raise GenerationFailedError(f"No scripted response for {schema.__name__}")

        response = self.responses[schema]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(prompt)
        return parse_structured_response(json.dumps(response), schema, prompt.operation)


# =============================================================================
# SAMPLE PAYLOADS
# =============================================================================

BROKER_TRANSCRIPT = (
    "Interviewer: Tell me about your day.\n"
    "Broker: I run a small agency. We need a client management tool for insurance brokers. "
    "Right now policies, renewals and client notes live in spreadsheets and email.\n"
    "Interviewer: What hurts the most?\n"
    "Broker: Missing renewals. I want reminders, a client list I can search, and a way to "
    "export everything to CSV for the carriers.\n"
)


def story_payload(title, points=3, priority="medium"):
    return {
        "title": title,
        "description": f"As a broker, I want {title.lower()} so that I save time",
        "priority": priority,
        "acceptanceCriteria": [f"{title} works end to end", "Errors are shown inline"],
        "estimatedStoryPoints": points,
    }


def epic_payload(title, stories, priority="high"):
    return {
        "title": title,
        "description": f"Everything needed for {title.lower()}",
        "priority": priority,
        "estimatedEffort": "2 sprints",
        "goals": [f"Ship {title.lower()}"],
        "userStories": [story_payload(story) for story in stories],
    }


@pytest.fixture
def prd_payload():
    """A complete PrdGenerationResult as the model would return it."""
    return {
        "title": "Insurance Broker Client Management Tool",
        "content": {
            "purposeAndVision": "Give independent insurance brokers one place to manage clients and renewals.",
            "scope": {
                "inScope": ["Client records", "Renewal reminders", "CSV export"],
                "outOfScope": ["Quoting engine"],
            },
            "targetUsersAndPersonas": [
                {
                    "name": "Independent broker",
                    "description": "Runs a small agency",
                    "characteristics": ["Busy", "Mobile"],
                    "needs": ["Never miss a renewal"],
                }
            ],
            "coreFeatures": [
                {
                    "name": "Client directory",
                    "description": "Searchable list of clients and policies",
                    "priority": "high",
                    "userStory": "As a broker, I want to search clients so that I find them fast",
                },
                {
                    "name": "Renewal reminders",
                    "description": "Notifications before policies expire",
                    "priority": "high",
                    "userStory": "As a broker, I want reminders so that I never miss a renewal",
                },
            ],
            "uiUxAspirations": {
                "style": "Clean",
                "tone": "Professional",
                "userExperience": "Fast keyboard-driven workflows",
            },
            "nonFunctionalRequirements": [
                {"type": "security", "requirement": "Encrypt client data at rest", "rationale": "Regulation"}
            ],
            "assumptions": ["Brokers work on desktop most of the day"],
            "dependencies": [
                {"type": "external", "dependency": "Email provider", "impact": "Reminders need delivery"}
            ],
            "risksAndMitigations": [
                {"risk": "Data import errors", "impact": "medium", "mitigation": "Preview before import"}
            ],
            "successMetrics": [
                {"metric": "Missed renewals", "target": "Zero", "timeframe": "6 months"}
            ],
            "futureRoadmap": [
                {
                    "name": "Carrier integrations",
                    "description": "Pull policy data from carriers",
                    "businessValue": "Less manual entry",
                    "timeframe": "Q3",
                }
            ],
        },
    }


@pytest.fixture
def epics_payload():
    """Three epics with three stories each."""
    return {
        "epics": [
            epic_payload("Client Directory", ["Search clients", "View client profile", "Edit client details"]),
            epic_payload("Renewal Tracking", ["See upcoming renewals", "Get reminder emails", "Snooze a reminder"]),
            epic_payload("Data Export", ["Export clients", "Export policies", "Schedule exports"], priority="Low"),
        ]
    }


@pytest.fixture
def broker_transcript():
    return BROKER_TRANSCRIPT


@pytest.fixture
def csv_story_payload():
    return story_payload("Add CSV export of the client list", points=5, priority="high")


@pytest.fixture
def insights_payload():
    return {
        "keyThemes": ["Renewals", "Client records"],
        "userPersonas": [{"name": "Broker", "demographics": "Small agency owner", "needs": ["Reminders"]}],
        "painPoints": ["Spreadsheets"],
        "businessGoals": ["Retain clients"],
        "technicalRequirements": ["CSV export"],
        "designAndBrandInsights": {"brandPersonality": ["Trustworthy"], "visualDirection": "Calm"},
        "emotionalJourney": {"currentFeelings": ["Anxious"], "desiredFeelings": ["In control"]},
        "missingInformation": ["Budget"],
        "suggestedNextSteps": ["Interview two more brokers"],
    }


# =============================================================================
# STORE, GENERATOR AND CLIENT FIXTURES
# =============================================================================

@pytest.fixture
def store():
    """Fresh in-memory repository per test."""
    return InMemoryPrdRepository()


@pytest.fixture
def fake_llm(prd_payload, epics_payload, csv_story_payload, insights_payload):
    """Generator scripted with a valid response for every schema."""
    return FakeStructuredGenerator({
        PrdGenerationResult: prd_payload,
        EpicGenerationResult: epics_payload,
        StoryDraft: csv_story_payload,
        EnhancedFile: lambda prompt: {
            "content": "export default function EnhancedPage() { return null; }\n",
            "description": "Enhanced page",
        },
        FollowUpQuestion: {"question": "What happens today when a renewal is missed?"},
        ConversationInsights: insights_payload,
    })


@pytest.fixture
def client(store, fake_llm):
    """TestClient with the store and the generator overridden."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_structured_generator] = lambda: fake_llm
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def uploaded_prd(client):
    """A PRD created through the upload endpoint."""
    response = client.post(
        "/api/prds/generate",
        files={"file": ("broker-call.txt", BROKER_TRANSCRIPT.encode(), "text/plain")},
    )
    assert response.status_code == 201
    return response.json()["prd"]
