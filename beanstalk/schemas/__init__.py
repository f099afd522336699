from .epic import (
    Priority, StoryStatus, StoryDraft, UserStory, EpicDraft, Epic,
    EpicGenerationResult, EpicBatch, EpicGenerationResponse,
    AddStoryRequest, AddStoryResponse
)
from .prd import (
    PrdStatus, PrdContent, PrdGenerationResult, GenerationOptions, PrdCreate, PrdUpdate,
    PrdRecord, PrdGenerateResponse
)
from .app import FileOrigin, GeneratedFile, GeneratedApp, EnhancedFile
from .conversation import (
    FollowUpRequest, FollowUpQuestion, FollowUpResponse,
    InsightsRequest, ConversationInsights, InsightsResponse
)

__all__ = [
    "Priority", "StoryStatus", "StoryDraft", "UserStory", "EpicDraft", "Epic",
    "EpicGenerationResult", "EpicBatch", "EpicGenerationResponse",
    "AddStoryRequest", "AddStoryResponse",
    "PrdStatus", "PrdContent", "PrdGenerationResult", "GenerationOptions", "PrdCreate", "PrdUpdate",
    "PrdRecord", "PrdGenerateResponse",
    "FileOrigin", "GeneratedFile", "GeneratedApp", "EnhancedFile",
    "FollowUpRequest", "FollowUpQuestion", "FollowUpResponse",
    "InsightsRequest", "ConversationInsights", "InsightsResponse",
]
