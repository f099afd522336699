from enum import Enum
from typing import Any, Dict, List

from pydantic import Field

from beanstalk.schemas.base import CamelModel


class FileOrigin(str, Enum):
    TEMPLATE = "template"
    MODEL = "model"


class GeneratedFile(CamelModel):
    path: str
    filename: str
    content: str
    description: str
    generated_by: FileOrigin = FileOrigin.TEMPLATE


class GeneratedApp(CamelModel):
    app_name: str
    components: List[GeneratedFile]
    pages: List[GeneratedFile]
    hooks: List[GeneratedFile]
    utils: List[GeneratedFile]
    config: List[GeneratedFile]
    package_manifest: Dict[str, Any]
    readme_text: str
    deploy_notes: str
    processing_time_ms: int = 0

    def all_files(self) -> List[GeneratedFile]:
        return [*self.pages, *self.components, *self.hooks, *self.utils, *self.config]


class EnhancedFile(CamelModel):
    """Shape the model returns when it rewrites a templated page."""

    content: str = Field(min_length=1)
    description: str
