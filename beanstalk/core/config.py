from pydantic_settings import BaseSettings
from typing import Optional, List
from enum import Enum

from beanstalk.core.exceptions import ConfigurationError


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True

    # OpenAI
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o"
    openai_temperature: float = 0.3
    openai_max_tokens: Optional[int] = None
    openai_timeout: int = 60

    # LangSmith tracing configuration
    langsmith_tracing: Optional[str] = None
    langsmith_endpoint: Optional[str] = None
    langsmith_api_key: Optional[str] = None
    langsmith_project: Optional[str] = None

    # Rate Limiting
    rate_limit_enabled: bool = True
    redis_url: Optional[str] = None
    generation_rate_limit: int = 10  # requests per window on generation routes
    general_rate_limit: int = 120
    rate_limit_window: int = 60  # seconds

    # CORS
    cors_origins: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    cors_allow_credentials: bool = True
    cors_allow_methods: List[str] = ["*"]
    cors_allow_headers: List[str] = ["*"]

    # Logging
    log_level: str = "INFO"

    # Monitoring
    metrics_enabled: bool = True

    # Application
    app_name: str = "Beanstalk PRD API"
    app_version: str = "1.0.0"
    app_description: str = "Turns conversation transcripts into PRDs, epics and app scaffolds"

    # File upload
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    allowed_file_types: List[str] = [".txt", ".docx", ".doc"]

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    @property
    def is_development(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        return self.environment == Environment.TESTING

    @property
    def openai_configured(self) -> bool:
        return bool(self.openai_api_key and self.openai_api_key.strip())

    def require_openai_api_key(self) -> str:
        """Return the OpenAI key or fail loudly when it is missing"""
        if not self.openai_configured:
            raise ConfigurationError(
                "OPENAI_API_KEY is not set",
                detail="Set OPENAI_API_KEY in the environment or .env file before generating documents",
            )
        return self.openai_api_key

    def get_cors_config(self) -> dict:
        """Get CORS configuration"""
        return {
            "allow_origins": self.cors_origins,
            "allow_credentials": self.cors_allow_credentials,
            "allow_methods": self.cors_allow_methods,
            "allow_headers": self.cors_allow_headers,
        }

    def get_openai_config(self) -> dict:
        """Get OpenAI configuration"""
        return {
            "api_key": self.require_openai_api_key(),
            "model": self.openai_model,
            "temperature": self.openai_temperature,
            "max_tokens": self.openai_max_tokens,
            "timeout": self.openai_timeout,
        }


# Global settings instance
settings = Settings()


# Environment-specific configurations
def get_environment_config():
    """Get environment-specific configuration overrides"""
    if settings.is_production:
        return {
            "debug": False,
            "log_level": "WARNING",
            "rate_limit_enabled": True,
            "metrics_enabled": True,
        }
    elif settings.is_testing:
        return {
            "debug": False,
            "log_level": "DEBUG",
            "rate_limit_enabled": False,
        }
    else:  # development and staging
        return {
            "debug": settings.is_development,
        }


# Apply environment-specific settings
env_config = get_environment_config()
for key, value in env_config.items():
    if hasattr(settings, key):
        setattr(settings, key, value)
