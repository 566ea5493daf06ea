from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


EmbeddingProviderName = Literal["openai", "gemini", "bedrock"]
LLMProviderName = Literal["anthropic", "openai", "gemini"]


def _default_data_root() -> Path:
    return Path.home() / ".ragchat" / "namespaces"


class Settings(BaseSettings):
    # Provider credentials (presence drives auto-detection)
    openai_api_key: Optional[SecretStr] = None
    anthropic_api_key: Optional[SecretStr] = None
    gemini_api_key: Optional[SecretStr] = None
    aws_region: Optional[str] = None
    aws_access_key_id: Optional[str] = None

    # Explicit provider selection (wins over auto-detection)
    embedding_provider: Optional[EmbeddingProviderName] = None
    llm_provider: Optional[LLMProviderName] = None

    # Model overrides
    embedding_model: Optional[str] = None
    llm_model: Optional[str] = None

    data_root_path: Path = Field(default_factory=_default_data_root)

    chat_host: str = "127.0.0.1"
    chat_port: int = 3456
    max_port_attempts: int = 10

    request_timeout: float = 60.0
    max_tokens: int = 512
    temperature: float = 0.7

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore"
    )

settings = Settings()


def secret_value(value: Optional[SecretStr]) -> Optional[str]:
    return value.get_secret_value() if value is not None else None
