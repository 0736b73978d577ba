"""Application configuration using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from checkmatic.exceptions import ConfigurationError

DEFAULT_LLM_ENDPOINT = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "gemini-2.5-flash-preview-05-20:generateContent"
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Credentials (required at startup)
    hf_access_token: str = Field(..., min_length=1, description="Hugging Face inference token")
    llm_api_key: str = Field(..., min_length=1, description="API key for the LLM endpoint")

    # Classification models
    hf_inference_base_url: str = Field(
        default="https://api-inference.huggingface.co/models",
        description="Base URL for hosted inference models",
    )
    zero_shot_model: str = Field(default="facebook/bart-large-mnli")
    sarcasm_model: str = Field(default="helinivan/multilingual-sarcasm-detector")
    political_bias_model: str = Field(default="bucketresearch/politicalBiasBERT")
    sarcasm_max_chars: int = Field(default=2000, ge=1)
    political_bias_max_chars: int = Field(default=500, ge=1)
    sarcasm_label: str = Field(default="LABEL_1", description="Label carrying the sarcastic probability")

    # LLM synthesis / transcription
    llm_endpoint: str = Field(default=DEFAULT_LLM_ENDPOINT)
    llm_prompt: str | None = Field(default=None, description="Inline synthesis prompt template override")
    prompt_version: str = Field(default="v1", description="Version of the bundled prompt files")

    # Outbound HTTP
    fetch_max_attempts: int = Field(default=3, ge=1, description="Attempts per external API call")
    retry_base_delay: float = Field(default=1.0, ge=0, description="Backoff base in seconds")
    http_timeout: float = Field(default=30.0, gt=0, description="Per-call deadline for API calls")
    page_timeout: float = Field(default=20.0, gt=0, description="Per-call deadline for page fetches")
    page_fetch_attempts: int = Field(default=1, ge=1)
    max_redirects: int = Field(default=5, ge=0)
    resolve_dns: bool = Field(default=True, description="Reject hosts resolving to private addresses")

    # Content thresholds
    min_article_chars: int = Field(default=20, ge=1)
    min_photo_text_chars: int = Field(default=3, ge=1)

    # Rate limiting
    rate_limit_requests: int = Field(default=0, ge=0, description="Requests per window, 0 disables")
    rate_limit_window_seconds: int = Field(default=3600, ge=1)
    redis_url: str | None = Field(default=None, description="Shared counter store for multi-process deployments")

    # Application Configuration
    app_title: str = Field(default="CheckMatic", description="Application title")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Log level (DEBUG, INFO, WARNING, ERROR)")
    log_json: bool = Field(default=True, description="Use JSON log format")
    log_file: str | None = Field(default=None, description="Optional log file path")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    try:
        return Settings()
    except ValidationError as exc:
        missing = ", ".join(str(err["loc"][0]).upper() for err in exc.errors())
        raise ConfigurationError(f"Invalid or missing configuration: {missing}") from exc
