from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseConfig(BaseSettings):
    """Database configuration"""

    host: str = "localhost"
    port: int = 5432
    username: str = "postgres"
    password: SecretStr = Field(default=SecretStr("postgres"))
    database: str = "autobrief"
    schema_name: Optional[str] = None
    override_url: Optional[str] = Field(
        default=None,
        validation_alias="DB_URL",
        description="Full SQLAlchemy URL; takes precedence over host/port/credentials.",
    )
    serverless: bool = Field(
        default=True,
        description="If true, disable connection pooling so serverless DBs can pause.",
    )

    @property
    def url(self) -> str:
        """Get database URL"""
        if self.override_url:
            return self.override_url
        username = quote_plus(self.username)
        password = quote_plus(self.password.get_secret_value())
        return (
            "postgresql+asyncpg://"
            f"{username}:{password}"
            f"@{self.host}:{self.port}/{self.database}"
        )

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class S3Config(BaseSettings):
    """S3 configuration"""

    access_key: Optional[str] = None
    secret_key: Optional[str] = None
    region: str = "us-east-1"
    bucket_name: str = "audio-processing"
    cache_control_seconds: int = 3600

    model_config = SettingsConfigDict(
        env_prefix="S3_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class TranscribeConfig(BaseSettings):
    """Amazon Transcribe batch job configuration."""

    region: str = "us-east-1"
    input_bucket: str = ""
    input_prefix: str = "transcribe-input"
    default_language_code: str = "en-US"
    poll_interval_seconds: float = Field(default=5.0, gt=0)
    poll_max_attempts: int = Field(default=60, ge=1)
    max_speaker_labels: int = Field(default=10, ge=2, le=30)

    model_config = SettingsConfigDict(
        env_prefix="TRANSCRIBE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class BedrockConfig(BaseSettings):
    """Amazon Bedrock configuration."""

    region: str = Field(
        default="us-east-1",
        validation_alias="BEDROCK_REGION",
    )
    model_id: str = Field(
        default="amazon.nova-lite-v1:0",
        validation_alias="BEDROCK_MODEL_ID",
    )
    max_tokens: int = Field(
        default=3072,
        validation_alias="BEDROCK_MAX_TOKENS",
        ge=1,
        le=8192,
    )
    temperature: float = Field(
        default=0.2,
        validation_alias="BEDROCK_TEMPERATURE",
        ge=0.0,
        le=1.0,
    )
    top_p: float = Field(
        default=0.95,
        validation_alias="BEDROCK_TOP_P",
        ge=0.0,
        le=1.0,
    )
    api_key: SecretStr | None = Field(
        default=None,
        validation_alias="BEDROCK_API_KEY",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        secrets_dir=".secrets",
        case_sensitive=False,
        extra="ignore",
    )


class SecurityConfig(BaseSettings):
    """JWT configuration for tokens issued by the external auth provider."""

    jwt_secret_key: SecretStr = Field(
        default=SecretStr("change-me"),
        validation_alias="JWT_SECRET",
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    jwt_audience: Optional[str] = Field(default=None, validation_alias="JWT_AUDIENCE")

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class WorkflowConfig(BaseSettings):
    """Limits and pacing for the audio-to-brief workflow."""

    max_file_size_bytes: int = Field(default=25 * 1024 * 1024, ge=1)
    max_duration_seconds: float = Field(default=3 * 60 * 60, gt=0)
    supported_formats: list[str] = [
        "mp3",
        "wav",
        "m4a",
        "ogg",
        "opus",
        "flac",
        "aac",
        "webm",
    ]
    max_retries: int = Field(default=3, ge=0)
    retry_delay_seconds: float = Field(default=0.5, ge=0)
    tick_seconds: float = Field(default=1.0, gt=0)
    metadata_timeout_seconds: float = Field(default=5.0, gt=0)
    default_free_limit: int = 10
    functions_base_url: str = Field(
        default="",
        description="Base URL of the transcription/brief endpoints; empty means in-process.",
    )
    functions_timeout_seconds: float = Field(default=360.0, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "AutoBrief.AI Backend"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"
    pipeline_log_file: str = "logs/brief_pipeline.log"
    transcript_log_file: str = "logs/transcripts.log"
    help_center_url: str = "https://help.autobrief.ai"

    # Database
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)

    # S3
    s3: S3Config = Field(default_factory=S3Config)

    # Transcribe
    transcribe: TranscribeConfig = Field(default_factory=TranscribeConfig)

    # Bedrock
    bedrock: BedrockConfig = Field(default_factory=BedrockConfig)

    # Security
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    # Workflow
    workflow: WorkflowConfig = Field(default_factory=WorkflowConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = False
    cors_allow_methods: list[str] = ["*"]
    cors_allow_headers: list[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
