"""Application configuration using Pydantic Settings V2."""

from functools import cached_property
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from chat_memory.core.settings import (
    AppConfig,
    AuthConfig,
    DatabaseConfig,
    LLMConfig,
    MemoryConfig,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Flat fields are loaded directly from environment variables.
    Domain properties provide grouped access (e.g. settings.memory.session_ttl).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # LLM Provider
    llm_provider: Literal["openai", "anthropic"] = Field(
        default="openai",
        description="LLM provider to use",
    )
    llm_temperature: float = Field(
        default=0.8,
        ge=0.0,
        le=2.0,
        description="Default sampling temperature for generation",
    )

    # OpenAI
    openai_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="OpenAI API key",
    )
    openai_model: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model name",
    )

    # Anthropic
    anthropic_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Anthropic API key",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Anthropic model name",
    )

    # App
    app_name: str = Field(
        default="chat-memory",
        description="Application name",
    )
    app_env: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Application environment",
    )
    debug: bool = Field(
        default=True,
        description="Debug mode",
    )

    # Conversational memory
    default_context_window: int = Field(
        default=10,
        ge=1,
        description="Non-system messages retained per session by default",
    )
    session_ttl_days: int = Field(
        default=7,
        ge=1,
        le=365,
        description="Days a session stays visible after its last write",
    )
    store_timeout_seconds: float | None = Field(
        default=10.0,
        gt=0,
        description="Upper bound for a single session operation against the store",
    )
    generate_rate_limit: str = Field(
        default="20/minute",
        description="Generation endpoint rate limit",
    )
    max_variants: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum number of response variants per generation",
    )

    # Bearer token verification
    jwt_secret_key: SecretStr = Field(
        description="Secret used to verify access tokens",
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="JWT signing algorithm",
    )
    jwt_audience: str | None = Field(
        default=None,
        description="Expected token audience, if the identity provider sets one",
    )

    # Database
    database_url: SecretStr = Field(
        description="Async database URL (mysql+aiomysql://...)",
    )
    database_echo: bool = Field(
        default=False,
        description="Log emitted SQL statements",
    )

    # --- Domain properties ---

    @cached_property
    def llm(self) -> LLMConfig:
        """LLM provider configuration."""
        return LLMConfig(
            provider=self.llm_provider,
            openai_api_key=self.openai_api_key,
            openai_model=self.openai_model,
            anthropic_api_key=self.anthropic_api_key,
            anthropic_model=self.anthropic_model,
            temperature=self.llm_temperature,
        )

    @cached_property
    def app(self) -> AppConfig:
        """Application environment configuration."""
        return AppConfig(
            name=self.app_name,
            env=self.app_env,
            debug=self.debug,
        )

    @cached_property
    def memory(self) -> MemoryConfig:
        """Session retention and expiry configuration."""
        return MemoryConfig(
            default_context_window=self.default_context_window,
            session_ttl_days=self.session_ttl_days,
            store_timeout_seconds=self.store_timeout_seconds,
            generate_rate_limit=self.generate_rate_limit,
            max_variants=self.max_variants,
        )

    @cached_property
    def auth(self) -> AuthConfig:
        """Bearer token verification configuration."""
        return AuthConfig(
            secret_key=self.jwt_secret_key,
            algorithm=self.jwt_algorithm,
            audience=self.jwt_audience,
        )

    @cached_property
    def database(self) -> DatabaseConfig:
        """Database connection configuration."""
        return DatabaseConfig(url=self.database_url, echo=self.database_echo)

    # --- Convenience properties (delegate to domain configs) ---

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app.is_development


# Global settings instance
settings = Settings()
