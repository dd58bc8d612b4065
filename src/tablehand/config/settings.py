"""Application settings using Pydantic."""

import os
from functools import lru_cache
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    environment: str = Field(
        default=os.getenv("ENVIRONMENT", "development"),
        description="Deployment environment (development|production)",
    )

    # API Configuration
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_key: str = "dev-api-key"  # Override in production
    api_url: str = Field(
        default="http://127.0.0.1:8000",
        description="Base URL the CLI uses to reach a running server.",
    )

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Ensure default API key is not used in production."""
        if os.getenv("ENVIRONMENT") == "production" and v == "dev-api-key":
            raise ValueError("Cannot use default API key in production. Set API_KEY env var.")
        return v

    # Reasoning engine
    reasoning_provider: Literal["anthropic", "llama_stack", "fake"] = Field(
        default="anthropic",
        description="Which conversational model drives the tool loop.",
    )
    use_fake_providers: bool = Field(
        default=False,
        description=(
            "Convenience switch: treat all providers as fake in dev/tests. "
            "Downgrades the reasoning engine and the record store to local fakes."
        ),
    )
    anthropic_api_key: str = Field(default="", description="Anthropic API key")
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    reasoning_max_tokens: int = Field(default=3000, description="Max tokens per model turn")
    llama_stack_url: str = "http://localhost:5001"
    llama_stack_model: str = "openai/gpt-4o-mini"

    # Record store (Airtable)
    record_store_provider: Literal["real", "fake"] = Field(
        default="real",
        description="real=call Airtable, fake=in-memory tables.",
    )
    airtable_api_key: str = Field(default="", description="Airtable personal access token")
    airtable_base_id: str = Field(default="", description="Airtable base holding the CRM tables")
    airtable_api_url: str = "https://api.airtable.com/v0"
    airtable_timeout_seconds: float = 15.0
    airtable_max_pages: int = Field(
        default=10,
        description="Upper bound on pages fetched per table scan (100 records per page).",
    )

    # Table directory
    airtable_transactions_table: str = "tblSgYN8CbQcxeT0j"
    airtable_customers_table: str = "tblcTFGg6WyKkO5kq"
    airtable_projects_table: str = "tbl9p6XdUrecy2h7G"
    airtable_leads_table: str = "tbl3ZCmqfit2L0iQ0"
    airtable_offices_table: str = "tbl7etO9Yn3VH9QpT"
    transaction_customer_field: str = "מזהה לקוח ראשי (ID_Client)"
    transaction_project_field: str = "מזהה פרויקט (ID_Project)"

    # Orchestration loop
    max_steps: int = Field(
        default=10,
        description="Hard bound on reasoning calls per inbound message.",
    )

    # Session memory
    session_max_history: int = Field(default=10, description="Transcript entries kept per sender")
    session_keep_head: int = Field(
        default=2,
        description="Earliest transcript entries always preserved when pruning",
    )
    session_idle_timeout_seconds: float = Field(
        default=30 * 60,
        description="Idle time after which a sender starts a fresh conversation",
    )
    session_sweep_interval_seconds: float = Field(
        default=60 * 60,
        description="How often the background sweep drops idle sessions",
    )
    session_sweep_idle_multiplier: float = Field(
        default=2.0,
        description="Sweep threshold as a multiple of the idle timeout",
    )
    topic_similarity_threshold: float = Field(
        default=0.3,
        description="Below this lexical overlap an action request starts a new topic",
    )

    # Circuit Breaker Configuration
    circuit_breaker_enabled: bool = Field(
        default=True,
        description="Enable circuit breaker for reasoning engine calls",
    )
    circuit_breaker_failure_threshold: int = Field(
        default=5,
        description="Number of consecutive failures before opening circuit",
    )
    circuit_breaker_recovery_timeout: float = Field(
        default=60.0,
        description="Seconds to wait before attempting recovery (half-open state)",
    )

    # Inbound surface
    chat_rate_limit: str = Field(
        default="30/minute",
        description="Rate limit for /v1/chat endpoints (SlowAPI syntax)",
    )
    inbound_dedup_window_seconds: int = Field(
        default=60,
        description="Window in which a repeated message_id is treated as a duplicate delivery",
    )

    # Telegram
    telegram_bot_token: str = ""
    telegram_webhook_secret: str = ""
    telegram_allowed_chat_ids: Annotated[list[str], NoDecode] = Field(default_factory=list)
    telegram_allow_all_chats: bool = False

    @field_validator("telegram_allowed_chat_ids", mode="before")
    @classmethod
    def parse_chat_ids(cls, v: Any) -> list[str]:
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [item.strip() for item in v.split(",") if item.strip()]
        return [str(item) for item in v]

    @model_validator(mode="after")
    def validate_model(self) -> "Settings":
        """Ensure a model is configured for the active reasoning provider."""
        if self.reasoning_provider == "anthropic" and not self.anthropic_model:
            raise ValueError("ANTHROPIC_MODEL must be configured")
        if self.reasoning_provider == "llama_stack" and not self.llama_stack_model:
            raise ValueError("LLAMA_STACK_MODEL must be configured")
        return self

    @model_validator(mode="after")
    def validate_credentials_for_production(self) -> "Settings":
        """Real providers in production need their credentials."""
        if self.environment != "production" or self.use_fake_providers:
            return self
        if self.reasoning_provider == "anthropic" and not self.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY is required when REASONING_PROVIDER=anthropic")
        if self.record_store_provider == "real" and not (
            self.airtable_api_key and self.airtable_base_id
        ):
            raise ValueError(
                "AIRTABLE_API_KEY and AIRTABLE_BASE_ID are required when RECORD_STORE_PROVIDER=real"
            )
        return self

    @model_validator(mode="after")
    def validate_memory_bounds(self) -> "Settings":
        if self.max_steps < 1:
            raise ValueError("MAX_STEPS must be at least 1")
        if not 0 <= self.session_keep_head < self.session_max_history:
            raise ValueError("SESSION_KEEP_HEAD must be smaller than SESSION_MAX_HISTORY")
        return self

    @property
    def table_labels(self) -> dict[str, str]:
        """Singular Hebrew label per table id, used when describing actions."""
        return {
            self.airtable_transactions_table: "עסקה",
            self.airtable_customers_table: "לקוח",
            self.airtable_projects_table: "פרויקט",
            self.airtable_leads_table: "ליד",
            self.airtable_offices_table: "משרד",
        }

    # Observability
    log_level: str = "INFO"


# Global settings instance
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Lazily construct Settings so tests and CLIs can set env vars before first access.
    return Settings()


def reset_settings_cache() -> None:
    get_settings.cache_clear()


class _SettingsProxy:
    """Lazy proxy for Settings.

    This avoids eager settings instantiation at import time, which can make tests
    order-dependent when env vars are changed during `pytest_configure()`.
    """

    def __getattr__(self, name: str) -> Any:
        return getattr(get_settings(), name)

    def __repr__(self) -> str:  # pragma: no cover
        return f"<SettingsProxy {get_settings()!r}>"


settings = _SettingsProxy()
