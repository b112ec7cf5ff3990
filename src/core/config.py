from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Redis (session state, conversation window, per-user locks)
    redis_url: str = "redis://localhost:6379/0"

    # LLM API Keys
    anthropic_api_key: str = ""
    google_ai_api_key: str = ""

    # Langfuse
    langfuse_secret_key: str = ""
    langfuse_public_key: str = ""
    langfuse_host: str = "http://localhost:3000"

    # Capability services (calendar, tasks, gmail, reminders, contacts, drive,
    # documents, web search, briefing)
    capability_base_url: str = "http://localhost:54321/functions/v1"
    capability_api_key: str = ""
    capability_timeout_seconds: float = 20.0

    # WhatsApp Business Cloud API
    whatsapp_api_token: str = ""
    whatsapp_phone_number_id: str = ""
    whatsapp_verify_token: str = ""

    # Reasoning backend
    classifier_model: str = "gemini-2.5-flash"
    classifier_fallback_model: str = "claude-haiku-4-5"
    agent_model: str = "claude-sonnet-4-5"
    classifier_timeout_seconds: float = 8.0
    agent_timeout_seconds: float = 25.0

    # Conversation state
    default_timezone: str = "Asia/Kolkata"
    pending_state_ttl_seconds: int = 300
    session_ttl_seconds: int = 7 * 86400
    history_window: int = 10
    user_lock_timeout_seconds: int = 60

    # App
    app_env: str = "development"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


settings = Settings()
