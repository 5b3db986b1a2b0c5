from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	# OpenAI-compatible chat completions endpoint
	openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
	llm_base_url: str = Field(default="https://api.openai.com/v1/chat/completions", validation_alias="LLM_BASE_URL")
	llm_model: str = Field(default="gpt-4.1-2025-04-14", validation_alias="LLM_MODEL")
	# Cheaper model for the quality assurance prompts
	llm_qa_model: str = Field(default="gpt-4o-mini", validation_alias="LLM_QA_MODEL")
	llm_timeout_seconds: float = Field(default=30.0, validation_alias="LLM_TIMEOUT_SECONDS")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="openai/gpt-4o-mini", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="Hidrazy", validation_alias="OPENROUTER_TITLE")

	# Supabase access tokens are HS256 JWTs signed with the project JWT secret
	supabase_url: str | None = Field(default=None, validation_alias="SUPABASE_URL")
	jwt_secret_key: str = Field(default="change-me", validation_alias="SUPABASE_JWT_SECRET")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	# Supabase sets aud=authenticated; leave empty to skip the audience check
	jwt_audience: str | None = Field(default="authenticated", validation_alias="JWT_AUDIENCE")

	# Database (Supabase Postgres connection string in production)
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# Product tuning; none of these are calibrated against data
	readiness_threshold: int = Field(default=85, validation_alias="READINESS_THRESHOLD")
	free_daily_conversation_limit: int = Field(default=5, validation_alias="FREE_DAILY_CONVERSATION_LIMIT")
	conversation_history_window: int = Field(default=8, validation_alias="CONVERSATION_HISTORY_WINDOW")
	# Optional JSON file replacing the built-in feature unlock catalog
	feature_catalog_path: str | None = Field(default=None, validation_alias="FEATURE_CATALOG_PATH")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
	cors_allow_origins: List[str] = Field(default_factory=lambda: ["*"], validation_alias="CORS_ALLOW_ORIGINS")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
