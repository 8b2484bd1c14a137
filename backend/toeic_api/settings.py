from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
	gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
	# Provider can be "vertex" (Vertex AI Express) or "ai_studio" (Generative Language API)
	gemini_provider: str = Field(default="ai_studio", validation_alias="GEMINI_PROVIDER")
	gemini_model: str = Field(default="gemini-2.5-flash", validation_alias="GEMINI_MODEL")
	gemini_timeout_seconds: float = Field(default=30.0, validation_alias="GEMINI_TIMEOUT_SECONDS")
	# Vertex configuration
	vertex_region: str = Field(default="us-central1", validation_alias="GEMINI_VERTEX_REGION")
	vertex_project: str | None = Field(default=None, validation_alias="GEMINI_VERTEX_PROJECT")

	# OpenRouter fallback configuration (optional)
	openrouter_api_key: str | None = Field(default=None, validation_alias="OPENROUTER_API_KEY")
	openrouter_model: str = Field(default="x-ai/grok-4-fast:free", validation_alias="OPENROUTER_MODEL")
	openrouter_base_url: str = Field(default="https://openrouter.ai/api/v1/chat/completions", validation_alias="OPENROUTER_BASE_URL")
	openrouter_referer: str = Field(default="https://localhost", validation_alias="OPENROUTER_HTTP_REFERER")
	openrouter_title: str = Field(default="TOEIC Vocabulary API", validation_alias="OPENROUTER_TITLE")

	# Auth
	jwt_secret_key: str = Field(default="change-me", validation_alias="JWT_SECRET_KEY")
	jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
	access_token_expire_minutes: int = Field(default=120, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")
	# Sessions idle for longer than this are purged by the maintenance sweep
	session_retention_days: int = Field(default=30, validation_alias="SESSION_RETENTION_DAYS")

	# Per-user AI request quota (definition lookups)
	default_requests_limit: int = Field(default=1000, validation_alias="DEFAULT_REQUESTS_LIMIT")

	# Word definitions
	definition_cache_ttl_seconds: int = Field(default=6 * 60 * 60, validation_alias="DEFINITION_CACHE_TTL_SECONDS")
	definition_max_attempts: int = Field(default=2, validation_alias="DEFINITION_MAX_ATTEMPTS")

	# "Reviewed today" is counted from local midnight at this offset (UTC+8 by default)
	stats_utc_offset_hours: int = Field(default=8, validation_alias="STATS_UTC_OFFSET_HOURS")

	# Maintenance sweep period
	sweep_interval_seconds: int = Field(default=24 * 60 * 60, validation_alias="SWEEP_INTERVAL_SECONDS")

	log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

	# Server bind for `python -m toeic_api`
	host: str = Field(default="127.0.0.1", validation_alias="HOST")
	port: int = Field(default=8000, validation_alias="PORT")

	# Database
	database_url: str | None = Field(default=None, validation_alias="DATABASE_URL")

	# pydantic-settings v2 style config
	model_config = SettingsConfigDict(env_file=".env", extra="ignore")

settings = Settings()
