from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore[import-not-found]


class Settings(BaseSettings):
    app_env: str = "local"
    app_name: str = "hr-issue-classifier"
    port: int = 3010

    mysql_host: str = "127.0.0.1"
    mysql_port: int = 3306
    mysql_user: str = "classifier"
    mysql_password: str = "classifier"
    mysql_db: str = "hr_issues"
    # Full SQLAlchemy URL; takes precedence over the mysql_* parts when set.
    database_url: str | None = None

    cors_origins: list[str] | str = "http://localhost:3000"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str] | str:
        if isinstance(v, str):
            if v == "*":
                return "*"
            if "," in v:
                return [origin.strip() for origin in v.split(",") if origin.strip()]
            return [v.strip()] if v.strip() else "*"
        if isinstance(v, list):
            return v
        return "*"

    # LLM provider
    llm_provider: str = "openrouter"
    llm_model: str = "mistralai/mistral-7b-instruct:free"
    llm_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_api_key: str | None = None
    gemini_api_key: str | None = None
    gemini_model: str = "models/gemini-2.5-flash-lite"
    llm_temperature: float = 0.0
    llm_max_tokens: int = 256
    llm_timeout_sec: float = 30.0

    default_collection_name: str = "HR Issues"

    # Bearer token verification. jwt_jwks_url wins over jwt_secret when both are set.
    jwt_secret: str | None = None
    jwt_jwks_url: str | None = None
    jwt_issuer: str | None = None
    jwt_audience: str | None = None
    jwt_algorithms: list[str] = ["RS256", "HS256"]

    stale_job_timeout_sec: int = 60 * 15

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"mysql+pymysql://{self.mysql_user}:{self.mysql_password}"
            f"@{self.mysql_host}:{self.mysql_port}/{self.mysql_db}?charset=utf8mb4"
        )


settings = Settings()
