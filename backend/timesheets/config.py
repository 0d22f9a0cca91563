from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueryClientOptions(BaseModel):
    """Cache and retry policy for the query client.

    Documented keys: ``staleTimeMs``, ``cacheIdleTimeMs``, ``readRetries``, ``mutationRetries``.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    stale_time_ms: int = Field(default=5 * 60 * 1000, ge=0)
    cache_idle_time_ms: int = Field(default=30 * 60 * 1000, ge=0)
    read_retries: int = Field(default=2, ge=0)
    mutation_retries: int = Field(default=1, ge=0)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Timesheets"
    app_version: str = "0.1.0"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "postgresql+asyncpg://timesheets:timesheets@db:5432/timesheets"
    cors_origins: list[str] = ["http://localhost:5173", "http://localhost:8000"]
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8000

    document_store: Literal["memory", "sql"] = "memory"

    stale_time_ms: int = 5 * 60 * 1000
    cache_idle_time_ms: int = 30 * 60 * 1000
    read_retries: int = 2
    mutation_retries: int = 1

    annual_vacation_days: float = 20.0
    annual_sick_days: float = 10.0
    stats_interval_seconds: int = 3600

    def query_client_options(self) -> QueryClientOptions:
        """Build the query client options from the flat settings."""
        return QueryClientOptions(
            stale_time_ms=self.stale_time_ms,
            cache_idle_time_ms=self.cache_idle_time_ms,
            read_retries=self.read_retries,
            mutation_retries=self.mutation_retries,
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Return cached settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
