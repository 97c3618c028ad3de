from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from funnel_analytics.schemas.motivation import MotivationGrade
from funnel_analytics.services.motivation import DEFAULT_FORECAST_WEIGHT, DEFAULT_GRADES


class Settings(BaseSettings):
    # Ignore unknown env vars so a shared .env can carry frontend/bot settings too.
    model_config = SettingsConfigDict(env_file=(".env", "../.env"), case_sensitive=True, extra="ignore")

    PROJECT_NAME: str = "FunnelAnalytics"
    ENVIRONMENT: str = "development"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    BACKEND_CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    ALLOWED_HOSTS: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1", "testserver"])

    ENABLE_API_DOCS: bool = True

    # Stage-over-previous conversion targets, percent.
    BENCHMARK_BOOKED_TO_ZOOM1: float = 60
    BENCHMARK_ZOOM1_TO_ZOOM2: float = 50
    BENCHMARK_ZOOM2_TO_CONTRACT: float = 40
    BENCHMARK_CONTRACT_TO_PUSH: float = 60
    BENCHMARK_PUSH_TO_DEAL: float = 70

    NORTH_STAR_TARGET: float = 5
    # A red zone further than this below its benchmark is critical.
    REDZONE_TOLERANCE: float = 10

    # Pacing at or above this (percent vs. plan-to-date) counts as on track.
    PACING_TOLERANCE: float = -5
    FORECAST_HALF_LIFE_DAYS: float = 7

    # Average deal size used to derive a deal plan from a sales plan.
    SALES_PER_DEAL: float = 100_000

    # Commission table; set as a JSON list in the environment.
    MOTIVATION_GRADES: list[MotivationGrade] = Field(default_factory=lambda: list(DEFAULT_GRADES))
    # Share of the hot pipeline counted towards the salary forecast.
    MOTIVATION_FORECAST_WEIGHT: float = Field(default=DEFAULT_FORECAST_WEIGHT, ge=0, le=1)

    @model_validator(mode="after")
    def _prod_guards(self):
        if self.ENVIRONMENT.lower() == "production":
            if self.ENABLE_API_DOCS:
                raise ValueError("ENABLE_API_DOCS must be false in production")
            if any(h == "*" for h in self.ALLOWED_HOSTS):
                raise ValueError('ALLOWED_HOSTS must not contain "*" in production')
        else:
            if not self.ALLOWED_HOSTS:
                self.ALLOWED_HOSTS = ["*"]
        if self.FORECAST_HALF_LIFE_DAYS <= 0:
            raise ValueError("FORECAST_HALF_LIFE_DAYS must be positive")
        if not self.MOTIVATION_GRADES:
            raise ValueError("MOTIVATION_GRADES must not be empty")
        return self

    def conversion_benchmarks(self) -> dict[str, float]:
        return {
            "zoom1_held": self.BENCHMARK_BOOKED_TO_ZOOM1,
            "zoom2_held": self.BENCHMARK_ZOOM1_TO_ZOOM2,
            "contract_review": self.BENCHMARK_ZOOM2_TO_CONTRACT,
            "push": self.BENCHMARK_CONTRACT_TO_PUSH,
            "deals": self.BENCHMARK_PUSH_TO_DEAL,
        }


@lru_cache
def get_settings() -> Settings:
    return Settings()
