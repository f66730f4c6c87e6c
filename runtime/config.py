"""Settings for the battle service and CLI."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from engine.model import Rules


class Settings(BaseSettings):
    """Application settings, overridable via TACTICS_* environment variables."""

    model_config = SettingsConfigDict(env_prefix="TACTICS_", env_file=".env",
                                      env_file_encoding="utf-8")

    seed: int = Field(default=42, description="Seed for the AI's random choices")
    grid_cols: int = Field(default=40, gt=0)
    grid_rows: int = Field(default=28, gt=0)
    budget: int = Field(default=500, gt=0, description="Starting budget for each player")
    deploy_cols: int = Field(default=8, gt=0, description="Width of each deployment zone")
    log_limit: int = Field(default=40, gt=0, description="Battle log entries kept")
    tick_ms: int = Field(default=500, gt=0, description="Autoplay delay between rounds")
    time_compression: float = Field(default=1.0, gt=0.0)
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:5174",
                                 "http://localhost:5175"],
        description="Origins allowed to call the HTTP API",
    )

    def rules(self) -> Rules:
        presets = tuple(sorted({300, 500, 800, 1000, self.budget}))
        return Rules(grid_cols=self.grid_cols, grid_rows=self.grid_rows,
                     budget=self.budget, deploy_cols=self.deploy_cols,
                     log_limit=self.log_limit, budget_presets=presets)


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
