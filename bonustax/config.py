"""
config.py: Bonus tax optimizer application settings.

Usage:
    from bonustax.config import settings
    print(settings.search_step)

Import the module-level singleton directly; do not wire settings through Depends().
Tax-law constants (brackets, basic deduction, deduction rates) are NOT settings -
they live in the evaluator modules as named constants.
"""
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore any extra env vars
    )

    # --- CORS ---
    # Comma-separated list of allowed frontend origins
    cors_origins: str = "http://localhost:5173,http://localhost:5174"

    # --- Allocation search ---
    # Grid increment (currency units) used by the bonus split search
    search_step: float = 100.0
    # Bonuses above the threshold are searched with the coarser step
    coarse_search_step: float = 1000.0
    coarse_search_threshold: float = 10_000_000.0
    # Upper limit on split candidates per request; finer request steps are refused
    max_grid_points: int = 200_000

    # --- Application ---
    debug: bool = False
    app_version: str = "0.1.0"

    @property
    def cors_origins_list(self) -> List[str]:
        """Split comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


# Module-level singleton: import this throughout the codebase
settings = Settings()
