"""
Configuration for Mapa de Decisões
==================================

Environment variables:
- DATABASE_URL: SQLAlchemy URL (default: sqlite:///./mapa_decisoes.db)
- SQL_ECHO: Echo SQL statements (default: false)
- IMPORT_MAX_ROWS: Max rows accepted in one import batch (default: 5000)
- DEFAULT_COMPANY: Company tag for rows without one (default: V.tal)
- LEADERBOARD_SIZE: Default N for top-N lists (default: 5)
- LEADERBOARD_MIN_SAMPLE: Minimum decisions for an entry in HTTP rankings (default: 2)
- ADJUDICATOR_MATCHER: containment|exact (default: containment)
- SEED_DEMO_DATA: Seed the demo tenant on startup (default: false)
- CORS_ALLOW_ORIGINS: Comma-separated origins
"""

from typing import List
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables"""

    # Database
    database_url: str = "sqlite:///./mapa_decisoes.db"
    sql_echo: bool = False

    # Import
    import_max_rows: int = 5000
    default_company: str = "V.tal"
    adjudicator_matcher: str = "containment"  # containment | exact

    # Rankings (presentation policy, applied by the HTTP layer)
    leaderboard_size: int = 5
    leaderboard_min_sample: int = 2

    # Startup
    seed_demo_data: bool = False

    # CORS
    cors_allow_origins: str = "http://localhost:5173,http://127.0.0.1:5173,http://localhost:8000"

    # Service info
    service_version: str = "1.0.0"

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        env_file_encoding = "utf-8"

    def cors_origins(self) -> List[str]:
        origins: List[str] = []
        for item in self.cors_allow_origins.split(","):
            origin = item.strip().strip('"').strip("'").rstrip("/")
            if origin:
                origins.append(origin)
        return origins

    def validate_config(self) -> List[str]:
        """Validate configuration, return list of warnings"""
        warnings = []

        if self.adjudicator_matcher not in ("containment", "exact"):
            warnings.append(
                f"ADJUDICATOR_MATCHER={self.adjudicator_matcher} is unknown, falling back to containment"
            )

        if self.import_max_rows <= 0:
            warnings.append("IMPORT_MAX_ROWS must be positive")

        if self.leaderboard_min_sample < 0:
            warnings.append("LEADERBOARD_MIN_SAMPLE must not be negative")

        return warnings


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
