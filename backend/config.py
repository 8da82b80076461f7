"""
Aegrid configuration, read from environment variables or a .env file.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # Database
    database_url: str = Field(
        default="sqlite:///./aegrid.db",
        description="SQLAlchemy database URL",
    )
    sql_echo: bool = Field(default=False, description="Echo SQL statements")

    # Server
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"], description="Allowed CORS origins"
    )
    log_level: str = Field(default="INFO", description="Root log level")

    # Risk analysis
    risk_analysis_default_limit: int = Field(
        default=50, description="Assets scored per risk-analysis request by default"
    )
    risk_analysis_max_limit: int = Field(
        default=500, description="Upper bound for the risk-analysis limit parameter"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


settings = Settings()
