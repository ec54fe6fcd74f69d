# scorecard_remediation/core/config.py
from typing import List, Optional, Union
from pathlib import Path
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Locate the .env file relative to the project root
BASE_DIR = Path(__file__).resolve().parent.parent.parent
ENV_FILE = BASE_DIR / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=str(ENV_FILE), extra="ignore")

    # Application
    PROJECT_NAME: str = "Scorecard Remediation"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Scorecard API
    CORTEX_API_BASE: str = "https://api.getcortexapp.com"
    CORTEX_API_TOKEN: Optional[str] = None
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Evaluation polling
    EVALUATION_MAX_ATTEMPTS: int = 10
    EVALUATION_POLL_INTERVAL_MS: int = 1500

    # Source control
    GITHUB_API_BASE: str = "https://api.github.com"
    GITHUB_TOKEN: Optional[str] = None
    GITHUB_OWNER: Optional[str] = None
    GITHUB_REPO: Optional[str] = None
    GITHUB_BRANCH: str = "main"

    # Manual remediation
    MANUAL_REMEDIATION_URL: str = "https://enterprise-confluence.onefiserv.net/"

    # CORS
    BACKEND_CORS_ORIGINS: Union[List[str], str] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return v

    @field_validator("EVALUATION_MAX_ATTEMPTS", "EVALUATION_POLL_INTERVAL_MS")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v


settings = Settings()
