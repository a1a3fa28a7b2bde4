import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings

load_dotenv()


class Settings(BaseSettings):
    """Runtime settings for the consultation timeline backend."""

    # AI analysis (OpenAI-compatible; Azure when an endpoint is set)
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    AZURE_FOUNDRY_API_KEY: str = os.getenv("AZURE_FOUNDRY_API_KEY", "")
    AZURE_FOUNDRY_ENDPOINT: str = os.getenv("AZURE_FOUNDRY_ENDPOINT", "")
    AZURE_API_VERSION: str = os.getenv("AZURE_API_VERSION", "2024-12-01-preview")
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-4o")
    ANALYSIS_TEMPERATURE: float = float(os.getenv("ANALYSIS_TEMPERATURE", "0.7"))

    # Storage
    DATA_DIR: Path = Path(os.getenv("DATA_DIR", "data"))
    SNAPSHOT_FILE: str = os.getenv("SNAPSHOT_FILE", "echomed_timeline.json")
    LEGACY_HISTORY_FILE: str = os.getenv("LEGACY_HISTORY_FILE", "echomed_consultation_history.json")

    # Practice defaults
    DEFAULT_DOCTOR_NAME: str = os.getenv("DEFAULT_DOCTOR_NAME", "Nutricionista")
    ANONYMOUS_PATIENT_NAME: str = os.getenv("ANONYMOUS_PATIENT_NAME", "Anônimo")

    CORS_ORIGINS: List[str] = [
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]

    class Config:
        case_sensitive = True


settings = Settings()
