from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

# Real environment variables win over the .env file.
load_dotenv(Path(__file__).resolve().parent / ".env", override=False)


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "ollama")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL", "http://localhost:11434/v1")
MODEL_NAME = os.getenv("MODEL_NAME", "llama3")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "60"))
AI_ENABLED = _flag("AI_ENABLED", True)

EMAIL_HOST = os.getenv("EMAIL_HOST", "")
EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
EMAIL_USER = os.getenv("EMAIL_USER", "")
EMAIL_PASS = os.getenv("EMAIL_PASS", "")
EMAIL_FROM = os.getenv("EMAIL_FROM", "")
EMAIL_USE_TLS = _flag("EMAIL_USE_TLS", True)
EMAIL_TIMEOUT_SECONDS = float(os.getenv("EMAIL_TIMEOUT_SECONDS", "30"))

BASE_URL = os.getenv("BASE_URL", "http://localhost:5000")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


class LLMSettings(BaseModel):
    api_key: str = OPENAI_API_KEY
    base_url: str = OPENAI_BASE_URL
    model: str = MODEL_NAME
    timeout: float = LLM_TIMEOUT_SECONDS
    enabled: bool = AI_ENABLED


class MailSettings(BaseModel):
    host: str = EMAIL_HOST
    port: int = EMAIL_PORT
    user: str = EMAIL_USER
    password: str = EMAIL_PASS
    sender: str = EMAIL_FROM
    use_tls: bool = EMAIL_USE_TLS
    timeout: float = EMAIL_TIMEOUT_SECONDS
    app_link: str = BASE_URL

    @property
    def from_address(self) -> str:
        return self.sender or self.user

    @property
    def configured(self) -> bool:
        return bool(self.host and self.user and self.password)


class Settings(BaseModel):
    llm: LLMSettings = LLMSettings()
    mail: MailSettings = MailSettings()
    log_level: str = LOG_LEVEL


def load_settings() -> Settings:
    """Snapshot the environment once; components receive the result explicitly."""
    return Settings(llm=LLMSettings(), mail=MailSettings(), log_level=LOG_LEVEL)
