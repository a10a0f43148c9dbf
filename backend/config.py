# backend/config.py
import os
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEFAULT_APP_URL = "http://localhost:8000"
DEFAULT_OPENROUTER_MODEL = "google/gemini-2.5-flash-image-preview"
DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./visionary.db"


class GoogleOAuthSettings(BaseModel):
    client_id: str
    client_secret: str
    app_url: str = DEFAULT_APP_URL

    @property
    def redirect_uri(self) -> str:
        return f"{self.app_url.rstrip('/')}/api/auth/google/callback"

    @classmethod
    def from_env(cls) -> "GoogleOAuthSettings":
        client_id = os.getenv("GOOGLE_CLIENT_ID")
        client_secret = os.getenv("GOOGLE_CLIENT_SECRET")
        if not client_id or not client_secret:
            raise ValueError("Google OAuth credentials are not set in .env file.")
        return cls(client_id=client_id, client_secret=client_secret,
                   app_url=os.getenv("APP_URL") or DEFAULT_APP_URL)


class OpenRouterSettings(BaseModel):
    api_key: str
    model: str = DEFAULT_OPENROUTER_MODEL
    base_url: str = DEFAULT_OPENROUTER_BASE_URL

    @classmethod
    def from_env(cls) -> "OpenRouterSettings":
        api_key = os.getenv("OPENROUTER_API_KEY")
        if not api_key:
            raise ValueError("OPENROUTER_API_KEY is not set!")
        return cls(
            api_key=api_key,
            model=os.getenv("OPENROUTER_MODEL") or DEFAULT_OPENROUTER_MODEL,
            base_url=os.getenv("OPENROUTER_BASE_URL") or DEFAULT_OPENROUTER_BASE_URL,
        )


def get_client_url() -> str:
    return os.getenv("CLIENT_URL") or os.getenv("APP_URL") or DEFAULT_APP_URL


def get_database_url(url: Optional[str] = None) -> str:
    return url or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
