import os

from pydantic import BaseModel

from docsmith.errors import MissingCredentials


class Settings(BaseModel):
    """Service settings, read from the environment by :meth:`from_env`."""

    openai_api_key: str | None = None
    openai_base_url: str | None = None
    tavily_api_key: str | None = None
    model: str = "gpt-4o-mini"
    max_turns: int = 5
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            openai_base_url=os.getenv("OPENAI_BASE_URL") or None,
            tavily_api_key=os.getenv("TAVILY_API_KEY") or None,
            model=os.getenv("DOCSMITH_MODEL", "gpt-4o-mini"),
            max_turns=int(os.getenv("DOCSMITH_MAX_TURNS", "5")),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )

    def require_completion_credentials(self) -> str:
        if not self.openai_api_key:
            raise MissingCredentials("OPENAI_API_KEY is not configured")
        return self.openai_api_key
