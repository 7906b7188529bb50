"""Process-wide settings read from the environment (and a local ``.env``)."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from dotenv import load_dotenv

DEFAULT_APP_URL = "http://localhost:3000"
DEFAULT_MODEL = "gpt-4o-mini"


class Provider(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"


_KEY_ENV_VARS: dict[Provider, str] = {
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.ANTHROPIC: "ANTHROPIC_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
}


def get_api_key(provider: Provider) -> str:
    """Look up the API key for ``provider``; raises ``RuntimeError`` if unset."""
    load_dotenv()
    env = _KEY_ENV_VARS.get(provider)
    if not env:
        raise RuntimeError(f"No API key variable configured for {provider}")
    key = os.getenv(env)
    if not key:
        raise RuntimeError(f"{env} missing")
    return key


def _optional_float(value: str | None) -> Optional[float]:
    if value is None or not value.strip():
        return None
    return float(value)


@dataclass(frozen=True)
class Settings:
    app_url: str = DEFAULT_APP_URL
    provider: Provider = Provider.OPENAI
    default_model: str = DEFAULT_MODEL
    tool_timeout: Optional[float] = None
    max_tool_rounds: int = 3
    log_level: str = "INFO"

    @property
    def rpc_url(self) -> str:
        """Endpoint of the CRUD layer's RPC router."""
        return f"{self.app_url.rstrip('/')}/api/trpc"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        return cls(
            app_url=(
                os.getenv("RELOCATION_APP_URL")
                or os.getenv("NEXT_PUBLIC_APP_URL")
                or DEFAULT_APP_URL
            ),
            provider=Provider(os.getenv("RELOCATION_LLM_PROVIDER", Provider.OPENAI.value)),
            default_model=os.getenv("RELOCATION_MODEL", DEFAULT_MODEL),
            tool_timeout=_optional_float(os.getenv("RELOCATION_TOOL_TIMEOUT")),
            max_tool_rounds=int(os.getenv("RELOCATION_MAX_TOOL_ROUNDS", "3")),
            log_level=os.getenv("RELOCATION_LOG_LEVEL", "INFO").upper(),
        )

    def configure_logging(self) -> None:
        """Install a basic root handler; only entry points should call this."""
        logging.basicConfig(
            level=getattr(logging, self.log_level, logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
