"""Relay configuration with environment variable loading.

Pydantic-based configuration for the upstream completion API.
Supports OpenAI and OpenAI-compatible APIs via custom base URL.
Loaded once per process and immutable afterwards.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from sonic_chat.models.schemas import Role, Turn

# Load environment variables from .env file
load_dotenv()

DEFAULT_BASE_URL = "https://api.openai.com/v1"

INSTRUCTION_TURN = Turn(
    role=Role.DEVELOPER,
    name="Sonic",
    content=(
        "Your name is Sonic and you are the fastest AI on the planet, "
        "make sure to always response with proper markdown."
    ),
)


class RelayConfigError(Exception):
    """Raised when the relay cannot be configured from the environment."""

    pass


def _env_float(name: str) -> float | None:
    value = os.getenv(name)
    return float(value) if value else None


class RelayConfig(BaseModel):
    """Configuration for the streaming relay.

    Attributes:
        api_key: Bearer credential for the completion API.
        organization: Optional organization identifier header.
        project: Optional project identifier header.
        base_url: API base URL.
        model_name: Model identifier to use.
        temperature: Optional sampling temperature, omitted upstream when unset.
        request_timeout: Seconds allowed for connect and between reads.
        instruction: Turn prepended to every conversation.
    """

    model_config = ConfigDict(frozen=True, validate_default=True)

    api_key: str = Field(
        default_factory=lambda: os.getenv("OPENAI_API_KEY", ""),
        description="API key for the completion provider",
    )
    organization: str | None = Field(
        default_factory=lambda: os.getenv("OPENAI_ORG_ID") or None,
        description="Organization header value",
    )
    project: str | None = Field(
        default_factory=lambda: os.getenv("OPENAI_PROJECT_ID") or None,
        description="Project header value",
    )
    base_url: str = Field(
        default_factory=lambda: os.getenv("OPENAI_BASE_URL") or DEFAULT_BASE_URL,
        description="API base URL",
    )
    model_name: str = Field(
        default_factory=lambda: os.getenv("LLM_MODEL", "gpt-4o-mini"),
        description="Model to use",
    )
    temperature: float | None = Field(
        default_factory=lambda: _env_float("LLM_TEMPERATURE"),
        ge=0.0,
        le=2.0,
        description="Sampling temperature for response generation",
    )
    request_timeout: float = Field(
        default_factory=lambda: float(os.getenv("LLM_TIMEOUT", "60")),
        gt=0,
        description="Upstream timeout in seconds",
    )
    instruction: Turn = INSTRUCTION_TURN

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: str) -> str:
        """Validate that API key is provided and non-empty."""
        if not v or not v.strip():
            raise ValueError("API key required. Set OPENAI_API_KEY in .env")
        return v.strip()

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def completions_url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def auth_headers(self) -> dict[str, str]:
        """Headers that authenticate the relay against the provider."""
        headers = {"Authorization": f"Bearer {self.api_key}"}
        if self.organization:
            headers["OpenAI-Organization"] = self.organization
        if self.project:
            headers["OpenAI-Project"] = self.project
        return headers


_relay_config: RelayConfig | None = None


def get_relay_config() -> RelayConfig:
    """Load relay configuration from the environment once per process.

    Returns:
        The cached RelayConfig instance.

    Raises:
        RelayConfigError: If the environment does not yield a valid config.
    """
    global _relay_config
    if _relay_config is None:
        try:
            _relay_config = RelayConfig()
        except (ValidationError, ValueError) as e:
            raise RelayConfigError(str(e)) from e
    return _relay_config
