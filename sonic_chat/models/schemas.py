from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Roles accepted in a conversation."""

    SYSTEM = "system"
    DEVELOPER = "developer"
    USER = "user"
    ASSISTANT = "assistant"


class Turn(BaseModel):
    """One message in a conversation.

    Attributes:
        id: Client-assigned identifier, unique within a conversation.
        role: The speaker role.
        content: The message text.
        name: Optional display name sent to the model.
    """

    model_config = ConfigDict(extra="ignore", use_enum_values=True)

    id: int | None = None
    role: Role
    content: str
    name: str | None = None

    def to_upstream(self) -> dict[str, str]:
        """Serialize for the completion API, without the client identifier."""
        return self.model_dump(exclude={"id"}, exclude_none=True)


class ChatRequest(BaseModel):
    """Request payload for the relay endpoint.

    Attributes:
        messages: Ordered conversation history, oldest first.
    """

    messages: list[Turn] = Field(..., description="Conversation turns in prompt order")


class CompletionRequest(BaseModel):
    """Body of the streaming chat-completions request sent upstream."""

    model: str
    messages: list[dict[str, str]]
    stream: bool = True
    temperature: float | None = None


class UpstreamDelta(BaseModel):
    """Incremental content carried by a stream frame."""

    model_config = ConfigDict(extra="ignore")

    content: str | None = None


class UpstreamChoice(BaseModel):
    """One choice inside a stream frame."""

    model_config = ConfigDict(extra="ignore")

    index: int = 0
    delta: UpstreamDelta = Field(default_factory=UpstreamDelta)
    finish_reason: str | None = None


class UpstreamEvent(BaseModel):
    """Partial schema of one `data:` payload from the completion stream.

    Only the fields the relay consumes are declared; everything else the
    provider sends is ignored.
    """

    model_config = ConfigDict(extra="ignore")

    choices: list[UpstreamChoice] = Field(default_factory=list)

    @property
    def delta_text(self) -> str:
        """Text of the first choice's delta, or an empty string."""
        if not self.choices:
            return ""
        return self.choices[0].delta.content or ""

    @property
    def finish_reason(self) -> str | None:
        if not self.choices:
            return None
        return self.choices[0].finish_reason
