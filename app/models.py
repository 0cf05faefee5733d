# app/models.py
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from typing_extensions import Literal

from .catalog.schemas import ToolRecord


class UserLevel(str, Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    expert = "expert"


class MatchResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    tools: List[ToolRecord] = Field(default_factory=list)
    guides: List[str] = Field(default_factory=list)
    examples: List[str] = Field(default_factory=list)
    level: UserLevel = UserLevel.intermediate


class ChatMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
    model: Optional[str] = None
    context: Optional[MatchResult] = None


class Notice(BaseModel):
    """Transient notification shown to the user (never part of the transcript)."""

    title: str
    description: str
    level: Literal["info", "error"] = "error"


class TurnOutcome(BaseModel):
    reply: Optional[ChatMessage] = None
    notice: Optional[Notice] = None
    retried: bool = False

    @property
    def ok(self) -> bool:
        return self.reply is not None


# --- Relay envelopes (field names match the wire format) ---


class RelayRequest(BaseModel):
    message: str
    toolsContext: str = ""
    modelPreference: Optional[str] = None
    provider: Optional[str] = None
    systemPrompt: Optional[str] = None


class RelayReply(BaseModel):
    reply: str
    model: str
    availableModels: List[str]


class RelayError(BaseModel):
    error: str


# --- Chat session API ---


class SendMessageRequest(BaseModel):
    message: str


class ModelPreferenceRequest(BaseModel):
    model: str


class CredentialRequest(BaseModel):
    api_key: str


class MatchRequest(BaseModel):
    query: str = ""


class SessionView(BaseModel):
    id: str
    model_preference: str
    has_credential: bool
    busy: bool
    messages: List[ChatMessage]
    notices: List[Notice]
