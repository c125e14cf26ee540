from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


ACTIONS = ("create", "update", "delete")
AGENT_TYPES = ("webapp", "gamedev", "solana")
MAX_IMAGE_COUNT = 5


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PageMetadata(BaseModel):
    created: Optional[str] = None
    lastModified: Optional[str] = None
    size: Optional[int] = None
    checksum: Optional[str] = None


class Page(BaseModel):
    """One unit of generated markup or code, keyed by its normalized path."""

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=1)
    path: str
    # The browser client calls this field "html", single-file agents call it "code"
    content: str = Field("", validation_alias=AliasChoices("content", "html", "code"))
    isActive: bool = False
    metadata: Optional[PageMetadata] = None


class ChangeRecord(BaseModel):
    """One create/update/delete instruction produced by the generation stage.

    `action` is kept as a plain string so that unknown values reach the
    reconciler and are rejected there instead of being dropped here.
    """

    model_config = ConfigDict(extra="ignore")

    name: str
    # Legacy replies address pages by path and keep `name` as the display label
    path: Optional[str] = None
    content: str = Field("", validation_alias=AliasChoices("content", "html", "code"))
    action: str
    reason: Optional[str] = None


class TranscriptEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: Literal["user", "assistant", "system"]
    agentName: str = ""
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class ImageDecision(BaseModel):
    needsImages: bool
    imageQuery: Optional[str] = None
    imageCount: Optional[int] = None
    explanation: str = ""

    @field_validator("imageCount")
    @classmethod
    def _clamp_count(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return v
        return max(0, min(MAX_IMAGE_COUNT, v))


class ImageRef(BaseModel):
    url: str
    alt: str = ""


class WebAppChangeSet(BaseModel):
    agent_type: Literal["webapp"] = "webapp"
    changes: List[ChangeRecord] = Field(default_factory=list)


class _SingleFileChangeSet(BaseModel):
    changes: List[ChangeRecord] = Field(default_factory=list)

    @property
    def code(self) -> Optional[str]:
        """Only the first change's body is used by single-file agents."""
        if self.changes and self.changes[0].content:
            return self.changes[0].content
        return None


class GameChangeSet(_SingleFileChangeSet):
    agent_type: Literal["gamedev"] = "gamedev"


class SolanaChangeSet(_SingleFileChangeSet):
    agent_type: Literal["solana"] = "solana"


ChangeSet = Annotated[
    Union[WebAppChangeSet, GameChangeSet, SolanaChangeSet],
    Field(discriminator="agent_type"),
]


class PipelineResult(BaseModel):
    response_text: str
    change_set: ChangeSet
    image_decision: ImageDecision
    image_urls: List[ImageRef] = Field(default_factory=list)

    @property
    def changes(self) -> List[ChangeRecord]:
        return list(self.change_set.changes)

    def to_response(self) -> Dict[str, Any]:
        """Client-facing JSON body for the chat routes."""
        body: Dict[str, Any] = {
            "response": self.response_text,
            "changes": [c.model_dump(exclude_none=True) for c in self.change_set.changes],
            "imageDecision": self.image_decision.model_dump(exclude_none=True),
        }
        if self.image_urls:
            body["imageUrls"] = [i.model_dump() for i in self.image_urls]
        return body


class ChatRequest(BaseModel):
    prompt: str
    previousMessages: List[TranscriptEntry] = Field(default_factory=list)
    siteStructure: List[Page] = Field(default_factory=list)


class GameDevChatRequest(BaseModel):
    prompt: str
    previousMessages: List[TranscriptEntry] = Field(default_factory=list)
    # JSON string {"name": ..., "code": ...}
    gameStructure: str = ""


class SolanaChatRequest(BaseModel):
    prompt: str
    previousMessages: List[TranscriptEntry] = Field(default_factory=list)
    programStructure: str = ""


class HostRequest(BaseModel):
    pages: Optional[List[Page]] = None
    metadata: Optional[Dict[str, Any]] = None
