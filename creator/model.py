# creator/model.py
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .utils import gen_id, utc_now


# ==========================
# Outcome
# ==========================
class Success(BaseModel):
    kind: Literal["success"] = "success"
    image_url: str

    @property
    def message(self) -> str:
        return "Here's your transformed image!"


class StillProcessing(BaseModel):
    kind: Literal["still_processing"] = "still_processing"
    status_label: str

    @property
    def message(self) -> str:
        return (
            f"Your image is still {self.status_label}. "
            "The service needs more time, please try again in a moment."
        )


class Failed(BaseModel):
    kind: Literal["failed"] = "failed"
    reason_text: str

    @property
    def message(self) -> str:
        return f"Sorry, the image could not be generated: {self.reason_text}"


class TransportError(BaseModel):
    kind: Literal["transport_error"] = "transport_error"
    reason_text: str
    timed_out: bool = False

    @property
    def message(self) -> str:
        if self.timed_out:
            return "The request timed out. Please try again."
        return f"Connection error ({self.reason_text}). Please check your network and try again."


class DecodeError(BaseModel):
    kind: Literal["decode_error"] = "decode_error"
    reason_text: str

    @property
    def message(self) -> str:
        return f"That file could not be read as an image: {self.reason_text}"


Outcome = Annotated[
    Union[Success, StillProcessing, Failed, TransportError, DecodeError],
    Field(discriminator="kind"),
]


# ==========================
# Pending request
# ==========================
class PendingRequest(BaseModel):
    """One in-flight call. Never persisted.

    ``settle()`` is the cancellation token shared by the network call and
    the timeout: only the first caller gets ``True``.
    """

    image_bytes: bytes
    prompt: str
    submitted_at: datetime = Field(default_factory=utc_now)
    settled: bool = False

    def settle(self) -> bool:
        if self.settled:
            return False
        self.settled = True
        return True


# ==========================
# Conversation entries
# ==========================
class UserTurn(BaseModel):
    role: Literal["user"] = "user"
    id: str = Field(default_factory=gen_id)
    prompt: str
    image_thumbnail: bytes = b""
    created_at: datetime = Field(default_factory=utc_now)


TurnState = Literal["pending", "resolved"]


class AssistantTurn(BaseModel):
    role: Literal["assistant"] = "assistant"
    id: str = Field(default_factory=gen_id)
    state: TurnState = "pending"
    outcome: Optional[Outcome] = None
    created_at: datetime = Field(default_factory=utc_now)

    @property
    def is_pending(self) -> bool:
        return self.state == "pending"


class SystemTurn(BaseModel):
    role: Literal["system"] = "system"
    id: str = Field(default_factory=gen_id)
    content: str
    created_at: datetime = Field(default_factory=utc_now)


ConversationEntry = Union[UserTurn, AssistantTurn, SystemTurn]


# ==========================
# Gallery
# ==========================
class GalleryItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=gen_id)
    image_url: str = Field(alias="imageUrl")
    prompt: str
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")
    source_image_url: Optional[str] = Field(default=None, alias="sourceImageUrl")
