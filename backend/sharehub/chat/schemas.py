"""Pydantic models for chat submissions and routed messages.

Clients send loosely shaped JSON. It is resolved once, at parse time, into a
tagged body (``TextBody`` or ``FileBody``) so nothing downstream has to
re-check which optional field is populated.

Wire shapes:
    inbound  chat_message: {kind, text?, fileRef?: {url, originalName, size?},
                            fileUrl?, originalName?, targetId?}
    outbound chat_message: {kind, text | fileRef, senderId, senderName,
                            timestamp, private, targetId?}
"""
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import InvalidMessageKind


class MessageKind(str, Enum):
    """Kind of chat message.

    Attributes:
        TEXT: Inline text.
        FILE: Reference to a previously uploaded file.
    """
    TEXT = "text"
    FILE = "file"


class FileReference(BaseModel):
    """Reference to an uploaded file (never the bytes themselves)."""
    model_config = ConfigDict(frozen=True)

    url: str = Field(default="", description="Download URL or path")
    originalName: str = Field(default="", description="Filename as uploaded")
    size: Optional[int] = Field(default=None, description="Size in bytes, if known")


class TextBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[MessageKind.TEXT] = MessageKind.TEXT
    text: str = ""


class FileBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[MessageKind.FILE] = MessageKind.FILE
    fileRef: FileReference = Field(default_factory=FileReference)


MessageBody = Annotated[Union[TextBody, FileBody], Field(discriminator="kind")]


class ChatSubmission(BaseModel):
    """A validated client submission, before the router stamps it."""
    model_config = ConfigDict(frozen=True)

    body: MessageBody
    targetId: Optional[str] = None


class RoutedMessage(BaseModel):
    """A message after routing: sender, name and timestamp are server-assigned.

    Instances are frozen. Each recipient gets its own dict from
    ``to_delivery``, so a delivery never mutates the message.
    """
    model_config = ConfigDict(frozen=True)

    body: MessageBody
    senderId: str
    senderName: str
    timestamp: int
    targetId: Optional[str] = None

    @property
    def kind(self) -> MessageKind:
        return self.body.kind

    @property
    def is_private(self) -> bool:
        return self.targetId is not None

    def to_delivery(self) -> Dict[str, Any]:
        """Build the outbound payload for one recipient."""
        payload: Dict[str, Any] = {"kind": self.body.kind.value}
        if isinstance(self.body, TextBody):
            payload["text"] = self.body.text
        else:
            payload["fileRef"] = self.body.fileRef.model_dump()
        payload.update(
            senderId=self.senderId,
            senderName=self.senderName,
            timestamp=self.timestamp,
            private=self.is_private,
        )
        if self.is_private:
            payload["targetId"] = self.targetId
        return payload


# =============================================================================
# Parsing
# =============================================================================


def _optional_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _parse_file_reference(data: Dict[str, Any]) -> FileReference:
    ref = data.get("fileRef")
    if isinstance(ref, dict):
        url = _optional_str(ref.get("url"))
        original_name = _optional_str(ref.get("originalName"))
        size = ref.get("size")
    else:
        # Flat fields as sent by the legacy browser client
        url = _optional_str(ref) or _optional_str(data.get("fileUrl"))
        original_name = _optional_str(data.get("originalName"))
        size = data.get("size")

    if not original_name and url:
        original_name = url.rstrip("/").rsplit("/", 1)[-1]

    if isinstance(size, bool) or not isinstance(size, int) or size < 0:
        size = None

    return FileReference(url=url, originalName=original_name, size=size)


def parse_submission(data: Any) -> ChatSubmission:
    """Resolve a raw ``chat_message`` payload into a ``ChatSubmission``.

    ``kind`` is the only strictly validated field. Every other field falls
    back to a default instead of rejecting the message.

    Args:
        data: Decoded JSON payload from the client.

    Returns:
        ChatSubmission with a tagged body and an optional target.

    Raises:
        InvalidMessageKind: If ``kind`` is missing or not a MessageKind value.
    """
    if not isinstance(data, dict):
        raise InvalidMessageKind(None)

    raw_kind = data.get("kind")
    try:
        kind = MessageKind(raw_kind)
    except ValueError:
        raise InvalidMessageKind(raw_kind) from None

    if kind == MessageKind.TEXT:
        body: Union[TextBody, FileBody] = TextBody(text=_optional_str(data.get("text")))
    else:
        body = FileBody(fileRef=_parse_file_reference(data))

    # Any target other than missing/null/"" selects private scope, even one
    # that can never match a connection.
    target_id = data.get("targetId")
    if target_id is None or target_id == "":
        target_id = None
    elif not isinstance(target_id, str):
        target_id = str(target_id)

    return ChatSubmission(body=body, targetId=target_id)
