"""Conversation data contracts shared by the core, the store, and the adapters.

Architectural role:
    Defines the typed entities that flow between `brainora.core` (controller,
    dispatcher, aggregator), `brainora.memory.session_store` (persistence), and
    the API adapters (rendering).

Mutability:
    `Message` and `Citation` are frozen. A streamed assistant message is
    "updated" by replacing its list slot with a new value
    (`dataclasses.replace`), so a committed message never changes in place.
    `Session` is mutable because commits overwrite its `messages` list.

Serialization:
    `to_dict`/`from_dict` use the persisted camelCase field names
    (`imageUrl`, `isImageResult`, `createdAt`) and ISO 8601 timestamps.
    Optional fields are omitted when unset.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"

TITLE_LENGTH = 30


def new_id() -> str:
    """Return a collision-free identifier for messages, sessions, and users."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_timestamp(value: Any) -> datetime:
    """Parse stored timestamps; unreadable values fall back to now."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    return utc_now()


def derive_title(text: str) -> str:
    """Session title rule: first 30 characters of the first user message."""
    return (text or "")[:TITLE_LENGTH]


@dataclass(frozen=True)
class Citation:
    """One grounding source attached to an assistant answer."""

    uri: str
    title: str

    def to_dict(self) -> dict[str, str]:
        return {"uri": self.uri, "title": self.title}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Citation":
        return cls(uri=str(data.get("uri", "")), title=str(data.get("title", "")))


@dataclass(frozen=True)
class Message:
    """A single conversation turn.

    Attributes:
        id: Unique identifier within the owning session.
        role: `user` or `assistant`.
        content: Message text (caption text for image results).
        timestamp: Creation time (UTC).
        image_url: Image reference for image-synthesis results.
        is_image_result: `True` only for successful image-synthesis messages.
        citations: Grounding sources in provider order, `None` when not grounded.
    """

    role: str
    content: str
    id: str = field(default_factory=new_id)
    timestamp: datetime = field(default_factory=utc_now)
    image_url: str | None = None
    is_image_result: bool | None = None
    citations: tuple[Citation, ...] | None = None

    @classmethod
    def user(cls, content: str) -> "Message":
        return cls(role=ROLE_USER, content=content)

    @classmethod
    def assistant(cls, content: str = "", **kwargs: Any) -> "Message":
        return cls(role=ROLE_ASSISTANT, content=content, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.image_url is not None:
            data["imageUrl"] = self.image_url
        if self.is_image_result is not None:
            data["isImageResult"] = self.is_image_result
        if self.citations is not None:
            data["citations"] = [c.to_dict() for c in self.citations]
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        citations = data.get("citations")
        return cls(
            id=str(data.get("id") or new_id()),
            role=str(data.get("role", ROLE_USER)),
            content=str(data.get("content", "")),
            timestamp=_parse_timestamp(data.get("timestamp")),
            image_url=data.get("imageUrl"),
            is_image_result=data.get("isImageResult"),
            citations=(
                tuple(Citation.from_dict(c) for c in citations)
                if isinstance(citations, list)
                else None
            ),
        )


@dataclass
class Session:
    """A titled, persisted conversation."""

    title: str
    messages: list[Message] = field(default_factory=list)
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Session":
        return cls(
            id=str(data.get("id") or new_id()),
            title=str(data.get("title", "")),
            messages=[
                Message.from_dict(m)
                for m in data.get("messages") or []
                if isinstance(m, dict)
            ],
            created_at=_parse_timestamp(data.get("createdAt")),
        )


@dataclass(frozen=True)
class User:
    """Signed-in identity record. Its presence gates session persistence."""

    id: str
    name: str
    email: str

    @classmethod
    def from_email(cls, email: str, name: str | None = None) -> "User":
        """Build a user record; the name defaults to the email's local part."""
        email = (email or "").strip()
        return cls(
            id=f"user-{new_id()}",
            name=(name or "").strip() or email.split("@")[0],
            email=email or "guest@brainora.ai",
        )

    @classmethod
    def guest(cls) -> "User":
        return cls(id=f"guest-{new_id()}", name="Guest User", email="guest@brainora.ai")

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "name": self.name, "email": self.email}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "User":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            email=str(data.get("email", "")),
        )
