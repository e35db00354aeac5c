"""Protocol-neutral chat message entity."""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    """Roles understood by the model backend."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ChatMessage:
    """A single role-tagged text message sent to the backend.

    Both wire protocols are normalized into an ordered list of these before
    the backend is invoked.

    Attributes:
        role: Who authored the message
        content: Plain text payload
    """

    role: Role
    content: str

    @classmethod
    def system(cls, content: str) -> "ChatMessage":
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "ChatMessage":
        return cls(role=Role.USER, content=content)

    @classmethod
    def assistant(cls, content: str) -> "ChatMessage":
        return cls(role=Role.ASSISTANT, content=content)

    def to_dict(self) -> dict[str, str]:
        """Serialize to the ``{"role", "content"}`` shape used for fingerprints."""
        return {"role": self.role.value, "content": self.content}
