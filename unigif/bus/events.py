"""Event types for inbound media requests."""

import uuid
from dataclasses import dataclass, field
from enum import Enum


class SourceKind(str, Enum):
    photo = "photo"
    video = "video"
    link = "link"


class RequestState(str, Enum):
    received = "received"
    acquiring = "acquiring"
    resolving = "resolving"
    transcoding = "transcoding"
    delivering = "delivering"
    cleaned = "cleaned"
    failed = "failed"


TERMINAL_STATES = frozenset({RequestState.cleaned, RequestState.failed})


@dataclass
class MediaRequest:
    """One inbound photo, video or link. Lives only as long as its pipeline run."""

    kind: SourceKind
    reference: str  # Telegram file_id, or the URL for links
    chat_id: str
    message_id: int | None = None  # The user's message
    request_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    state: RequestState = RequestState.received
    history: list[RequestState] = field(default_factory=lambda: [RequestState.received])

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def advance(self, state: RequestState) -> None:
        """Move to *state*. Terminal requests never move again."""
        if self.is_terminal:
            raise RuntimeError(f"Request {self.request_id} already {self.state.value}")
        self.state = state
        self.history.append(state)
