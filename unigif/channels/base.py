"""Delivery interface the pipeline uses to talk back to a chat."""

from abc import ABC, abstractmethod
from pathlib import Path


class DeliveryChannel(ABC):
    """Capabilities the pipeline needs from a chat transport.

    Implementations raise DeliveryError when a send fails.
    """

    name: str = "base"

    @abstractmethod
    async def get_file_link(self, file_id: str) -> str:
        """Return a downloadable URL for an inbound file reference."""

    @abstractmethod
    async def send_text(self, chat_id: str, text: str, html: bool = False) -> int | None:
        """Send a text message. Returns its message id."""

    @abstractmethod
    async def edit_text(self, chat_id: str, message_id: int, text: str) -> None:
        """Replace the text of a message sent earlier."""

    @abstractmethod
    async def delete_message(self, chat_id: str, message_id: int) -> None:
        """Delete a message."""

    @abstractmethod
    async def send_animation(self, chat_id: str, path: Path, caption: str = "") -> None:
        """Upload an animation file. Returns once the file has been read."""
