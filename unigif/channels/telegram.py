"""Telegram channel implementation using python-telegram-bot."""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable

from loguru import logger
from telegram import LinkPreviewOptions, Update
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from unigif.bus.events import MediaRequest, SourceKind
from unigif.channels.base import DeliveryChannel
from unigif.channels.texts import welcome_message
from unigif.config.schema import TelegramConfig
from unigif.media.errors import DeliveryError, FetchError

RequestHandler = Callable[[MediaRequest], Awaitable[object]]


def is_link(text: str | None) -> bool:
    """Link requests are text messages starting with http."""
    return bool(text) and text.strip().startswith("http")


class TelegramChannel(DeliveryChannel):
    """
    Telegram channel using long polling.

    Turns photos, videos and links into MediaRequests and hands them to the
    request handler; updates are processed concurrently.
    """

    name = "telegram"

    def __init__(self, config: TelegramConfig, on_request: RequestHandler | None = None):
        self.config = config
        self.on_request = on_request
        self._app: Application | None = None
        self._running = False

    def set_request_handler(self, on_request: RequestHandler) -> None:
        self.on_request = on_request

    def build_application(self) -> Application:
        """Build the python-telegram-bot application with all handlers."""
        builder = Application.builder().token(self.config.token).concurrent_updates(True)
        if self.config.proxy:
            builder = builder.proxy(self.config.proxy).get_updates_proxy(self.config.proxy)
        app = builder.build()

        app.add_handler(CommandHandler("start", self._on_start))
        app.add_handler(MessageHandler(filters.PHOTO, self._on_photo))
        app.add_handler(MessageHandler(filters.VIDEO, self._on_video))
        app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self._on_text))
        return app

    async def start(self) -> None:
        """Start the Telegram bot with long polling."""
        if not self.config.token:
            logger.error("Telegram bot token not configured")
            return

        self._running = True
        self._app = self.build_application()

        logger.info("Starting Telegram bot (polling mode)...")
        await self._app.initialize()
        await self._app.start()

        bot_info = await self._app.bot.get_me()
        logger.info(f"Telegram bot @{bot_info.username} connected")

        await self._app.updater.start_polling(
            allowed_updates=["message"],
            drop_pending_updates=True,
        )

        while self._running:
            await asyncio.sleep(1)

    async def stop(self) -> None:
        """Stop the Telegram bot."""
        self._running = False

        if self._app:
            logger.info("Stopping Telegram bot...")
            await self._app.updater.stop()
            await self._app.stop()
            await self._app.shutdown()
            self._app = None

    # --- DeliveryChannel ---

    def _bot(self):
        if not self._app:
            raise DeliveryError("bot not running")
        return self._app.bot

    async def get_file_link(self, file_id: str) -> str:
        try:
            file = await self._bot().get_file(file_id)
        except TelegramError as e:
            raise FetchError("file link unavailable", str(e)) from e
        if not file.file_path:
            raise FetchError("file link unavailable", f"No file path for {file_id}")
        return file.file_path

    async def send_text(self, chat_id: str, text: str, html: bool = False) -> int | None:
        try:
            message = await self._bot().send_message(
                chat_id=int(chat_id),
                text=text,
                parse_mode="HTML" if html else None,
                link_preview_options=LinkPreviewOptions(is_disabled=True) if html else None,
            )
        except TelegramError as e:
            raise DeliveryError("send failed", str(e)) from e
        return message.message_id

    async def edit_text(self, chat_id: str, message_id: int, text: str) -> None:
        try:
            await self._bot().edit_message_text(
                text=text, chat_id=int(chat_id), message_id=message_id
            )
        except TelegramError as e:
            raise DeliveryError("edit failed", str(e)) from e

    async def delete_message(self, chat_id: str, message_id: int) -> None:
        try:
            await self._bot().delete_message(chat_id=int(chat_id), message_id=message_id)
        except TelegramError as e:
            raise DeliveryError("delete failed", str(e)) from e

    async def send_animation(self, chat_id: str, path: Path, caption: str = "") -> None:
        try:
            with open(path, "rb") as f:
                await self._bot().send_animation(
                    chat_id=int(chat_id),
                    animation=f,
                    caption=caption or None,
                )
        except TelegramError as e:
            raise DeliveryError("animation upload failed", str(e)) from e
        except OSError as e:
            raise DeliveryError("output unreadable", str(e)) from e

    # --- Handlers ---

    async def _on_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Handle /start command."""
        if not update.message:
            return
        await update.message.reply_text(
            welcome_message(self.config.source_link),
            parse_mode="HTML",
            link_preview_options=LinkPreviewOptions(is_disabled=True),
        )

    async def _on_photo(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        if not message or not message.photo:
            return
        photo = message.photo[-1]  # Largest resolution
        await self._dispatch(MediaRequest(
            kind=SourceKind.photo,
            reference=photo.file_id,
            chat_id=str(message.chat_id),
            message_id=message.message_id,
        ))

    async def _on_video(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        if not message or not message.video:
            return
        await self._dispatch(MediaRequest(
            kind=SourceKind.video,
            reference=message.video.file_id,
            chat_id=str(message.chat_id),
            message_id=message.message_id,
        ))

    async def _on_text(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        if not message or not is_link(message.text):
            return
        await self._dispatch(MediaRequest(
            kind=SourceKind.link,
            reference=message.text.strip(),
            chat_id=str(message.chat_id),
            message_id=message.message_id,
        ))

    async def _dispatch(self, request: MediaRequest) -> None:
        if not self.on_request:
            logger.warning(f"No request handler, dropping {request.kind.value} request")
            return
        await self.on_request(request)
