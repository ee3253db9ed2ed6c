"""Pipeline orchestrator: fetch, resolve, transcode, deliver, clean up."""

from loguru import logger

from unigif.bus.events import MediaRequest, RequestState, SourceKind
from unigif.channels.base import DeliveryChannel
from unigif.media.errors import MediaError, TranscodeError
from unigif.media.fetcher import Fetcher
from unigif.media.pool import RequestStaging, StagingFile, TempPool
from unigif.media.resolver import LinkResolver, media_extension, rewrite_webp_selector
from unigif.media.transcoder import Transcoder, TranscodeSpec

MIN_INPUT_BYTES = 100

PROGRESS_NOTICES = {
    SourceKind.photo: "🎨 Processing...",
    SourceKind.video: "⚡️ Converting...",
    SourceKind.link: "🔗 Analyzing link...",
}

FAILURE_NOTICES = {
    SourceKind.photo: "❌ Error processing image.",
    SourceKind.video: "❌ Error processing video.",
    SourceKind.link: "⚠️ Could not process link.",
}

# kind -> (staging filename prefix, assumed raw suffix)
_STAGING_NAMES = {
    SourceKind.photo: ("p", ".jpg"),
    SourceKind.video: ("v", ".mp4"),
    SourceKind.link: ("link", ".gif"),
}


def failure_notice(request: MediaRequest) -> str:
    """User-facing text for a failed request. Never carries error detail."""
    return FAILURE_NOTICES[request.kind]


def require_min_size(raw: StagingFile, min_bytes: int = MIN_INPUT_BYTES) -> int:
    """Reject an acquired input too small to be media, before ffmpeg sees it."""
    size = raw.size()
    if size < min_bytes:
        raise TranscodeError("empty file", f"Acquired only {size} bytes")
    return size


class PipelineOrchestrator:
    """
    Runs one MediaRequest through the pipeline.

    Each request gets its own staging pair from the TempPool. Both files are
    released as soon as the request ends, whatever the outcome; delivery is
    awaited first, so the output is never deleted while it is being uploaded.
    """

    def __init__(
        self,
        pool: TempPool,
        channel: DeliveryChannel,
        fetcher: Fetcher | None = None,
        resolver: LinkResolver | None = None,
        transcoder: Transcoder | None = None,
        bot_username: str = "",
        min_input_bytes: int = MIN_INPUT_BYTES,
    ):
        self.pool = pool
        self.channel = channel
        self.fetcher = fetcher or Fetcher()
        self.resolver = resolver or LinkResolver()
        self.transcoder = transcoder or Transcoder()
        self.bot_username = bot_username
        self.min_input_bytes = min_input_bytes

    @property
    def caption(self) -> str:
        return f"Via {self.bot_username}" if self.bot_username else ""

    async def handle(self, request: MediaRequest) -> MediaRequest:
        """Process *request* to completion. Core errors never escape."""
        logger.info(f"[{request.request_id}] {request.kind.value} from chat {request.chat_id}")
        progress_id = await self._notify_progress(request)
        staging: RequestStaging | None = None

        try:
            request.advance(RequestState.acquiring)
            prefix, suffix = _STAGING_NAMES[request.kind]
            staging = self.pool.allocate(prefix, request.reference, suffix)

            if request.kind == SourceKind.link:
                request.advance(RequestState.resolving)
                url = await self._resolve_target(request.reference)
                ext = media_extension(url)
                staging = staging.with_raw_suffix(ext)
                spec = TranscodeSpec.for_extension(ext)
            else:
                url = await self.channel.get_file_link(request.reference)
                spec = (
                    TranscodeSpec.for_image()
                    if request.kind == SourceKind.photo
                    else TranscodeSpec.for_video()
                )

            await self.fetcher.fetch(url, staging.raw.path)

            require_min_size(staging.raw, self.min_input_bytes)

            request.advance(RequestState.transcoding)
            await self.transcoder.transcode(staging.raw.path, staging.output.path, spec)

            request.advance(RequestState.delivering)
            await self.channel.send_animation(
                request.chat_id, staging.output.path, caption=self.caption
            )
        except MediaError as e:
            logger.warning(
                f"[{request.request_id}] failed in {request.state.value}: "
                f"{type(e).__name__}: {e.short_message}"
            )
            if e.detail:
                logger.debug(f"[{request.request_id}] detail: {e.detail}")
            request.advance(RequestState.failed)
        except Exception as e:
            logger.exception(f"[{request.request_id}] unexpected error: {e}")
            request.advance(RequestState.failed)
        finally:
            if staging is not None:
                self.pool.release(staging.files)

        if request.state == RequestState.failed:
            await self._notify_failure(request, progress_id)
            return request

        request.advance(RequestState.cleaned)
        await self._tidy_messages(request, progress_id)
        logger.info(f"[{request.request_id}] delivered")
        return request

    async def _resolve_target(self, url: str) -> str:
        logger.debug(f"Received URL: {url}")
        target = rewrite_webp_selector(await self.resolver.resolve(url))
        logger.debug(f"Downloading: {target}")
        return target

    async def _notify_progress(self, request: MediaRequest) -> int | None:
        try:
            return await self.channel.send_text(request.chat_id, PROGRESS_NOTICES[request.kind])
        except MediaError as e:
            logger.warning(f"Could not send progress notice: {e}")
            return None

    async def _notify_failure(self, request: MediaRequest, progress_id: int | None) -> None:
        text = failure_notice(request)
        try:
            if progress_id is not None:
                await self.channel.edit_text(request.chat_id, progress_id, text)
            else:
                await self.channel.send_text(request.chat_id, text)
        except MediaError as e:
            logger.warning(f"Could not send failure notice: {e}")

    async def _tidy_messages(self, request: MediaRequest, progress_id: int | None) -> None:
        """Remove the progress message, and the user's link message."""
        targets = [progress_id]
        if request.kind == SourceKind.link:
            targets.append(request.message_id)
        for message_id in targets:
            if message_id is None:
                continue
            try:
                await self.channel.delete_message(request.chat_id, message_id)
            except MediaError as e:
                logger.debug(f"Could not delete message {message_id}: {e}")
