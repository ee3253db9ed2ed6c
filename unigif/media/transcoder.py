"""ffmpeg wrapper that turns any image or video into a Telegram GIF (silent looping MP4)."""

import asyncio
from dataclasses import dataclass
from pathlib import Path

from loguru import logger

from unigif.media.errors import TranscodeError, TranscodeTimeout

IMAGE_DURATION_S = 3
VIDEO_DURATION_S = 12
STATIC_IMAGE_EXTENSIONS = frozenset({".jpg", ".png", ".jpeg", ".webp"})
DEFAULT_TIMEOUT_S = 120.0
DEFAULT_MAX_CONCURRENT = 2
_STDERR_TAIL = 1500


@dataclass(frozen=True)
class TranscodeSpec:
    """How one input is turned into an animation."""

    is_static_image: bool
    duration_cap: int
    video_codec: str = "libx264"
    pixel_format: str = "yuv420p"
    preset: str = "ultrafast"
    crf: int = 20
    min_width: int = 640
    movflags: str = "+faststart"
    container: str = "mp4"

    @classmethod
    def for_image(cls) -> "TranscodeSpec":
        return cls(is_static_image=True, duration_cap=IMAGE_DURATION_S)

    @classmethod
    def for_video(cls) -> "TranscodeSpec":
        return cls(is_static_image=False, duration_cap=VIDEO_DURATION_S)

    @classmethod
    def for_extension(cls, ext: str) -> "TranscodeSpec":
        """Classify by file extension only; a .gif counts as video."""
        if ext.lower() in STATIC_IMAGE_EXTENSIONS:
            return cls.for_image()
        return cls.for_video()

    @property
    def scale_filter(self) -> str:
        # Upscale narrow input to min_width, keep wider input, even height
        w = self.min_width
        return f"scale='if(lt(iw,{w}),{w},iw)':-2:flags=lanczos"

    def input_args(self) -> list[str]:
        if self.is_static_image:
            return ["-f", "image2", "-loop", "1"]
        return []

    def output_args(self) -> list[str]:
        return [
            "-t", str(self.duration_cap),
            "-c:v", self.video_codec,
            "-an",
            "-preset", self.preset,
            "-pix_fmt", self.pixel_format,
            "-movflags", self.movflags,
            "-vf", self.scale_filter,
            "-crf", str(self.crf),
            "-f", self.container,
        ]


def build_command(
    input_path: str | Path,
    output_path: str | Path,
    spec: TranscodeSpec,
    ffmpeg_path: str = "ffmpeg",
) -> list[str]:
    """Full ffmpeg argv for one conversion."""
    return [
        ffmpeg_path, "-hide_banner", "-y",
        *spec.input_args(),
        "-i", str(input_path),
        *spec.output_args(),
        str(output_path),
    ]


async def _kill(process: asyncio.subprocess.Process) -> None:
    try:
        process.kill()
    except ProcessLookupError:
        pass  # already exited
    await process.wait()


class Transcoder:
    """Runs ffmpeg as a subprocess with a wall-clock limit and a concurrency cap."""

    def __init__(
        self,
        ffmpeg_path: str = "ffmpeg",
        timeout_s: float = DEFAULT_TIMEOUT_S,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
    ):
        self.ffmpeg_path = ffmpeg_path
        self.timeout_s = timeout_s
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def transcode(
        self,
        input_path: str | Path,
        output_path: str | Path,
        spec: TranscodeSpec,
    ) -> Path:
        """Convert *input_path* into *output_path*. Raises TranscodeError."""
        output = Path(output_path)
        cmd = build_command(input_path, output, spec, self.ffmpeg_path)

        async with self._semaphore:
            logger.debug(f"FFmpeg command: {' '.join(cmd)}")
            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.PIPE,
                )
            except FileNotFoundError as e:
                raise TranscodeError("ffmpeg not found", str(e)) from e

            try:
                _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout_s)
            except asyncio.TimeoutError:
                await _kill(process)
                raise TranscodeTimeout(
                    "ffmpeg timed out",
                    f"Killed after {self.timeout_s:.0f}s: {input_path}",
                )
            except asyncio.CancelledError:
                # Staging may already be released; ffmpeg must not outlive the request
                await _kill(process)
                raise

        if process.returncode != 0:
            diagnostic = stderr.decode("utf-8", errors="replace").strip()[-_STDERR_TAIL:]
            logger.error(f"FFmpeg error (exit {process.returncode}): {diagnostic}")
            raise TranscodeError("ffmpeg failed", diagnostic)

        if not output.is_file():
            raise TranscodeError("no output", f"ffmpeg produced no file at {output}")

        logger.debug(f"FFmpeg finished: {output.name}")
        return output
