"""CLI commands for unigif."""

import asyncio
import shutil
from pathlib import Path

import typer
from rich.console import Console

from unigif import __logo__, __version__

app = typer.Typer(
    name="unigif",
    help=f"{__logo__} unigif - Telegram GIF converter bot",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} unigif v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """unigif - Telegram GIF converter bot."""
    pass


def _build_media_stack(config):
    """Create pool, fetcher, resolver and transcoder from config."""
    from unigif.media.fetcher import Fetcher
    from unigif.media.pool import TempPool
    from unigif.media.resolver import LinkResolver
    from unigif.media.transcoder import Transcoder

    pool = TempPool(config.temp_path)
    fetcher = Fetcher(
        timeout=config.fetch.timeout_s,
        max_bytes=config.fetch.max_bytes,
        user_agent=config.fetch.user_agent,
    )
    resolver = LinkResolver(
        timeout=config.resolver.timeout_s,
        fallback_to_original=config.resolver.fallback_to_original,
        max_page_bytes=config.resolver.max_page_bytes,
        user_agent=config.fetch.user_agent,
    )
    transcoder = Transcoder(
        ffmpeg_path=config.transcode.ffmpeg_path,
        timeout_s=config.transcode.timeout_s,
        max_concurrent=config.transcode.max_concurrent,
    )
    return pool, fetcher, resolver, transcoder


# ============================================================================
# Bot
# ============================================================================


@app.command()
def run(
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """Start the Telegram bot and the temp janitor."""
    from loguru import logger

    from unigif.channels.telegram import TelegramChannel
    from unigif.config.loader import load_config, setup_logging
    from unigif.media.janitor import StorageJanitor
    from unigif.pipeline.orchestrator import PipelineOrchestrator

    config = load_config()
    setup_logging(config.debug_log or verbose)

    if not config.telegram.token:
        console.print("[red]Error: Telegram token missing (set UNIGIF_TELEGRAM__TOKEN or TELEGRAM_TOKEN)[/red]")
        raise typer.Exit(1)

    pool, fetcher, resolver, transcoder = _build_media_stack(config)
    channel = TelegramChannel(config.telegram)
    orchestrator = PipelineOrchestrator(
        pool=pool,
        channel=channel,
        fetcher=fetcher,
        resolver=resolver,
        transcoder=transcoder,
        bot_username=config.telegram.bot_username,
        min_input_bytes=config.storage.min_input_bytes,
    )
    channel.set_request_handler(orchestrator.handle)
    janitor = StorageJanitor(
        pool,
        interval_m=config.storage.sweep_interval_m,
        max_age_m=config.storage.max_age_m,
    )

    console.print(f"{__logo__} Starting unigif (temp: {pool.directory})")
    if config.debug_log or verbose:
        logger.debug("Bot started in debug mode.")

    async def _run():
        await janitor.start()
        try:
            await channel.start()
        finally:
            janitor.stop()
            await channel.stop()

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        console.print("\nGoodbye!")


# ============================================================================
# One-off tools
# ============================================================================


@app.command()
def convert(
    source: str = typer.Argument(..., help="URL or local file to convert"),
    out: Path = typer.Option(None, "--out", "-o", help="Output .mp4 path"),
    image: bool = typer.Option(None, "--image/--video", help="Force still-image or video handling"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """Convert one URL or local file into a Telegram GIF (.mp4)."""
    from unigif.config.loader import load_config, setup_logging
    from unigif.media.errors import MediaError
    from unigif.media.resolver import media_extension, rewrite_webp_selector
    from unigif.media.transcoder import TranscodeSpec
    from unigif.pipeline.orchestrator import require_min_size

    config = load_config()
    setup_logging(config.debug_log or verbose)
    pool, fetcher, resolver, transcoder = _build_media_stack(config)

    async def _convert() -> Path:
        local = Path(source).expanduser()
        if local.is_file():
            target = None
            ext = local.suffix.lower() or ".gif"
            staging = pool.allocate("cli", local.stem, ext)
        else:
            target = rewrite_webp_selector(await resolver.resolve(source))
            ext = media_extension(target)
            staging = pool.allocate("cli", "", ext)

        if image is None:
            spec = TranscodeSpec.for_extension(ext)
        else:
            spec = TranscodeSpec.for_image() if image else TranscodeSpec.for_video()

        destination = out or Path.cwd() / f"{staging.token}.mp4"
        try:
            if target is None:
                fetcher.copy_local(local, staging.raw.path)
            else:
                await fetcher.fetch(target, staging.raw.path)
            require_min_size(staging.raw, config.storage.min_input_bytes)

            await transcoder.transcode(staging.raw.path, staging.output.path, spec)
            shutil.copyfile(staging.output.path, destination)
        finally:
            pool.release(staging.files)
        return destination

    try:
        result = asyncio.run(_convert())
    except MediaError as e:
        console.print(f"[red]Error: {e.short_message}[/red]")
        if e.detail:
            console.print(f"[dim]{e.detail}[/dim]")
        raise typer.Exit(1)
    except OSError as e:
        console.print(f"[red]Error: could not write output ({e})[/red]")
        raise typer.Exit(1)

    console.print(f"[green]✓[/green] Saved {result}")


@app.command()
def cleanup(
    max_age: float = typer.Option(None, "--max-age", help="Age in minutes (default: from config)"),
):
    """Run one janitor sweep over the temp pool."""
    from unigif.config.loader import load_config
    from unigif.media.janitor import StorageJanitor
    from unigif.media.pool import TempPool

    config = load_config()
    pool = TempPool(config.temp_path)
    janitor = StorageJanitor(
        pool,
        interval_m=config.storage.sweep_interval_m,
        max_age_m=config.storage.max_age_m if max_age is None else max_age,
    )
    removed = janitor.sweep()
    console.print(f"Removed {removed} stale file(s) from {pool.directory}")


if __name__ == "__main__":
    app()
