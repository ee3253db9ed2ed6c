"""Streamed HTTP downloads into staging files."""

import shutil
from pathlib import Path
from urllib.parse import urlsplit

import httpx
from loguru import logger

from unigif.media.errors import FetchError

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)
DEFAULT_MAX_BYTES = 50 * 1024 * 1024

# CDN host suffix -> Referer the CDN expects
_CDN_REFERERS = {
    "discordapp.com": "https://discord.com/",
    "discordapp.net": "https://discord.com/",
    "discord.com": "https://discord.com/",
    "tenor.com": "https://tenor.com/",
    "giphy.com": "https://giphy.com/",
}


def referer_for(url: str) -> str:
    """Pick a Referer header that the host behind *url* will accept."""
    parts = urlsplit(url)
    host = (parts.hostname or "").lower()
    for suffix, referer in _CDN_REFERERS.items():
        if host == suffix or host.endswith("." + suffix):
            return referer
    if parts.scheme and host:
        return f"{parts.scheme}://{parts.netloc}/"
    return ""


class Fetcher:
    """Downloads remote media straight to disk without buffering it in memory."""

    def __init__(
        self,
        timeout: float = 30.0,
        max_bytes: int | None = DEFAULT_MAX_BYTES,
        user_agent: str = BROWSER_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.max_bytes = max_bytes
        self.user_agent = user_agent
        self._transport = transport

    def headers_for(self, url: str) -> dict[str, str]:
        headers = {"User-Agent": self.user_agent}
        referer = referer_for(url)
        if referer:
            headers["Referer"] = referer
        return headers

    async def fetch(self, url: str, destination: str | Path) -> Path:
        """Download *url* into *destination*, which must not exist yet.

        Raises FetchError on any failure. A partially written destination is
        left in place for the caller to release.
        """
        path = Path(destination)
        logger.debug(f"Downloading {url} -> {path.name}")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                async with client.stream("GET", url, headers=self.headers_for(url)) as response:
                    response.raise_for_status()
                    written = 0
                    with open(path, "xb") as f:
                        async for chunk in response.aiter_bytes():
                            written += len(chunk)
                            if self.max_bytes is not None and written > self.max_bytes:
                                raise FetchError(
                                    "file too large",
                                    f"{url} exceeds {self.max_bytes} bytes",
                                )
                            f.write(chunk)
        except FetchError:
            raise
        except httpx.HTTPStatusError as e:
            detail = f"HTTP {e.response.status_code} for {url}"
            logger.debug(detail)
            raise FetchError("bad status", detail) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Download of {url} failed: {e!r}")
            raise FetchError("network error", f"{type(e).__name__}: {e}") from e
        except FileExistsError as e:
            raise FetchError("destination occupied", str(path)) from e
        except OSError as e:
            raise FetchError("write failed", str(e)) from e

        logger.debug(f"Downloaded {written} bytes into {path.name}")
        return path

    def copy_local(self, source: str | Path, destination: str | Path) -> Path:
        """Copy a local file into *destination*, which must not exist yet.

        Same failure contract as fetch().
        """
        src, path = Path(source), Path(destination)
        try:
            size = src.stat().st_size
            if self.max_bytes is not None and size > self.max_bytes:
                raise FetchError("file too large", f"{src} exceeds {self.max_bytes} bytes")
            with open(src, "rb") as fin, open(path, "xb") as fout:
                shutil.copyfileobj(fin, fout)
        except FetchError:
            raise
        except FileExistsError as e:
            raise FetchError("destination occupied", str(path)) from e
        except OSError as e:
            raise FetchError("copy failed", str(e)) from e

        logger.debug(f"Copied {size} bytes into {path.name}")
        return path
