"""Link resolution: find the direct media URL behind an arbitrary link."""

from pathlib import PurePosixPath
from urllib.parse import unquote, urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup
from loguru import logger

from unigif.media.errors import ResolveError
from unigif.media.fetcher import BROWSER_USER_AGENT

DIRECT_MEDIA_EXTENSIONS = frozenset({"gif", "mp4", "webm", "webp", "png", "jpg", "jpeg"})
DEFAULT_EXTENSION = ".gif"
# Metadata sits in <head>; page bytes past this are not read
DEFAULT_MAX_PAGE_BYTES = 2 * 1024 * 1024


def media_extension(url: str, default: str = DEFAULT_EXTENSION) -> str:
    """Extension of the URL path, lower-cased with its dot.

    Query string and fragment never contribute.
    """
    suffix = PurePosixPath(unquote(urlsplit(url).path)).suffix.lower()
    return suffix or default


def is_direct_media(url: str) -> bool:
    """True when the URL path ends in a known media extension."""
    return media_extension(url, default="").lstrip(".") in DIRECT_MEDIA_EXTENSIONS


def rewrite_webp_selector(url: str) -> str:
    """Ask webp-serving CDNs for the GIF rendition instead."""
    return url.replace("format=webp", "format=gif", 1)


def extract_media_url(html: str, base_url: str) -> str | None:
    """Pick the best media candidate from a page's metadata.

    Priority: og:video, og:image, then the first meta tag pointing at a .gif.
    """
    soup = BeautifulSoup(html, "html.parser")

    for prop in ("og:video", "og:image"):
        tag = soup.find("meta", attrs={"property": prop})
        content = tag.get("content") if tag else None
        if content and content.strip():
            return urljoin(base_url, content.strip())

    for tag in soup.find_all("meta"):
        content = tag.get("content")
        if content and ".gif" in content:
            return urljoin(base_url, content.strip())

    return None


class LinkResolver:
    """Turns a user-supplied link into a downloadable media URL."""

    def __init__(
        self,
        timeout: float = 15.0,
        fallback_to_original: bool = False,
        user_agent: str = BROWSER_USER_AGENT,
        max_page_bytes: int = DEFAULT_MAX_PAGE_BYTES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.fallback_to_original = fallback_to_original
        self.user_agent = user_agent
        self.max_page_bytes = max_page_bytes
        self._transport = transport

    async def resolve(self, url: str) -> str:
        """Return the direct media URL for *url*. Raises ResolveError."""
        if is_direct_media(url):
            logger.debug(f"Direct media link: {url}")
            return url

        try:
            html = await self._fetch_page(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            if self.fallback_to_original:
                logger.debug(f"Page fetch failed ({e!r}), using link as-is: {url}")
                return url
            raise ResolveError("page fetch failed", f"{url}: {type(e).__name__}: {e}") from e

        target = extract_media_url(html, url) if html else None
        if not target:
            raise ResolveError("no media found", f"No media metadata on {url}")

        logger.debug(f"Resolved {url} -> {target}")
        return target

    async def _fetch_page(self, url: str) -> str:
        """Read the start of an HTML page; anything that is not HTML yields ""."""
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            async with client.stream("GET", url, headers={"User-Agent": self.user_agent}) as response:
                response.raise_for_status()

                content_type = response.headers.get("content-type", "")
                if content_type and "html" not in content_type.lower():
                    logger.debug(f"Not a page ({content_type}): {url}")
                    return ""

                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) >= self.max_page_bytes:
                        logger.debug(f"Page truncated at {self.max_page_bytes} bytes: {url}")
                        break

                raw = bytes(body[:self.max_page_bytes])
                try:
                    return raw.decode(response.charset_encoding or "utf-8", errors="replace")
                except LookupError:
                    return raw.decode("utf-8", errors="replace")
