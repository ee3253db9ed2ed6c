"""Tests for link resolution."""

import httpx
import pytest

from unigif.media.errors import ResolveError
from unigif.media.resolver import (
    LinkResolver,
    extract_media_url,
    is_direct_media,
    media_extension,
    rewrite_webp_selector,
)


def _page(*metas: str) -> str:
    return f"<html><head>{''.join(metas)}</head><body></body></html>"


def _resolver(handler, **kwargs) -> LinkResolver:
    return LinkResolver(transport=httpx.MockTransport(handler), **kwargs)


def _no_network(request):
    raise AssertionError(f"unexpected request to {request.url}")


class TestDirectMedia:
    @pytest.mark.parametrize("url", [
        "https://example.com/a.gif",
        "https://example.com/a.MP4",
        "https://example.com/clip.webm?token=abc",
        "https://cdn.example.com/x/y.JPeG?width=100&format=webp",
        "https://example.com/a.png#frag",
    ])
    def test_matches(self, url):
        assert is_direct_media(url)

    @pytest.mark.parametrize("url", [
        "https://tenor.com/view/cat-dance-123",
        "https://example.com/a.gif.html",
        "https://example.com/page?file=a.gif",
        "https://example.com/",
    ])
    def test_rejects(self, url):
        assert not is_direct_media(url)

    @pytest.mark.asyncio
    async def test_fast_path_returns_unchanged_without_fetch(self):
        url = "https://EXAMPLE.com/Some/Path/Clip.MP4?sig=1&format=webp"
        assert await _resolver(_no_network).resolve(url) == url


class TestExtension:
    def test_ignores_query(self):
        assert media_extension("https://cdn.example.com/x.png?format=webp") == ".png"

    def test_lowercases(self):
        assert media_extension("https://example.com/A.JPG") == ".jpg"

    def test_default(self):
        assert media_extension("https://example.com/view/123") == ".gif"


class TestWebpRewrite:
    def test_rewrites_selector_only(self):
        url = "https://cdn.example.com/x.png?width=480&format=webp&quality=lossless"
        assert rewrite_webp_selector(url) == (
            "https://cdn.example.com/x.png?width=480&format=gif&quality=lossless"
        )

    def test_untouched_without_selector(self):
        url = "https://cdn.example.com/x.webp?size=2"
        assert rewrite_webp_selector(url) == url


class TestExtract:
    def test_og_video_beats_og_image(self):
        html = _page(
            '<meta property="og:image" content="https://cdn.example.com/still.png">',
            '<meta property="og:video" content="https://cdn.example.com/clip.mp4">',
        )
        assert extract_media_url(html, "https://example.com/p") == "https://cdn.example.com/clip.mp4"

    def test_og_image(self):
        html = _page('<meta property="og:image" content="https://cdn.example.com/still.png">')
        assert extract_media_url(html, "https://example.com/p") == "https://cdn.example.com/still.png"

    def test_first_gif_meta(self):
        html = _page(
            '<meta name="description" content="funny cat">',
            '<meta name="twitter:image" content="https://cdn.example.com/first.gif">',
            '<meta name="other" content="https://cdn.example.com/second.gif">',
        )
        assert extract_media_url(html, "https://example.com/p") == "https://cdn.example.com/first.gif"

    def test_relative_candidate_joined(self):
        html = _page('<meta property="og:image" content="/media/x.png">')
        assert extract_media_url(html, "https://example.com/view/1") == "https://example.com/media/x.png"

    def test_empty_og_content_skipped(self):
        html = _page(
            '<meta property="og:video" content="  ">',
            '<meta property="og:image" content="https://cdn.example.com/a.jpg">',
        )
        assert extract_media_url(html, "https://example.com/") == "https://cdn.example.com/a.jpg"

    def test_nothing_found(self):
        assert extract_media_url(_page('<meta name="x" content="y">'), "https://example.com/") is None


class TestResolve:
    @pytest.mark.asyncio
    async def test_scrapes_page(self):
        seen = {}

        def handler(request):
            seen["ua"] = request.headers["user-agent"]
            return httpx.Response(200, html=_page(
                '<meta property="og:image" content="https://cdn.example.com/x.png?format=webp">'
            ))

        target = await _resolver(handler).resolve("https://example.com/page")

        assert target == "https://cdn.example.com/x.png?format=webp"
        assert "Mozilla" in seen["ua"]

    @pytest.mark.asyncio
    async def test_no_media_found(self):
        def handler(request):
            return httpx.Response(200, html=_page())

        with pytest.raises(ResolveError) as exc:
            await _resolver(handler).resolve("https://example.com/page")
        assert exc.value.short_message == "no media found"

    @pytest.mark.asyncio
    async def test_page_fetch_failure_is_resolve_error(self):
        def handler(request):
            return httpx.Response(500)

        with pytest.raises(ResolveError) as exc:
            await _resolver(handler).resolve("https://example.com/page")
        assert exc.value.short_message == "page fetch failed"

    @pytest.mark.asyncio
    async def test_page_fetch_failure_fallback(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        resolver = _resolver(handler, fallback_to_original=True)
        assert await resolver.resolve("https://example.com/page") == "https://example.com/page"


class _EndlessBody(httpx.AsyncByteStream):
    """Response body that never ends; counts the bytes handed out."""

    def __init__(self, head: bytes = b"", chunk_size: int = 64 * 1024):
        self.head = head
        self.chunk = b"\x00" * chunk_size
        self.sent = 0

    async def __aiter__(self):
        if self.head:
            self.sent += len(self.head)
            yield self.head
        while True:
            self.sent += len(self.chunk)
            yield self.chunk


class TestPageLimits:
    @pytest.mark.asyncio
    async def test_non_html_body_not_read(self):
        body = _EndlessBody()

        def handler(request):
            return httpx.Response(200, headers={"content-type": "video/mp4"}, stream=body)

        with pytest.raises(ResolveError) as exc:
            await _resolver(handler).resolve("https://example.com/watch/123")

        assert exc.value.short_message == "no media found"
        assert body.sent <= 64 * 1024

    @pytest.mark.asyncio
    async def test_html_read_stops_at_cap(self):
        head = _page('<meta property="og:image" content="https://cdn.example.com/a.png">').encode()
        body = _EndlessBody(head=head)

        def handler(request):
            return httpx.Response(
                200, headers={"content-type": "text/html; charset=utf-8"}, stream=body
            )

        resolver = _resolver(handler, max_page_bytes=256 * 1024)
        target = await resolver.resolve("https://example.com/watch/123")

        assert target == "https://cdn.example.com/a.png"
        assert body.sent <= 256 * 1024 + 64 * 1024 + len(head)
