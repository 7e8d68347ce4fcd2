import base64

import pytest

from streamhop.providers.errors import UnexpectedStatus

EMBED_BASE = "https://embed.example"
RELAY = "https://relay.example"
MANIFEST_URL = "https://cdn.example.com/movie/master.m3u8"

MASTER_PLAYLIST = """#EXTM3U
#EXT-X-STREAM-INF:BANDWIDTH=1280000,RESOLUTION=720x480
720p/index.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=640000,RESOLUTION=320x240
320p/index.m3u8
"""


def obfuscate_a(plaintext: str, filler: str = "x") -> str:
    """base64 → filler after every character → reversed (inverse of variant A)."""
    encoded = base64.b64encode(plaintext.encode()).decode()
    interleaved = "".join(ch + filler for ch in encoded)
    return interleaved[::-1]


def obfuscate_b(plaintext: str, key: str) -> str:
    """repeating-key XOR → two hex digits per byte → reversed (inverse of variant B)."""
    xored = bytes(ord(ch) ^ ord(key[i % len(key)]) for i, ch in enumerate(plaintext))
    return xored.hex()[::-1]


def embed_page(src: str = "//relay.example/rcp/abc123") -> str:
    return f"""<html><body>
<div id="the_frame"><iframe id="player_iframe" src="{src}" frameborder="0"></iframe></div>
</body></html>"""


def rcp_page(path: str = "/prorcp/def456") -> str:
    return f"""<html><head><script>
$('#pl_but').click(function() {{
    loadIframe();
}});
function loadIframe(data = 1) {{
    $("#the_frame").html("");
    $("<iframe>", {{
        id: 'player_iframe',
        src: '{path}',
        frameborder: 0
    }}).appendTo('#the_frame');
}}
</script></head><body><div id="the_frame"></div></body></html>"""


def prorcp_page(token: str, div_id: str = "xTyBxQyGTA", script: bool = True) -> str:
    script_tag = '<script src="/sV05kUlNvOdOxvtC/a1b2c3.js?_=1"></script>' if script else ""
    return f"""<html><head>{script_tag}</head><body>
<div id="player_parent"></div>
<div id="{div_id}" style="display:none;">
  {token}
</div>
</body></html>"""


class FakeFetcher:
    """Serves canned bodies by URL and records (url, referer) for every call."""

    def __init__(self, pages=None):
        self.pages = dict(pages or {})
        self.calls = []

    async def get(self, url, *, referer=None):
        self.calls.append((url, referer))
        page = self.pages.get(url, 404)
        if isinstance(page, BaseException):
            raise page
        if isinstance(page, int):
            raise UnexpectedStatus(url, page)
        if isinstance(page, str):
            return page.encode()
        return page

    async def get_text(self, url, *, referer=None):
        return (await self.get(url, referer=referer)).decode()

    async def close(self):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    @property
    def urls(self):
        return [url for url, _ in self.calls]


def happy_pages(token=None):
    token = token if token is not None else obfuscate_a(MANIFEST_URL)
    return {
        f"{EMBED_BASE}/embed/movie?imdb=tt0137523": embed_page(),
        f"{RELAY}/rcp/abc123": rcp_page(),
        f"{RELAY}/prorcp/def456": prorcp_page(token),
        f"{RELAY}/sV05kUlNvOdOxvtC/a1b2c3.js?_=1": b"var player = 1;",
        MANIFEST_URL: MASTER_PLAYLIST,
    }


@pytest.fixture
def fake_fetcher():
    return FakeFetcher(happy_pages())
