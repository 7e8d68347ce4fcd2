from fastapi.testclient import TestClient

from conftest import EMBED_BASE, MANIFEST_URL, RELAY, FakeFetcher, happy_pages
from streamhop.api.main import app, get_pipeline
from streamhop.providers.errors import TransportError
from streamhop.providers.pipeline import ResolutionPipeline

client = TestClient(app)


def _use_pages(pages):
    fetcher = FakeFetcher(pages)

    async def override():
        yield ResolutionPipeline(fetcher, embed_base=EMBED_BASE)

    app.dependency_overrides[get_pipeline] = override
    return fetcher


def teardown_function():
    app.dependency_overrides.clear()


def test_health():
    response = client.get("/health")
    assert response.status_code == 200


def test_movie_streams():
    """Check that the movie endpoint returns the playlist variants in order"""
    _use_pages(happy_pages())
    response = client.get("/streams/movie/tt0137523")
    assert response.status_code == 200
    variants = response.json()["variants"]
    assert [v["resolution"] for v in variants] == ["720x480", "320x240"]
    assert variants[1]["url"] == "https://cdn.example.com/movie/320p/index.m3u8"


def test_episode_streams():
    pages = happy_pages()
    pages[f"{EMBED_BASE}/embed/tv?imdb=tt0944947&season=1&episode=2"] = pages.pop(
        f"{EMBED_BASE}/embed/movie?imdb=tt0137523")
    _use_pages(pages)
    response = client.get("/streams/tv/tt0944947/1/2")
    assert response.status_code == 200
    assert len(response.json()["variants"]) == 2


def test_invalid_episode_is_400():
    fetcher = _use_pages(happy_pages())
    response = client.get("/streams/tv/tt0944947/0/2")
    assert response.status_code == 400
    assert response.json()["detail"]["error"] == "InvalidRequest"
    assert fetcher.calls == []


def test_shape_change_is_502():
    pages = happy_pages()
    pages[f"{RELAY}/prorcp/def456"] = "<html><body></body></html>"
    _use_pages(pages)
    response = client.get("/streams/movie/tt0137523")
    assert response.status_code == 502
    detail = response.json()["detail"]
    assert detail["error"] == "ExtractionFailed"
    assert detail["stage"] == "hidden-token"
    assert detail["shape_changed"] is True
    assert detail["retryable"] is False


def test_upstream_status_is_502():
    pages = happy_pages()
    pages[f"{RELAY}/rcp/abc123"] = 404
    _use_pages(pages)
    response = client.get("/streams/movie/tt0137523")
    assert response.status_code == 502
    assert response.json()["detail"]["retryable"] is True


def test_transport_error_is_504():
    pages = happy_pages()
    pages[MANIFEST_URL] = TransportError(MANIFEST_URL, TimeoutError())
    _use_pages(pages)
    response = client.get("/streams/movie/tt0137523")
    assert response.status_code == 504
    assert response.json()["detail"]["stage"] == "fetch-manifest"


def test_empty_playlist_is_404():
    pages = happy_pages()
    pages[MANIFEST_URL] = "#EXTM3U\n"
    _use_pages(pages)
    response = client.get("/streams/movie/tt0137523")
    assert response.status_code == 404
