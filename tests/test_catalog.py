import json
import httpx
import pytest

from anisync.config import SyncConfig
from anisync.core.catalog import CatalogClient, EpisodeSourcesResponse, find_show_id
from anisync.core.errors import DecodeError, NetworkError


def make_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_search_shows_labels_results(tmp_path):
    def handler(request):
        variables = json.loads(request.url.params["variables"])
        assert variables["search"]["query"] == "Frieren"
        return httpx.Response(200, json={"data": {"shows": {"edges": [
            {"_id": "p1", "name": "Frieren", "availableEpisodes": {"sub": 28, "dub": 28}},
            {"_id": "p2", "name": "Frieren Specials", "availableEpisodes": {"sub": 2}},
            {"name": "missing id"},
        ]}}})

    async with make_client(handler) as client:
        catalog = CatalogClient(SyncConfig(storage_path=tmp_path), client=client)
        results = await catalog.search_shows("Frieren", "sub")

    assert results == {"p1": "Frieren (28 episodes)", "p2": "Frieren Specials (2 episodes)"}
    assert find_show_id(results, "Frieren", 28) == "p1"
    assert find_show_id(results, "Frieren", 12) is None


@pytest.mark.asyncio
async def test_episodes_list_sorted_numerically(tmp_path):
    def handler(request):
        return httpx.Response(200, json={"data": {"show": {"_id": "p1", "availableEpisodesDetail": {
            "sub": ["10", "2", "1", "1.5"], "dub": ["1"],
        }}}})

    async with make_client(handler) as client:
        catalog = CatalogClient(SyncConfig(storage_path=tmp_path), client=client)
        assert await catalog.episodes_list("p1", "sub") == ["1", "1.5", "2", "10"]
        assert await catalog.episodes_list("p1", "dub") == ["1"]


@pytest.mark.asyncio
async def test_transport_error_is_network_error(tmp_path):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        catalog = CatalogClient(SyncConfig(storage_path=tmp_path), client=client)
        with pytest.raises(NetworkError):
            await catalog.query_episode_sources("p1", 1, "sub")


def test_sources_response_rejects_bad_shape():
    with pytest.raises(DecodeError):
        EpisodeSourcesResponse.from_json(["not", "an", "object"])
    with pytest.raises(DecodeError):
        EpisodeSourcesResponse.from_json({"data": {"episode": {"sourceUrls": "nope"}}})


def test_sources_response_skips_entries_without_url():
    response = EpisodeSourcesResponse.from_json({"data": {"episode": {"sourceUrls": [
        {"sourceUrl": "--175a"}, {"sourceName": "Yt"}, "junk",
    ]}}})
    assert response.source_urls == ["--175a"]
