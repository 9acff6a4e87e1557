import json
import httpx
import pytest

from anisync.config import SyncConfig
from anisync.core.errors import AuthError, NetworkError, NotFoundError, TrackerError
from anisync.core.tracker import AniListTracker

LIST_RESPONSE = {"data": {"MediaListCollection": {"lists": [
    {"entries": [
        {"status": "CURRENT", "progress": 7, "media": {
            "id": 154587, "episodes": 28, "title": {"english": "Frieren: Beyond Journey's End", "romaji": "Sousou no Frieren"}}},
        {"status": "PLANNING", "progress": None, "media": {
            "id": 21, "episodes": None, "title": {"english": None, "romaji": "One Piece"}}},
    ]},
]}}}


def make_tracker(tmp_path, handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AniListTracker("secret-token", SyncConfig(storage_path=tmp_path), client=client), client


@pytest.mark.asyncio
async def test_update_progress_sends_mutation(tmp_path):
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200, json={"data": {"SaveMediaListEntry": {"id": 1, "progress": 5, "mediaId": 154587}}})

    tracker, client = make_tracker(tmp_path, handler)
    async with client:
        assert await tracker.update_progress(154587, 5) == 5

    request = requests[0]
    assert request.headers["Authorization"] == "Bearer secret-token"
    body = json.loads(request.content)
    assert "SaveMediaListEntry" in body["query"]
    assert body["variables"] == {"mediaId": 154587, "progress": 5}


@pytest.mark.asyncio
async def test_find_progress_reads_the_list(tmp_path):
    def handler(request):
        body = json.loads(request.content)
        if "Viewer" in body["query"]:
            return httpx.Response(200, json={"data": {"Viewer": {"id": 42, "name": "someone"}}})
        assert body["variables"] == {"userId": 42}
        return httpx.Response(200, json=LIST_RESPONSE)

    tracker, client = make_tracker(tmp_path, handler)
    async with client:
        remote = await tracker.find_progress(154587)
        entries = await tracker.get_anime_list()
        with pytest.raises(NotFoundError):
            await tracker.find_progress(999)

    assert remote.progress == 7
    assert remote.total_episodes == 28
    assert remote.title == "Frieren: Beyond Journey's End"
    assert entries[1].progress == 0
    assert entries[1].title == "One Piece"


@pytest.mark.asyncio
async def test_rejected_token_is_auth_error(tmp_path):
    tracker, client = make_tracker(tmp_path, lambda request: httpx.Response(401, json={"errors": [{"message": "Invalid token"}]}))
    async with client:
        with pytest.raises(AuthError):
            await tracker.update_progress(1, 1)


@pytest.mark.asyncio
async def test_graphql_errors_are_tracker_errors(tmp_path):
    tracker, client = make_tracker(tmp_path, lambda request: httpx.Response(400, json={"errors": [{"message": "Validation"}]}))
    async with client:
        with pytest.raises(TrackerError):
            await tracker.update_progress(1, 1)


@pytest.mark.asyncio
async def test_transport_failure_is_network_error(tmp_path):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    tracker, client = make_tracker(tmp_path, handler)
    async with client:
        with pytest.raises(NetworkError):
            await tracker.get_viewer()
