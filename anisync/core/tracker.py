from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..config import SyncConfig
from ..database.models import RemoteProgress
from ..utils.logger import get_logger
from .errors import AuthError, NetworkError, NotFoundError, TrackerError

logger = get_logger(__name__)

VIEWER_QUERY = """
    query {
        Viewer {
            id
            name
        }
    }
"""

ANIME_LIST_QUERY = """
    query ($userId: Int) {
        MediaListCollection (userId: $userId, type: ANIME) {
            lists {
                entries {
                    status
                    progress
                    media {
                        id
                        episodes
                        title {
                            english
                            romaji
                        }
                    }
                }
            }
        }
    }
"""

SAVE_PROGRESS_MUTATION = """
    mutation ($mediaId: Int, $progress: Int) {
        SaveMediaListEntry (mediaId: $mediaId, progress: $progress) {
            id
            progress
            mediaId
        }
    }
"""


class AniListTracker:
    """The two AniList calls playback needs: read the list, update progress."""

    def __init__(self, token: str, config: SyncConfig, client: Optional[httpx.AsyncClient] = None):
        self._token = token
        self._config = config
        self._client = client
        self._user_id: Optional[int] = None

    async def _request(self, query: str, variables: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "Authorization": f"Bearer {self._token}",
        }
        body = {"query": query, "variables": variables or {}}
        try:
            if self._client is not None:
                response = await self._client.post(
                    self._config.anilist_api_url, json=body, headers=headers,
                    timeout=self._config.request_timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._config.request_timeout) as client:
                    response = await client.post(self._config.anilist_api_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise NetworkError(f"AniList request failed: {e}") from e

        if response.status_code in (401, 403):
            raise AuthError(f"AniList rejected the token (HTTP {response.status_code})")

        try:
            data = response.json()
        except ValueError as e:
            raise NetworkError(f"AniList returned HTTP {response.status_code} with a non-JSON body") from e

        if not isinstance(data, dict):
            raise TrackerError("AniList response is not an object")
        if data.get("errors"):
            messages = "; ".join(str(err.get("message", err)) for err in data["errors"] if isinstance(err, dict))
            raise TrackerError(f"AniList error: {messages or data['errors']}")
        if response.status_code != 200:
            raise NetworkError(f"AniList returned HTTP {response.status_code}")
        return data.get("data") or {}

    async def get_viewer(self) -> Tuple[int, str]:
        data = await self._request(VIEWER_QUERY)
        viewer = data.get("Viewer")
        if not isinstance(viewer, dict) or "id" not in viewer:
            raise TrackerError("AniList did not return the current user")
        self._user_id = int(viewer["id"])
        return self._user_id, viewer.get("name", "")

    async def get_anime_list(self, user_id: Optional[int] = None) -> List[RemoteProgress]:
        if user_id is None:
            user_id = self._user_id if self._user_id is not None else (await self.get_viewer())[0]

        data = await self._request(ANIME_LIST_QUERY, {"userId": user_id})
        collection = data.get("MediaListCollection") or {}
        result = []
        for group in collection.get("lists") or []:
            for entry in group.get("entries") or []:
                media = entry.get("media") or {}
                if "id" not in media:
                    continue
                titles = media.get("title") or {}
                result.append(RemoteProgress(
                    show_id=int(media["id"]),
                    progress=entry.get("progress") or 0,
                    total_episodes=media.get("episodes") or 0,
                    title=titles.get("english") or titles.get("romaji") or "",
                    status=entry.get("status") or "",
                ))
        logger.debug(f"Fetched {len(result)} entries from AniList")
        return result

    async def find_progress(self, show_id: int) -> RemoteProgress:
        for entry in await self.get_anime_list():
            if entry.show_id == show_id:
                return entry
        raise NotFoundError(f"Show {show_id} is not on the AniList list")

    async def update_progress(self, show_id: int, progress: int) -> int:
        data = await self._request(SAVE_PROGRESS_MUTATION, {"mediaId": show_id, "progress": progress})
        saved = data.get("SaveMediaListEntry") or {}
        logger.info(f"AniList progress for {show_id} set to {saved.get('progress', progress)}")
        return saved.get("progress", progress)
