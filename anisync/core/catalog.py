import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..config import SyncConfig
from ..utils.logger import get_logger
from .errors import DecodeError, NetworkError

logger = get_logger(__name__)

EPISODE_QUERY = (
    "query($showId:String!,$translationType:VaildTranslationTypeEnumType!,$episodeString:String!)"
    "{episode(showId:$showId,translationType:$translationType,episodeString:$episodeString)"
    "{episodeString sourceUrls}}"
)

SEARCH_QUERY = (
    "query($search:SearchInput,$limit:Int,$page:Int,$translationType:VaildTranslationTypeEnumType,"
    "$countryOrigin:VaildCountryOriginEnumType)"
    "{shows(search:$search,limit:$limit,page:$page,translationType:$translationType,"
    "countryOrigin:$countryOrigin){edges{_id name availableEpisodes __typename}}}"
)

EPISODES_LIST_QUERY = "query($showId:String!){show(_id:$showId){_id availableEpisodesDetail}}"


@dataclass
class EpisodeSourcesResponse:
    """{data:{episode:{sourceUrls:[{sourceUrl}]}}}"""
    source_urls: List[str]

    @classmethod
    def from_json(cls, payload: Any) -> "EpisodeSourcesResponse":
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            raise DecodeError("Catalog response has no 'data' object")

        episode = payload["data"].get("episode")
        if episode is None:
            return cls(source_urls=[])
        if not isinstance(episode, dict):
            raise DecodeError("Catalog 'episode' is not an object")

        sources = episode.get("sourceUrls") or []
        if not isinstance(sources, list):
            raise DecodeError("Catalog 'sourceUrls' is not a list")

        urls = []
        for source in sources:
            if isinstance(source, dict) and isinstance(source.get("sourceUrl"), str):
                urls.append(source["sourceUrl"])
        return cls(source_urls=urls)


class CatalogClient:
    def __init__(self, config: SyncConfig, client: Optional[httpx.AsyncClient] = None):
        self._config = config
        self._client = client

    async def _query(self, query: str, variables: Dict[str, Any]) -> Any:
        params = {"query": query, "variables": json.dumps(variables)}
        try:
            if self._client is not None:
                response = await self._client.get(
                    self._config.catalog_api_url, params=params,
                    headers=self._config.headers, timeout=self._config.request_timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._config.request_timeout) as client:
                    response = await client.get(
                        self._config.catalog_api_url, params=params, headers=self._config.headers
                    )
        except httpx.HTTPError as e:
            raise NetworkError(f"Catalog request failed: {e}") from e

        if response.status_code != 200:
            raise NetworkError(f"Catalog returned HTTP {response.status_code}")

        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Error parsing catalog JSON: {e}")
            raise DecodeError(f"Catalog response is not JSON: {e}") from e

    async def query_episode_sources(self, show_id: str, episode_number: int, mode: str) -> List[str]:
        """Return the raw (still obfuscated) source tokens for one episode."""
        variables = {
            "showId": show_id,
            "translationType": mode,
            "episodeString": f"{episode_number}",
        }
        logger.debug(f"Querying episode sources: {show_id} ep {episode_number} ({mode})")
        payload = await self._query(EPISODE_QUERY, variables)
        sources = EpisodeSourcesResponse.from_json(payload).source_urls
        logger.info(f"Catalog returned {len(sources)} sources for {show_id} ep {episode_number}")
        return sources

    async def search_shows(self, query: str, mode: str) -> Dict[str, str]:
        """Search the catalog, returning provider id -> "Name (N episodes)"."""
        variables = {
            "search": {"allowAdult": False, "allowUnknown": False, "query": query},
            "limit": 40,
            "page": 1,
            "translationType": mode,
            "countryOrigin": "ALL",
        }
        payload = await self._query(SEARCH_QUERY, variables)
        try:
            edges = payload["data"]["shows"]["edges"]
        except (KeyError, TypeError) as e:
            raise DecodeError(f"Unexpected search response shape: {e}") from e

        results = {}
        for edge in edges or []:
            if not isinstance(edge, dict) or not edge.get("_id"):
                continue
            available = edge.get("availableEpisodes") or {}
            count = available.get(mode, 0) if isinstance(available, dict) else 0
            results[edge["_id"]] = f"{edge.get('name', '')} ({count} episodes)"
        return results

    async def episodes_list(self, show_id: str, mode: str) -> List[str]:
        payload = await self._query(EPISODES_LIST_QUERY, {"showId": show_id})
        try:
            detail = payload["data"]["show"]["availableEpisodesDetail"]
        except (KeyError, TypeError) as e:
            raise DecodeError(f"Unexpected episode list shape: {e}") from e

        episodes = detail.get(mode, []) if isinstance(detail, dict) else []
        return sorted((str(ep) for ep in episodes), key=_episode_sort_key)


def _episode_sort_key(episode: str):
    try:
        return (0, float(episode), episode)
    except ValueError:
        return (1, 0.0, episode)


def find_show_id(results: Dict[str, str], title: str, total_episodes: int) -> Optional[str]:
    """Pick the search hit whose label matches the title and episode count exactly."""
    wanted = f"{title} ({total_episodes} episodes)"
    for provider_id, label in results.items():
        if label == wanted:
            return provider_id
    return None
