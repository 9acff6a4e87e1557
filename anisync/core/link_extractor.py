from dataclasses import dataclass
from typing import Any, List, Optional

import httpx

from ..config import SyncConfig
from ..database.models import ResolvedLink
from ..utils.logger import get_logger
from .errors import DecodeError

logger = get_logger(__name__)


@dataclass
class LinksDocument:
    """{links:[{link}, ...]}, any other field is ignored."""
    links: List[ResolvedLink]

    @classmethod
    def from_json(cls, payload: Any) -> "LinksDocument":
        if not isinstance(payload, dict):
            raise DecodeError("Links document is not an object")
        entries = payload.get("links")
        if not isinstance(entries, list):
            raise DecodeError("Links field is missing or not a list")

        links = []
        for entry in entries:
            if isinstance(entry, dict) and isinstance(entry.get("link"), str):
                links.append(ResolvedLink(url=entry["link"]))
        return cls(links=links)


class LinkExtractor:
    def __init__(self, config: SyncConfig, client: Optional[httpx.AsyncClient] = None):
        self._config = config
        self._client = client

    async def extract_links(self, resource_path: str) -> List[ResolvedLink]:
        """Fetch a decoded provider path and return its video links, [] on any failure."""
        url = self._config.catalog_base_url + resource_path
        try:
            if self._client is not None:
                response = await self._client.get(
                    url, headers=self._config.headers, timeout=self._config.request_timeout
                )
            else:
                async with httpx.AsyncClient(timeout=self._config.request_timeout) as client:
                    response = await client.get(url, headers=self._config.headers)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            # A mis-decoded token can yield a URL httpx refuses to build
            logger.warning(f"Error fetching {url}: {e}")
            return []

        if response.status_code != 200:
            logger.warning(f"Source {url} returned HTTP {response.status_code}")
            return []

        try:
            document = LinksDocument.from_json(response.json())
        except ValueError as e:
            logger.warning(f"Error parsing JSON from {url}: {e}")
            return []
        except DecodeError as e:
            logger.warning(f"Unexpected links document from {url}: {e}")
            return []

        logger.debug(f"Extracted {len(document.links)} links from {resource_path}")
        return document.links
