from typing import Callable, List, Optional, Sequence
from urllib.parse import urlparse

from ..config import SyncConfig
from ..database.models import EpisodeReference, ResolvedLink
from ..utils.logger import get_logger
from .catalog import CatalogClient
from .decoder import decode_provider_id
from .errors import DecodeError, NetworkError, NoSourcesError
from .link_extractor import LinkExtractor

logger = get_logger(__name__)

TOKEN_PREFIX_LENGTH = 2


def is_provider_token(token: str) -> bool:
    """Real provider embeds look like '--0a5d...', so the third character is a digit."""
    return len(token) > TOKEN_PREFIX_LENGTH and token[TOKEN_PREFIX_LENGTH].isdigit()


class LinkResolver:
    def __init__(self, config: SyncConfig,
                 catalog: Optional[CatalogClient] = None,
                 extractor: Optional[LinkExtractor] = None,
                 token_filter: Callable[[str], bool] = is_provider_token):
        self._catalog = catalog or CatalogClient(config)
        self._extractor = extractor or LinkExtractor(config)
        self._token_filter = token_filter

    async def resolve(self, show_id: str, episode_number: int, mode: str) -> List[ResolvedLink]:
        """
        Collect playable links for an episode, in source order.
        Only a failing catalog query raises; every per-source failure is
        logged and skipped, so the result may be empty.
        """
        try:
            tokens = await self._catalog.query_episode_sources(show_id, episode_number, mode)
        except (NetworkError, DecodeError) as e:
            raise NoSourcesError(f"Catalog query failed for {show_id} ep {episode_number}: {e}") from e

        links: List[ResolvedLink] = []
        for token in tokens:
            if not self._token_filter(token):
                logger.debug(f"Skipping non-provider source: {token[:16]}")
                continue

            path = decode_provider_id(token[TOKEN_PREFIX_LENGTH:])
            extracted = await self._extractor.extract_links(path)
            if not extracted:
                logger.info(f"No links from source {path}")
            links.extend(extracted)

        logger.info(f"Resolved {len(links)} links for {show_id} ep {episode_number} ({mode})")
        return links

    async def resolve_reference(self, reference: EpisodeReference) -> List[ResolvedLink]:
        return await self.resolve(reference.show_id, reference.episode_number, reference.mode)


def prioritize_links(links: Sequence[ResolvedLink], priority: Sequence[str]) -> ResolvedLink:
    """Pick the link served by the most preferred host, or the first one."""
    if not links:
        raise NoSourcesError("No links to choose from")

    for host in priority:
        for link in links:
            netloc = urlparse(link.url).netloc.lower()
            if netloc == host or netloc.endswith("." + host):
                return link
    return links[0]
