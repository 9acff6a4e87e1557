from typing import List, Optional, Tuple

from ..config import SyncConfig
from ..core.catalog import CatalogClient, find_show_id
from ..core.errors import AniSyncError, NoSourcesError, NotFoundError
from ..core.link_resolver import LinkResolver
from ..core.player import PlayerController
from ..core.synchronizer import ProgressDispatcher, ProgressSynchronizer, plan_session
from ..core.tracker import AniListTracker
from ..database.models import SessionResult
from ..database.watch_store import LastWatched, WatchStore, read_token
from ..utils.format_utils import format_time
from ..utils.logger import get_logger

logger = get_logger(__name__)


async def find_provider_id(catalog: CatalogClient, title: str, total_episodes: int, mode: str) -> Optional[str]:
    results = await catalog.search_shows(title, mode)
    provider_id = find_show_id(results, title, total_episodes)
    if provider_id:
        return provider_id

    print(f"Could not link '{title}' automatically. Candidates:")
    for key, label in results.items():
        print(f"  {key}  {label}")
    print("Run again with --provider-id <id>")
    return None


async def run_watch(show_id: Optional[int] = None, config: Optional[SyncConfig] = None,
                    continue_last: bool = False, provider_id: Optional[str] = None,
                    episode: Optional[int] = None) -> Optional[SessionResult]:
    config = config or SyncConfig.from_env()
    store = WatchStore(config.history_file)
    last_watched = LastWatched(config.last_watched_file)

    if continue_last:
        show_id = await last_watched.read()
        if show_id is None:
            print("No last watched show found.")
            return None
    if show_id is None:
        print("No show given.")
        return None

    token = await read_token(config.token_file)
    tracker = AniListTracker(token, config) if token else None
    if tracker is None:
        logger.warning(f"No AniList token at {config.token_file}, progress stays local")

    entry = await store.find_by_show_id(show_id)
    remote = None
    if tracker is not None:
        try:
            remote = await tracker.find_progress(show_id)
        except NotFoundError:
            logger.warning(f"Show {show_id} is not on the AniList list")
        except AniSyncError as e:
            logger.error(f"Could not read AniList progress: {e}")

    if entry is None and remote is None:
        print(f"Show {show_id} is neither in the local history nor on AniList.")
        return None

    session = plan_session(show_id, provider_id or "", entry, remote)
    if episode is not None:
        session.episode_number = max(0, episode - 1)
        if entry is None or entry.episode_number != session.episode_number:
            session.position_seconds = session.resume_seconds = 0

    catalog = CatalogClient(config)
    if not session.provider_show_id:
        session.provider_show_id = await find_provider_id(
            catalog, session.title, session.total_episodes, config.sub_or_dub
        ) or ""
        if not session.provider_show_id:
            return None

    await store.upsert(show_id, session.provider_show_id, session.episode_number,
                       session.resume_seconds, entry.score if entry else 0.0, session.title)

    resolver = LinkResolver(config, catalog=catalog)
    links = await resolver.resolve(session.provider_show_id, session.playing_episode, config.sub_or_dub)
    if not links:
        try:
            episodes = await catalog.episodes_list(session.provider_show_id, config.sub_or_dub)
        except AniSyncError as e:
            logger.error(f"Could not fetch the episode list: {e}")
            episodes = []
        if episodes:
            print(f"Available episodes: {episodes[0]} - {episodes[-1]} ({len(episodes)} total)")
            print("Pick one with --episode <n>")
        raise NoSourcesError(f"No links found for {session.title} episode {session.playing_episode}")

    await last_watched.write(show_id)

    title = f"{session.title} - Episode {session.playing_episode}"
    print(title)
    controller = PlayerController(config)
    session.socket_path = await controller.launch(links, title)

    dispatcher = ProgressDispatcher(tracker, config)
    synchronizer = ProgressSynchronizer(controller, store, dispatcher, config)
    handle = synchronizer.start(session)
    try:
        result = await handle.result()
    finally:
        await controller.close()
        await dispatcher.drain()

    if result.completed:
        print(f"Marked episode {result.episode_number} as watched.")
    else:
        print(f"Stopped at {format_time(result.position_seconds)}.")
    return result



def parse_args(args: List[str], config: SyncConfig) -> Tuple[Optional[int], bool, Optional[str], Optional[int]]:
    """
    Hand-rolled flags: <anilist_id> [--continue] [--dub] [--provider-id ID] [--episode N].
    A non-numeric id or episode raises ValueError.
    """
    args = list(args)
    continue_last = False
    provider_id = None
    episode = None

    if "--continue" in args:
        continue_last = True
        args.remove("--continue")
    if "--dub" in args:
        config.sub_or_dub = "dub"
        args.remove("--dub")
    if "--provider-id" in args:
        i = args.index("--provider-id")
        provider_id = args[i + 1] if i + 1 < len(args) else None
        del args[i:i + 2]
    if "--episode" in args:
        i = args.index("--episode")
        episode = int(args[i + 1]) if i + 1 < len(args) else None
        del args[i:i + 2]

    show_id = int(args[0]) if args else None
    return show_id, continue_last, provider_id, episode
