import asyncio
import dataclasses
from typing import Callable, Optional, Set

from ..config import SyncConfig
from ..database.models import PlaybackSession, RemoteProgress, SessionResult, WatchEntry
from ..database.watch_store import WatchStore
from ..utils.format_utils import format_progress, format_time
from ..utils.logger import get_logger
from .errors import AniSyncError, AuthError, ChannelClosedError
from .player import PlayerController, as_seconds
from .tracker import AniListTracker

logger = get_logger(__name__)

FinalizeCallback = Callable[[SessionResult], None]


def percentage_watched(position: float, duration: float) -> float:
    if duration <= 0:
        return 0.0
    return position / duration * 100


def plan_session(show_id: int, provider_show_id: str,
                 entry: Optional[WatchEntry], remote: Optional[RemoteProgress],
                 title: str = "", total_episodes: int = 0) -> PlaybackSession:
    """
    Work out where playback should start from the local entry and the
    tracker's view. The tracker wins when it is ahead: the show was watched
    somewhere else, so the saved offset no longer applies.
    """
    episode = 0
    playback = 0
    if entry is not None:
        episode = entry.episode_number
        playback = entry.playback_seconds
        provider_show_id = provider_show_id or entry.provider_show_id
        title = title or entry.title
    elif remote is not None:
        episode = remote.progress

    if remote is not None:
        total_episodes = total_episodes or remote.total_episodes
        title = title or remote.title
        if remote.progress > episode:
            logger.info(f"Tracker is ahead ({remote.progress} > {episode}), dropping local offset")
            episode = remote.progress
            playback = 0

    # A finished show replays its last episode
    if total_episodes and episode >= total_episodes:
        episode = total_episodes - 1
        playback = 0

    return PlaybackSession(
        show_id=show_id,
        provider_show_id=provider_show_id,
        episode_number=episode,
        title=title,
        total_episodes=total_episodes,
        position_seconds=playback,
        resume_seconds=playback,
    )


class ProgressDispatcher:
    """Best-effort tracker updates that run beside the session, never inside it."""

    def __init__(self, tracker: Optional[AniListTracker], config: SyncConfig):
        self._tracker = tracker
        self._config = config
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(self, show_id: int, progress: int) -> Optional[asyncio.Task]:
        if self._tracker is None:
            logger.info(f"No tracker configured, progress {progress} for {show_id} kept locally")
            return None
        task = asyncio.create_task(self._push(show_id, progress))
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task):
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Progress update crashed: {task.exception()!r}")

    async def _push(self, show_id: int, progress: int) -> bool:
        attempts = max(1, self._config.tracker_retries)
        for attempt in range(1, attempts + 1):
            try:
                await self._tracker.update_progress(show_id, progress)
                logger.info(f"Tracker updated: show {show_id} -> episode {progress}")
                return True
            except AuthError as e:
                logger.error(f"Tracker refused the update for {show_id}: {e}")
                return False
            except AniSyncError as e:
                logger.warning(f"Tracker update attempt {attempt}/{attempts} for {show_id} failed: {e}")
                if attempt < attempts:
                    await asyncio.sleep(self._config.tracker_backoff * 2 ** (attempt - 1))
        logger.error(f"Giving up on tracker update for {show_id} (progress {progress})")
        return False

    async def drain(self):
        """Wait for in-flight updates, e.g. before the process exits."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


class SessionHandle:
    """What the caller keeps of a running session: its outcome, and a way to stop it."""

    def __init__(self, task: asyncio.Task):
        self._task = task

    async def result(self) -> SessionResult:
        return await self._task

    def cancel(self):
        self._task.cancel()

    def done(self) -> bool:
        return self._task.done()


class ProgressSynchronizer:
    def __init__(self, controller: PlayerController, store: WatchStore,
                 dispatcher: ProgressDispatcher, config: SyncConfig):
        self._controller = controller
        self._store = store
        self._dispatcher = dispatcher
        self._config = config

    def start(self, session: PlaybackSession,
              on_finalize: Optional[FinalizeCallback] = None) -> SessionHandle:
        """Run the session in its own task; the task works on a private copy."""
        owned = dataclasses.replace(session)
        task = asyncio.create_task(self.run(owned, on_finalize))
        return SessionHandle(task)

    async def run(self, session: PlaybackSession,
                  on_finalize: Optional[FinalizeCallback] = None) -> SessionResult:
        logger.info(f"Tracking playback: {session.title} episode {session.playing_episode}")
        try:
            if await self._discover_duration(session):
                await self._track_position(session)
        except asyncio.CancelledError:
            logger.info("Playback tracking cancelled, saving progress")
            await self._finalize(session, on_finalize, cancelled=True)
            raise
        return await self._finalize(session, on_finalize)

    async def _discover_duration(self, session: PlaybackSession) -> bool:
        while True:
            await asyncio.sleep(self._config.poll_interval)
            try:
                reply = await self._controller.get_duration(session.socket_path)
            except ChannelClosedError:
                logger.info("Player closed before the duration was known")
                return False

            duration = as_seconds(reply)
            if duration is None:
                if reply is not None:
                    logger.error(f"Duration is not a number: {reply!r}")
                continue
            if duration <= 0:
                continue

            session.duration_seconds = int(duration + 0.5)
            logger.info(f"Video duration: {format_time(session.duration_seconds)}")
            await self._resume(session)
            return True

    async def _resume(self, session: PlaybackSession):
        if session.resume_seconds <= self._config.resume_threshold:
            logger.debug(f"No resume, saved offset is {session.resume_seconds}s")
            return
        target = max(0, session.resume_seconds - self._config.resume_rewind)
        try:
            await self._controller.seek(session.socket_path, target)
        except ChannelClosedError:
            # The position loop sees the same closure and finalizes
            logger.warning("Player closed before the resume seek")

    async def _track_position(self, session: PlaybackSession):
        while True:
            await asyncio.sleep(self._config.poll_interval)
            try:
                reply = await self._controller.get_position(session.socket_path)
            except ChannelClosedError:
                logger.info(f"Player closed at {format_progress(session.position_seconds, session.duration_seconds)}")
                return

            position = as_seconds(reply)
            if position is None:
                if reply is not None:
                    logger.error(f"time-pos is not a number: {reply!r}")
                continue
            session.position_seconds = int(position + 0.5)
            logger.debug(f"Video position: {session.position_seconds} seconds")

    async def _finalize(self, session: PlaybackSession, on_finalize: Optional[FinalizeCallback],
                        cancelled: bool = False) -> SessionResult:
        percentage = percentage_watched(session.position_seconds, session.duration_seconds)
        completed = session.duration_seconds > 0 and percentage >= self._config.percentage_to_mark_complete

        if completed:
            session.episode_number += 1
            session.position_seconds = 0
            logger.info(f"Watched {percentage:.1f}%, marking episode {session.episode_number} complete")
            self._dispatcher.dispatch(session.show_id, session.episode_number)
        else:
            logger.info(f"Watched {percentage:.1f}%, below {self._config.percentage_to_mark_complete}%")

        try:
            existing = await self._store.find_by_show_id(session.show_id)
            await self._store.upsert(
                session.show_id,
                session.provider_show_id,
                session.episode_number,
                session.position_seconds,
                existing.score if existing else 0.0,
                session.title,
            )
        except OSError as e:
            logger.error(f"Failed to save watch history: {e}")

        result = SessionResult(
            show_id=session.show_id,
            provider_show_id=session.provider_show_id,
            episode_number=session.episode_number,
            position_seconds=session.position_seconds,
            duration_seconds=session.duration_seconds,
            title=session.title,
            completed=completed,
            cancelled=cancelled,
        )
        if on_finalize is not None:
            on_finalize(result)
        return result
