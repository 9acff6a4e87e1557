from dataclasses import dataclass
from typing import Optional

@dataclass(frozen=True)
class EpisodeReference:
    show_id: str
    episode_number: int
    mode: str = "sub"  # 'sub' or 'dub'

@dataclass(frozen=True)
class ResolvedLink:
    url: str

@dataclass
class WatchEntry:
    show_id: int
    provider_show_id: str
    episode_number: int
    playback_seconds: int = 0
    score: float = 0.0
    title: str = ""

@dataclass
class RemoteProgress:
    show_id: int
    progress: int = 0
    total_episodes: int = 0
    title: str = ""
    status: str = ""

@dataclass
class PlaybackSession:
    show_id: int
    provider_show_id: str
    episode_number: int  # completed episodes, the one playing is episode_number + 1
    title: str = ""
    total_episodes: int = 0
    socket_path: Optional[str] = None
    position_seconds: int = 0
    duration_seconds: int = 0
    resume_seconds: int = 0

    @property
    def playing_episode(self) -> int:
        return self.episode_number + 1

@dataclass(frozen=True)
class SessionResult:
    show_id: int
    provider_show_id: str
    episode_number: int
    position_seconds: int
    duration_seconds: int
    title: str
    completed: bool = False
    cancelled: bool = False
